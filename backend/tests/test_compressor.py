"""Tests for content compression."""

import pytest

from context_optimizer.compression import CompressionConfig, ContentCompressor
from context_optimizer.compression.algorithms import summarize_generic, summarize_text, truncate

JS_SOURCE = """\
import { join } from 'path';
// TODO: cache resolved paths
export class Resolver {
  resolve(name) { return join('/', name); }
}
function normalize(a, b) {
  console.log(a);
  return a;
}
""" + "\n".join(f"const value{i} = {i};" for i in range(40))

PY_SOURCE = """\
from pathlib import Path
# resolver helpers


class Resolver:
    def resolve(self, name):
        return Path(name)


def normalize(a, b):
    print(a)
    return a
""" + "\n".join(f"VALUE_{i} = {i}" for i in range(40))


@pytest.fixture
def compressor() -> ContentCompressor:
    return ContentCompressor(CompressionConfig(token_threshold=10))


def test_small_content_passes_through() -> None:
    result = ContentCompressor().compress_content("short text", {"extension": ".md"})
    assert result.compressed is False
    assert result.compressed_content == "short text"
    assert result.compression_ratio == 1.0
    assert result.algorithm == "none"
    assert result.tokens == result.compressed_tokens == 3


def test_important_content_is_exempt_unless_forced(compressor: ContentCompressor) -> None:
    content = "word " * 100
    metadata = {"importance": "core", "extension": ".txt"}
    assert compressor.compress_content(content, metadata).compressed is False
    forced = compressor.compress_content(content, metadata, force=True)
    assert forced.compressed is True
    assert forced.algorithm == "keyword-extraction"


def test_truncation_scenario(compressor: ContentCompressor) -> None:
    content = "0123456789" * 10
    result = compressor.compress_content(content, {"algorithm": "truncation", "compression_ratio": 0.5})
    assert result.compressed is True
    assert result.compressed_content == "0123456789" * 5 + "..."
    assert result.compression_ratio == pytest.approx(0.53)
    assert result.compressed_tokens == 14


def test_truncation_prefers_late_word_boundary() -> None:
    assert truncate("abcdefghij klmnopqrst", 0.6).content == "abcdefghij\n..."
    content = "alpha beta gamma delta epsilon zeta eta theta"
    output = truncate(content, 0.5)
    assert output.content == "alpha beta gamma delta..."
    assert len(output.content) <= len(content) * 0.5 + len("...")
    assert truncate("tiny", 1.0).summary == {"method": "no_truncation_needed"}


def test_ratio_reports_configured_floor(compressor: ContentCompressor) -> None:
    content = "Indexing indexes index files. " * 50
    result = compressor.compress_content(content, {"extension": ".md"})
    assert result.compression_ratio >= 0.7


@pytest.mark.parametrize(
    ("extension", "expected"),
    [
        (".ts", "summarization"),
        (".PY", "summarization"),
        (".md", "keyword-extraction"),
        (".txt", "keyword-extraction"),
        (".json", "truncation"),
        (".yml", "truncation"),
        (".css", "summarization"),
        ("", "summarization"),
    ],
)
def test_select_algorithm(extension: str, expected: str) -> None:
    assert ContentCompressor().select_algorithm(extension) == expected


def test_keyword_extraction_stems_words(compressor: ContentCompressor) -> None:
    content = "Indexing indexes index files. " * 50
    result = compressor.compress_content(content, {"extension": ".md"})
    assert result.algorithm == "keyword-extraction"
    first_line = result.compressed_content.split("\n", 1)[0]
    assert first_line.startswith("Keywords: index (150)")
    assert "file (50)" in first_line
    assert result.summary["totalWords"] == 200


def test_text_summary_keeps_original_order() -> None:
    content = (
        "Caching speeds up builds. "
        "The weather was pleasant. "
        "Caching needs invalidation when builds change. "
        "Lunch was served at noon."
    )
    output = summarize_text(content, 0.5)
    assert output.summary["originalSentences"] == 4
    assert output.summary["selectedSentences"] == 2
    sentences = output.content.split(". ")
    assert sentences[0].startswith("Caching speeds")
    assert sentences[1].startswith("Caching needs")


def test_generic_summary_keeps_important_lines() -> None:
    content = "[section]\nname = demo\nplain\n- item\n\nother words"
    output = summarize_generic(content, 1.0)
    assert output.content == "name = demo\n- item"
    assert output.summary["importantLines"] == 2


def test_javascript_code_summary_sections(compressor: ContentCompressor) -> None:
    result = compressor.compress_content(JS_SOURCE, {"extension": ".js"})
    assert result.algorithm == "summarization"
    text = result.compressed_content
    headers = ["// Imports:", "// Classes:", "// Functions:", "// Exports:", "// Key Lines:"]
    positions = [text.index(header) for header in headers]
    assert positions == sorted(positions)
    assert "import { join } from 'path';" in text
    assert "normalize(2 params) { ... }" in text
    assert "// Line 2: // TODO: cache resolved paths" in text
    assert "// Line 7: console.log(a);" in text
    assert result.summary["functions"] == ["normalize"]


def test_python_code_summary_uses_hash_comments(compressor: ContentCompressor) -> None:
    result = compressor.compress_content(PY_SOURCE, {"extension": ".py"})
    text = result.compressed_content
    assert text.startswith("# Imports:\nfrom pathlib import Path")
    assert "class Resolver:\n    def resolve(2): ..." in text
    assert "def normalize(2 params): ..." in text
    assert "# Line 2: # resolver helpers" in text
    assert "# Line 11: print(a)" in text


def test_unparseable_code_falls_back_to_truncation(compressor: ContentCompressor) -> None:
    content = "function (" + " x" * 100
    result = compressor.compress_content(content, {"extension": ".js"})
    assert result.compressed is True
    assert result.summary["method"] == "truncation"


def test_unknown_algorithm_reports_error(compressor: ContentCompressor) -> None:
    content = "word " * 100
    result = compressor.compress_content(content, {"algorithm": "zip"})
    assert result.compressed is False
    assert result.algorithm == "error"
    assert "zip" in result.error
    assert result.compressed_content == content
