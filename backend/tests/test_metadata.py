"""Tests for metadata extraction rules."""

import os
from pathlib import Path

from context_optimizer.indexing.metadata import (
    ImportanceRule,
    MetadataExtractor,
    classify_importance,
    extract_tags,
)


def test_importance_first_match_wins() -> None:
    assert classify_importance("src/core/engine.ts") == "core"
    assert classify_importance("tests/test_main.py") == "core"
    assert classify_importance("tests/test_parser.py") == "test"
    assert classify_importance("src/utils/helper.ts") == "utility"
    assert classify_importance("config/settings.json") == "config"
    assert classify_importance("docs/guide.md") == "normal"


def test_importance_rules_are_injectable() -> None:
    rules = [ImportanceRule("config", ("settings",)), ImportanceRule("core", ("src",))]
    assert classify_importance("src/settings.py", rules) == "config"
    assert classify_importance("src/app.py", rules) == "core"
    assert classify_importance("lib/app.py", rules) == "normal"


def test_tags_are_deduplicated_in_order() -> None:
    content = "import React from 'react';\nclass App {}\nasync function load() { await fetch('/react'); }"
    assert extract_tags(".tsx", content) == ["typescript", "react", "async", "oop"]
    assert extract_tags(".md", "# Notes") == ["documentation"]


def test_extractor_uses_relative_path(tmp_path: Path) -> None:
    # Absolute temp paths contain "test"; classification must ignore them.
    source = tmp_path / "lib" / "parser.py"
    source.parent.mkdir()
    content = "import os\n\n\ndef parse(text):\n    return text\n" * 60
    source.write_text(content)
    extractor = MetadataExtractor(tmp_path, token_threshold=100)
    record = extractor.extract(source, content, os.stat(source))
    assert record.relative_path == "lib/parser.py"
    assert record.importance == "normal"
    assert record.tokens == -(-len(content) // 4)
    assert record.compressed is True
    assert record.ast_info is not None
    assert record.ast_info.functions[0].name == "parse"


def test_extractor_tolerates_parse_errors(tmp_path: Path) -> None:
    source = tmp_path / "broken.ts"
    source.write_text("function (")
    record = MetadataExtractor(tmp_path, token_threshold=1000).extract(source, "function (", os.stat(source))
    assert record.ast_info is None
    assert record.compressed is False
