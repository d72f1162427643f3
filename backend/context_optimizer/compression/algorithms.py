"""Compression algorithms: summarization, truncation and keyword extraction.

Each algorithm takes the content plus the target ratio and returns an
``AlgorithmOutput``. Ratio bookkeeping is left to the compressor.
"""

from __future__ import annotations

import math
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from nltk.stem.porter import PorterStemmer

from context_optimizer.analysis.syntax import LANGUAGE_BY_EXTENSION, parse_source
from context_optimizer.core.logging import get_logger
from context_optimizer.errors import ParseError
from context_optimizer.models.entities import AstInfo
from context_optimizer.utils.text import tokenize

logger = get_logger(__name__)

TEXT_EXTENSIONS = {".md", ".txt"}
KEY_LINE_LIMIT = 10
KEYWORD_LIMIT = 20
TOP_WORDS_LIMIT = 10
# Snap back to whitespace only when it sits in the last 20% of the cut.
SNAP_THRESHOLD = 0.8

STOP_WORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
        "of", "with", "by", "from", "up", "about", "into", "through", "during",
        "before", "after", "above", "below", "between", "among", "is", "are",
        "was", "were", "be", "been", "being", "have", "has", "had", "do", "does",
        "did", "will", "would", "could", "should", "may", "might", "must",
        "can", "this", "that", "these", "those", "i", "you", "he", "she", "it",
        "we", "they", "me", "him", "her", "us", "them",
    }
)

SENTENCE_RE = re.compile(r"(?<=[.!?])\s+")
ALPHA_RE = re.compile(r"^[a-zA-Z]+$")

_JS_KEY_LINE_MARKERS = ("TODO", "FIXME", "console.log", "debugger")
_PY_KEY_LINE_MARKERS = ("TODO", "FIXME", "print(", "breakpoint(", "pdb.")

_stemmer = PorterStemmer()


@dataclass(slots=True)
class AlgorithmOutput:
    content: str
    summary: dict[str, Any] = field(default_factory=dict)


# Truncation -----------------------------------------------------------


def truncate(content: str, ratio: float) -> AlgorithmOutput:
    """Cut to ``floor(len * ratio)`` characters, preferring a late word boundary."""
    max_length = math.floor(len(content) * ratio)
    if len(content) <= max_length:
        return AlgorithmOutput(content, {"method": "no_truncation_needed"})

    truncated = content[:max_length]
    break_point = max(truncated.rfind(" "), truncated.rfind("\n"))
    if break_point > max_length * SNAP_THRESHOLD:
        result = truncated[:break_point] + "\n..."
    else:
        result = truncated + "..."
    return AlgorithmOutput(
        result,
        {"method": "truncation", "originalLength": len(content), "truncatedLength": len(result)},
    )


# Summarization --------------------------------------------------------


def summarize(content: str, ratio: float, extension: str) -> AlgorithmOutput:
    """Dispatch to the code, text or generic summarizer by extension.

    Code that fails to parse falls back to truncation.
    """
    extension = extension.lower()
    if extension in LANGUAGE_BY_EXTENSION:
        try:
            return summarize_code(content, extension)
        except ParseError as exc:
            logger.warning("Code summarization failed, falling back to truncation: %s", exc)
            return truncate(content, ratio)
    if extension in TEXT_EXTENSIONS:
        return summarize_text(content, ratio)
    return summarize_generic(content, ratio)


def summarize_code(content: str, extension: str) -> AlgorithmOutput:
    info = parse_source(content, extension)
    python = LANGUAGE_BY_EXTENSION[extension] == "python"
    key_lines = _key_lines(content, python)
    skeleton = render_code_summary(info, key_lines, python)
    return AlgorithmOutput(
        skeleton,
        {
            "method": "code_summary",
            "imports": len(info.imports),
            "classes": [cls.name for cls in info.classes],
            "functions": [fn.name for fn in info.functions],
            "exports": len(info.exports),
            "keyLines": len(key_lines),
        },
    )


def _key_lines(content: str, python: bool) -> list[tuple[int, str]]:
    prefixes = ("#",) if python else ("//", "/*")
    markers = _PY_KEY_LINE_MARKERS if python else _JS_KEY_LINE_MARKERS
    found: list[tuple[int, str]] = []
    for number, line in enumerate(content.split("\n"), start=1):
        stripped = line.strip()
        if stripped.startswith(prefixes) or any(marker in stripped for marker in markers):
            found.append((number, stripped))
    return found


def render_code_summary(info: AstInfo, key_lines: list[tuple[int, str]], python: bool = False) -> str:
    """Render the skeleton in fixed order: imports, classes, functions, exports, key lines."""
    comment = "#" if python else "//"
    parts: list[str] = []

    if info.imports:
        parts.append(f"{comment} Imports:")
        for imp in info.imports:
            names = ", ".join(imp.specifiers)
            if python:
                parts.append(f"from {imp.source} import {names}")
            else:
                parts.append(f"import {{ {names} }} from '{imp.source}';")
        parts.append("")

    if info.classes:
        parts.append(f"{comment} Classes:")
        for cls in info.classes:
            if python:
                parts.append(f"class {cls.name}:")
                parts.extend(f"    def {method.name}({method.params}): ..." for method in cls.methods)
                if not cls.methods:
                    parts.append("    ...")
            else:
                parts.append(f"class {cls.name} {{")
                parts.extend(f"  {method.name}({method.params}) {{ ... }}" for method in cls.methods)
                parts.append("}")
        parts.append("")

    if info.functions:
        parts.append(f"{comment} Functions:")
        for fn in info.functions:
            if python:
                parts.append(f"def {fn.name}({fn.params} params): ...")
            else:
                parts.append(f"{fn.name}({fn.params} params) {{ ... }}")
        parts.append("")

    if info.exports:
        parts.append(f"{comment} Exports:")
        for exp in info.exports:
            parts.append(f"export {exp.kind} {exp.name}" if exp.name else f"export {exp.kind} ...")
        parts.append("")

    if key_lines:
        parts.append(f"{comment} Key Lines:")
        parts.extend(f"{comment} Line {number}: {text}" for number, text in key_lines[:KEY_LINE_LIMIT])

    return "\n".join(parts)


def summarize_text(content: str, ratio: float) -> AlgorithmOutput:
    """Keep the highest scoring sentences in their original order."""
    sentences = [sentence.strip() for sentence in SENTENCE_RE.split(content) if sentence.strip()]
    frequencies = Counter(word for word in tokenize(content) if len(word) > 3)

    total = len(sentences)
    scored: list[tuple[float, int, str]] = []
    for index, sentence in enumerate(sentences):
        score = sum(frequencies.get(word, 0) for word in tokenize(sentence))
        score += max(0.0, (total - index) / total) * 10
        scored.append((score, index, sentence))

    keep = math.ceil(total * ratio)
    selected = sorted(sorted(scored, key=lambda item: item[0], reverse=True)[:keep], key=lambda item: item[1])
    return AlgorithmOutput(
        " ".join(sentence for _, _, sentence in selected),
        {
            "method": "text_summary",
            "originalSentences": total,
            "selectedSentences": len(selected),
            "topWords": [
                {"word": word, "frequency": freq} for word, freq in frequencies.most_common(TOP_WORDS_LIMIT)
            ],
        },
    )


def _is_important_line(line: str) -> bool:
    return (
        line.startswith(("#", "*", "-"))
        or "=" in line
        or ":" in line
        or len(line) > 50
    )


def summarize_generic(content: str, ratio: float) -> AlgorithmOutput:
    """Keep the leading share of header, list, key/value, assignment and long lines."""
    lines = content.split("\n")
    important = [stripped for stripped in (line.strip() for line in lines) if stripped and _is_important_line(stripped)]
    selected = important[: math.ceil(len(important) * ratio)]
    return AlgorithmOutput(
        "\n".join(selected),
        {
            "method": "generic_summary",
            "originalLines": len(lines),
            "importantLines": len(important),
            "selectedLines": len(selected),
        },
    )


# Keyword extraction ---------------------------------------------------


def extract_keywords(content: str, ratio: float) -> AlgorithmOutput:
    """Prepend the top stemmed keywords to a truncated body."""
    words = [
        word
        for word in tokenize(content)
        if len(word) > 3 and word not in STOP_WORDS and ALPHA_RE.match(word)
    ]
    frequencies = Counter(_stemmer.stem(word) for word in words)
    top = frequencies.most_common(KEYWORD_LIMIT)
    keyword_line = ", ".join(f"{word} ({freq})" for word, freq in top)
    body = truncate(content, ratio).content
    return AlgorithmOutput(
        f"Keywords: {keyword_line}\n\n{body}",
        {
            "method": "keyword_extraction",
            "keywords": [{"word": word, "frequency": freq} for word, freq in top],
            "totalWords": len(words),
            "uniqueWords": len(frequencies),
        },
    )


__all__ = [
    "AlgorithmOutput",
    "STOP_WORDS",
    "extract_keywords",
    "render_code_summary",
    "summarize",
    "summarize_code",
    "summarize_generic",
    "summarize_text",
    "truncate",
]
