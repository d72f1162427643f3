"""Per-file metadata extraction: importance, tags, token estimate and outline."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from context_optimizer.analysis.syntax import parse_source, supports
from context_optimizer.core.logging import get_logger
from context_optimizer.errors import ParseError
from context_optimizer.models.entities import FileRecord
from context_optimizer.utils.text import estimate_tokens
from context_optimizer.utils.time import now_iso

logger = get_logger(__name__)

IMPORTANCE_LEVELS = ("core", "config", "utility", "test", "normal")


@dataclass(frozen=True, slots=True)
class ImportanceRule:
    """Assigns ``label`` when any needle occurs in the lower-cased path."""

    label: str
    needles: tuple[str, ...]

    def matches(self, path: str) -> bool:
        lowered = path.lower()
        return any(needle in lowered for needle in self.needles)


@dataclass(frozen=True, slots=True)
class TagRule:
    """Adds ``tag`` when ``pattern`` matches the file content."""

    tag: str
    pattern: re.Pattern[str]

    def matches(self, content: str) -> bool:
        return self.pattern.search(content) is not None


# Evaluated in order; the first matching rule wins.
DEFAULT_IMPORTANCE_RULES: tuple[ImportanceRule, ...] = (
    ImportanceRule("core", ("core", "main", "index")),
    ImportanceRule("test", ("test", "spec", "__tests__")),
    ImportanceRule("utility", ("util", "helper", "common")),
    ImportanceRule("config", ("config", ".env", "package.json")),
)

LANGUAGE_TAGS = {
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".py": "python",
    ".java": "java",
    ".go": "golang",
    ".rs": "rust",
    ".md": "documentation",
    ".rst": "documentation",
    ".txt": "documentation",
}

_I = re.IGNORECASE

DEFAULT_FRAMEWORK_RULES: tuple[TagRule, ...] = (
    TagRule("react", re.compile(r"\breact\b", _I)),
    TagRule("vue", re.compile(r"\bvue\b", _I)),
    TagRule("angular", re.compile(r"\bangular\b", _I)),
    TagRule("express", re.compile(r"\bexpress\b", _I)),
    TagRule("nextjs", re.compile(r"\bnext(?:\.js|js)\b|['\"]next/", _I)),
    TagRule("django", re.compile(r"\bdjango\b", _I)),
    TagRule("flask", re.compile(r"\bflask\b", _I)),
    TagRule("fastapi", re.compile(r"\bfastapi\b", _I)),
)

DEFAULT_STRUCTURE_RULES: tuple[TagRule, ...] = (
    TagRule("testing", re.compile(r"\b(?:describe|it|test|expect)\(|\bimport pytest\b|\bunittest\b|\bdef test_")),
    TagRule("async", re.compile(r"\basync\b|\bawait\b|\bPromise\b")),
    TagRule("oop", re.compile(r"\bclass\s|\binterface\s")),
)


def classify_importance(path: str, rules: Sequence[ImportanceRule] = DEFAULT_IMPORTANCE_RULES) -> str:
    for rule in rules:
        if rule.matches(path):
            return rule.label
    return "normal"


def extract_tags(
    extension: str,
    content: str,
    framework_rules: Sequence[TagRule] = DEFAULT_FRAMEWORK_RULES,
    structure_rules: Sequence[TagRule] = DEFAULT_STRUCTURE_RULES,
) -> list[str]:
    """Language, framework and structural tags, deduplicated in that order."""
    tags: list[str] = []
    language = LANGUAGE_TAGS.get(extension.lower())
    if language:
        tags.append(language)
    for rule in (*framework_rules, *structure_rules):
        if rule.tag not in tags and rule.matches(content):
            tags.append(rule.tag)
    return tags


class MetadataExtractor:
    """Builds a FileRecord from a file's path, content and stat result."""

    def __init__(
        self,
        project_root: Path,
        token_threshold: int,
        importance_rules: Sequence[ImportanceRule] = DEFAULT_IMPORTANCE_RULES,
        framework_rules: Sequence[TagRule] = DEFAULT_FRAMEWORK_RULES,
        structure_rules: Sequence[TagRule] = DEFAULT_STRUCTURE_RULES,
    ) -> None:
        self.project_root = project_root
        self.token_threshold = token_threshold
        self.importance_rules = tuple(importance_rules)
        self.framework_rules = tuple(framework_rules)
        self.structure_rules = tuple(structure_rules)

    def relative_path(self, path: Path) -> str:
        try:
            return path.relative_to(self.project_root).as_posix()
        except ValueError:
            return path.as_posix()

    def extract(self, path: Path, content: str, stat: os.stat_result) -> FileRecord:
        extension = path.suffix.lower()
        relative = self.relative_path(path)
        tokens = estimate_tokens(content)
        record = FileRecord(
            path=str(path),
            relative_path=relative,
            size=stat.st_size,
            tokens=tokens,
            last_modified=stat.st_mtime,
            extension=extension,
            importance=classify_importance(relative, self.importance_rules),
            tags=extract_tags(extension, content, self.framework_rules, self.structure_rules),
            compressed=tokens > self.token_threshold,
            indexed_at=now_iso(),
        )
        if supports(extension):
            try:
                record.ast_info = parse_source(content, extension)
            except ParseError as exc:
                logger.warning("Failed to extract AST for %s: %s", relative, exc)
        return record


__all__ = [
    "DEFAULT_FRAMEWORK_RULES",
    "DEFAULT_IMPORTANCE_RULES",
    "DEFAULT_STRUCTURE_RULES",
    "IMPORTANCE_LEVELS",
    "ImportanceRule",
    "MetadataExtractor",
    "TagRule",
    "classify_importance",
    "extract_tags",
]
