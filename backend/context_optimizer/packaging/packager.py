"""Master/worker context package assembly."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any

import orjson

from context_optimizer.compression.compressor import ContentCompressor
from context_optimizer.core.config import Settings
from context_optimizer.core.logging import get_logger
from context_optimizer.core.metrics import PACKAGE_TOKENS
from context_optimizer.indexing.metadata import DEFAULT_FRAMEWORK_RULES
from context_optimizer.models.entities import FileRecord
from context_optimizer.packaging.ranking import (
    DEFAULT_WEIGHT,
    SEARCH_BUDGET_SHARE,
    rank_files_by_relevance,
    select_within_budget,
)
from context_optimizer.storage.persistent import PersistentStorage
from context_optimizer.utils.text import estimate_tokens
from context_optimizer.utils.time import now_iso

logger = get_logger(__name__)

WORKER_BUDGET_SHARE = 0.8
RECENT_SNAPSHOTS = 3
MAX_DEPENDENCIES = 10
LANGUAGES = ("typescript", "javascript", "python", "java", "golang", "rust")
FRAMEWORKS = tuple(rule.tag for rule in DEFAULT_FRAMEWORK_RULES)


class PackagingState(str, Enum):
    REQUESTED = "requested"
    SEARCHING = "searching"
    ASSEMBLING = "assembling"
    TOKEN_CHECK = "token_check"
    OPTIMIZING = "optimizing"
    DONE = "done"


@dataclass(slots=True)
class PackageOptions:
    max_tokens: int | None = None
    max_files: int | None = None
    max_history_entries: int | None = None
    include_history: bool = True
    include_snapshots: bool = True
    include_dependencies: bool = True


@dataclass(slots=True)
class CodeSnippet:
    path: str
    importance: str
    tokens: int
    content: str
    summary: dict[str, Any] | None = None
    compressed: bool = False
    compression_ratio: float = 1.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "importance": self.importance,
            "tokens": self.tokens,
            "content": self.content,
            "summary": self.summary,
            "compressed": self.compressed,
            "compressionRatio": self.compression_ratio,
        }


@dataclass(slots=True)
class PackageMetadata:
    total_tokens: int = 0
    files_included: int = 0
    compression_ratio: float = 1.0
    generation_time: float = 0.0
    within_budget: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalTokens": self.total_tokens,
            "filesIncluded": self.files_included,
            "compressionRatio": self.compression_ratio,
            "generationTime": self.generation_time,
            "withinBudget": self.within_budget,
        }


@dataclass(slots=True)
class ContextPackage:
    """Structured, token-bounded bundle handed to a downstream consumer."""

    type: str
    timestamp: str
    summary: dict[str, Any]
    code_snippets: list[CodeSnippet] = field(default_factory=list)
    query: str | None = None
    task: str | None = None
    related_history: list[dict[str, Any]] = field(default_factory=list)
    snapshots: list[dict[str, Any]] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)
    related_files: list[dict[str, Any]] = field(default_factory=list)
    metadata: PackageMetadata = field(default_factory=PackageMetadata)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type}
        if self.type == "master":
            data["query"] = self.query
        else:
            data["task"] = self.task
        data["timestamp"] = self.timestamp
        data["summary"] = self.summary
        data["code_snippets"] = [snippet.to_dict() for snippet in self.code_snippets]
        if self.type == "master":
            data["related_history"] = self.related_history
            data["snapshots"] = self.snapshots
        else:
            data["dependencies"] = self.dependencies
            data["related_files"] = self.related_files
        data["metadata"] = self.metadata.to_dict()
        return data


def _json_tokens(value: Any) -> int:
    if isinstance(value, str):
        return estimate_tokens(value)
    if value is None:
        return 0
    return math.ceil(len(orjson.dumps(value, default=str)) / 4)


def estimate_package_tokens(package: ContextPackage) -> int:
    """Summary JSON, snippet tokens, history summaries and snapshot descriptions."""
    tokens = _json_tokens(package.summary) if package.summary else 0
    for snippet in package.code_snippets:
        tokens += snippet.tokens or estimate_tokens(snippet.content)
    for entry in package.related_history:
        tokens += estimate_tokens(entry.get("summary") or "")
    for snapshot in package.snapshots:
        tokens += estimate_tokens(snapshot.get("description") or "")
    return tokens


class PromptPackager:
    """Rank indexed files and assemble token-budgeted context packages."""

    def __init__(
        self,
        settings: Settings,
        storage: PersistentStorage,
        compressor: ContentCompressor,
    ) -> None:
        self.storage = storage
        self.compressor = compressor
        self.max_tokens = settings.max_tokens
        self.max_files = settings.max_files
        self.max_history_entries = settings.max_history_entries
        self.max_summary_length = settings.max_summary_length
        self.priority_weights = dict(settings.priority_weights)

    # Public API -------------------------------------------------------

    def generate_master_package(self, query: str, options: PackageOptions | None = None) -> ContextPackage:
        started = time.perf_counter()
        config = self._resolve(options, self.max_tokens)
        self._transition(PackagingState.REQUESTED, "master", query)

        self._transition(PackagingState.SEARCHING, "master", query)
        files = self.search_relevant_content(query, config)

        self._transition(PackagingState.ASSEMBLING, "master", query)
        package = ContextPackage(
            type="master",
            query=query,
            timestamp=now_iso(),
            summary=self._master_summary(query, files),
            code_snippets=self.extract_code_snippets(files, config),
            related_history=self._recent_history(config) if config.include_history else [],
            snapshots=self._recent_snapshots() if config.include_snapshots else [],
        )
        return self._finalize(package, config, query, started)

    def generate_worker_package(self, task: str, options: PackageOptions | None = None) -> ContextPackage:
        started = time.perf_counter()
        config = self._resolve(options, math.floor(self.max_tokens * WORKER_BUDGET_SHARE))
        self._transition(PackagingState.REQUESTED, "worker", task)

        self._transition(PackagingState.SEARCHING, "worker", task)
        files = self.search_relevant_content(task, config)

        self._transition(PackagingState.ASSEMBLING, "worker", task)
        dependencies = self.extract_dependencies(files) if config.include_dependencies else []
        package = ContextPackage(
            type="worker",
            task=task,
            timestamp=now_iso(),
            summary={
                "task": task,
                "relevant_code_files": [
                    {
                        "path": record.relative_path,
                        "importance": record.importance,
                        "functions": len(record.ast_info.functions) if record.ast_info else 0,
                        "classes": len(record.ast_info.classes) if record.ast_info else 0,
                    }
                    for record in files
                    if record.importance in ("core", "utility")
                ][:3],
                "dependencies": dependencies,
                "implementation_hints": self.implementation_hints(files),
            },
            code_snippets=self.extract_code_snippets(files, config),
            dependencies=dependencies,
            related_files=[
                {
                    "path": record.relative_path,
                    "importance": record.importance,
                    "size": record.size,
                    "tokens": record.tokens,
                    "tags": list(record.tags),
                }
                for record in files[: config.max_files]
            ],
        )
        return self._finalize(package, config, task, started)

    def search_relevant_content(self, query: str, config: PackageOptions) -> list[FileRecord]:
        """Ranked files admitted into 60% of the package token budget."""
        records = [record for _, record in self.storage.files.items()]
        ranked = rank_files_by_relevance(query, records, self.priority_weights)
        budget = (config.max_tokens or self.max_tokens) * SEARCH_BUDGET_SHARE
        return select_within_budget(ranked, budget, config.max_files or self.max_files)

    def extract_code_snippets(self, files: list[FileRecord], config: PackageOptions) -> list[CodeSnippet]:
        snippets: list[CodeSnippet] = []
        for record in files[: config.max_files or self.max_files]:
            try:
                content = Path(record.path).read_bytes().decode("utf-8", errors="replace")
            except OSError as exc:
                logger.warning("Failed to extract snippet from %s: %s", record.relative_path, exc)
                continue
            result = self.compressor.compress_content(
                content,
                {"importance": record.importance, "extension": record.extension},
            )
            snippets.append(
                CodeSnippet(
                    path=record.relative_path,
                    importance=record.importance,
                    tokens=result.compressed_tokens,
                    content=result.compressed_content,
                    summary=result.summary,
                    compressed=result.compressed,
                    compression_ratio=result.compression_ratio,
                )
            )
        return snippets

    def optimize_package(self, package: ContextPackage, config: PackageOptions) -> ContextPackage:
        """Drop low-priority snippets, then force-compress the rest.

        Best effort: a single retained snippet larger than the budget leaves
        the package over budget with ``within_budget`` set to False.
        """
        max_tokens = config.max_tokens or self.max_tokens
        before = estimate_package_tokens(package)
        logger.info("Optimizing package: %s -> %s tokens", before, max_tokens)

        package.code_snippets.sort(key=self._weight, reverse=True)
        current = before
        while current > max_tokens and len(package.code_snippets) > 1:
            package.code_snippets.pop()
            current = estimate_package_tokens(package)

        for snippet in package.code_snippets:
            if current <= max_tokens:
                break
            result = self.compressor.compress_content(
                snippet.content,
                {"importance": snippet.importance, "extension": Path(snippet.path).suffix},
                force=True,
            )
            if result.compressed and result.compressed_tokens < snippet.tokens:
                snippet.content = result.compressed_content
                snippet.tokens = result.compressed_tokens
                snippet.summary = result.summary
                snippet.compressed = True
                snippet.compression_ratio = result.compression_ratio
                current = estimate_package_tokens(package)

        package.metadata.total_tokens = current
        package.metadata.files_included = len(package.code_snippets)
        package.metadata.compression_ratio = current / before if before else 1.0
        package.metadata.within_budget = current <= max_tokens
        return package

    def extract_dependencies(self, files: list[FileRecord]) -> list[str]:
        dependencies: list[str] = []
        for record in files:
            if record.ast_info is None:
                continue
            for imp in record.ast_info.imports:
                if imp.source not in dependencies:
                    dependencies.append(imp.source)
        return dependencies[:MAX_DEPENDENCIES]

    def key_insights(self, files: list[FileRecord]) -> list[str]:
        insights: list[str] = []
        core = sum(1 for record in files if record.importance == "core")
        if core:
            insights.append(f"Found {core} core files that are critical to the project structure")
        stats = self.storage.get_compression_stats()
        if stats["totalCompressed"] > 0:
            insights.append(
                f"Project has {stats['totalCompressed']} compressed context packages with "
                f"{stats['averageCompressionRatio'] * 100:.1f}% average compression ratio"
            )
        return insights

    def recommendations(self, files: list[FileRecord]) -> list[str]:
        recommendations: list[str] = []
        if not any(record.importance == "test" for record in files):
            recommendations.append("Consider adding test files to improve code quality")
        if not any("documentation" in record.tags for record in files):
            recommendations.append("Consider adding documentation files (README.md, docs/)")
        return recommendations

    def implementation_hints(self, files: list[FileRecord]) -> list[str]:
        hints: list[str] = []
        if any(record.importance == "core" for record in files):
            hints.append("Follow existing patterns in core files")
        if any(record.importance == "utility" for record in files):
            hints.append("Reuse utility functions where possible")
        return hints

    def project_overview(self) -> dict[str, Any]:
        stats = self.storage.get_storage_stats()
        records = [record for _, record in self.storage.files.items()]
        languages: dict[str, int] = {}
        frameworks: list[str] = []
        for record in records:
            for tag in record.tags:
                if tag in LANGUAGES:
                    languages[tag] = languages.get(tag, 0) + 1
                elif tag in FRAMEWORKS and tag not in frameworks:
                    frameworks.append(tag)
        return {
            "totalFiles": stats["index"]["totalFiles"],
            "languages": [{"language": language, "files": count} for language, count in languages.items()],
            "frameworks": frameworks,
            "lastUpdate": stats["index"]["lastUpdate"],
            "compressionStats": stats["history"]["compressionStats"],
        }

    def get_packaging_stats(self) -> dict[str, Any]:
        return {
            "maxTokens": self.max_tokens,
            "maxFiles": self.max_files,
            "maxHistoryEntries": self.max_history_entries,
            "priorityWeights": self.priority_weights,
            "storageStats": self.storage.get_storage_stats(),
        }

    # Internal helpers -------------------------------------------------

    def _resolve(self, options: PackageOptions | None, default_max_tokens: int) -> PackageOptions:
        options = options or PackageOptions()
        return replace(
            options,
            max_tokens=options.max_tokens or default_max_tokens,
            max_files=options.max_files or self.max_files,
            max_history_entries=(
                options.max_history_entries if options.max_history_entries is not None else self.max_history_entries
            ),
        )

    def _finalize(self, package: ContextPackage, config: PackageOptions, request: str, started: float) -> ContextPackage:
        self._transition(PackagingState.TOKEN_CHECK, package.type, request)
        package.metadata.files_included = len(package.code_snippets)
        package.metadata.total_tokens = estimate_package_tokens(package)
        if package.metadata.total_tokens > (config.max_tokens or self.max_tokens):
            self._transition(PackagingState.OPTIMIZING, package.type, request)
            package = self.optimize_package(package, config)
        package.metadata.generation_time = round((time.perf_counter() - started) * 1000, 3)
        self._transition(PackagingState.DONE, package.type, request)

        PACKAGE_TOKENS.labels(type=package.type).observe(package.metadata.total_tokens)
        self.storage.add_history_entry(
            context_size=package.metadata.total_tokens,
            compressed=any(snippet.compressed for snippet in package.code_snippets),
            compression_ratio=package.metadata.compression_ratio,
            summary=request,
            tags=[package.type],
        )
        self.storage.save_all()
        logger.info(
            "%s package generated: %s tokens, %s files",
            package.type.capitalize(),
            package.metadata.total_tokens,
            package.metadata.files_included,
            extra={"package_type": package.type, "within_budget": package.metadata.within_budget},
        )
        return package

    def _master_summary(self, query: str, files: list[FileRecord]) -> dict[str, Any]:
        return {
            "query": query,
            "project_overview": self.project_overview(),
            "relevant_files": [
                {
                    "path": record.relative_path,
                    "importance": record.importance,
                    "tokens": record.tokens,
                    "summary": self._describe(record),
                }
                for record in files[:5]
            ],
            "key_insights": self.key_insights(files),
            "recommendations": self.recommendations(files),
        }

    def _describe(self, record: FileRecord) -> str:
        parts: list[str] = []
        if record.ast_info is not None:
            parts.append(f"{len(record.ast_info.functions)} functions, {len(record.ast_info.classes)} classes")
        if record.tags:
            parts.append(f"tags: {', '.join(record.tags)}")
        if not parts:
            return "No summary available"
        return "; ".join(parts)[: self.max_summary_length]

    def _recent_history(self, config: PackageOptions) -> list[dict[str, Any]]:
        limit = config.max_history_entries if config.max_history_entries is not None else self.max_history_entries
        return [entry.to_dict() for entry in self.storage.history[:limit]]

    def _recent_snapshots(self) -> list[dict[str, Any]]:
        return [snapshot.to_dict() for snapshot in self.storage.snapshots[:RECENT_SNAPSHOTS]]

    def _weight(self, snippet: CodeSnippet) -> float:
        return self.priority_weights.get(snippet.importance, DEFAULT_WEIGHT)

    @staticmethod
    def _transition(state: PackagingState, kind: str, request: str) -> None:
        logger.debug("%s package %r: %s", kind, request, state.value)


__all__ = [
    "CodeSnippet",
    "ContextPackage",
    "PackageMetadata",
    "PackageOptions",
    "PackagingState",
    "PromptPackager",
    "estimate_package_tokens",
]
