"""Tests for relevance ranking and context package assembly."""

import pytest

from context_optimizer.compression import CompressionConfig, ContentCompressor
from context_optimizer.core.config import DEFAULT_PRIORITY_WEIGHTS
from context_optimizer.indexing.indexer import DifferentialIndexer
from context_optimizer.models.entities import AstInfo, FileRecord, ImportInfo
from context_optimizer.packaging import (
    CodeSnippet,
    ContextPackage,
    PackageOptions,
    PromptPackager,
    estimate_package_tokens,
    rank_files_by_relevance,
    relevance_score,
    select_within_budget,
)
from context_optimizer.storage.persistent import PersistentStorage


def _record(relative: str, importance: str, tokens: int = 10, tags: list[str] | None = None) -> FileRecord:
    return FileRecord(
        path=f"/project/{relative}",
        relative_path=relative,
        size=tokens * 4,
        tokens=tokens,
        last_modified=0.0,
        extension="." + relative.rsplit(".", 1)[-1],
        importance=importance,
        tags=tags or [],
    )


def _comment(length: int) -> str:
    return "// " + "x" * (length - 3)


@pytest.fixture
def storage(settings) -> PersistentStorage:
    return PersistentStorage(settings.resolved_storage_path)


@pytest.fixture
def packager(settings, storage: PersistentStorage) -> PromptPackager:
    return PromptPackager(settings, storage, ContentCompressor(CompressionConfig.from_settings(settings)))


@pytest.fixture
def indexed_project(settings, storage: PersistentStorage, write_file) -> DifferentialIndexer:
    write_file("core/index.ts", _comment(200))
    write_file("utils/helper.ts", _comment(120))
    write_file("test/foo.test.ts", _comment(80))
    indexer = DifferentialIndexer(settings, storage)
    indexer.perform_full_indexing()
    return indexer


def test_score_scales_with_importance_weight() -> None:
    words = ["auth"]
    core = relevance_score(_record("core/auth.ts", "core"), words, DEFAULT_PRIORITY_WEIGHTS)
    test = relevance_score(_record("test/auth.test.ts", "test"), words, DEFAULT_PRIORITY_WEIGHTS)
    assert core == pytest.approx(2.0)
    assert test == pytest.approx(0.6)
    unknown = relevance_score(_record("misc/auth.ts", "other"), words, {})
    assert unknown == pytest.approx(1.0)


def test_tag_matches_count_once_per_tag() -> None:
    record = _record("src/app.ts", "normal", tags=["typescript", "react"])
    assert relevance_score(record, ["typescript", "script"], DEFAULT_PRIORITY_WEIGHTS) == pytest.approx(0.5)


def test_ranking_is_stable_and_descending() -> None:
    records = [
        _record("a/one.ts", "normal"),
        _record("b/two.ts", "normal"),
        _record("core/login.ts", "core"),
    ]
    ranked = rank_files_by_relevance("login", records, DEFAULT_PRIORITY_WEIGHTS)
    assert [item.record.relative_path for item in ranked] == ["core/login.ts", "a/one.ts", "b/two.ts"]
    scores = [item.score for item in ranked]
    assert scores == sorted(scores, reverse=True)


def test_budget_selection_skips_oversized_files() -> None:
    ranked = rank_files_by_relevance(
        "x",
        [_record("a.ts", "normal", 30), _record("b.ts", "normal", 50), _record("c.ts", "normal", 20)],
        DEFAULT_PRIORITY_WEIGHTS,
    )
    assert [r.relative_path for r in select_within_budget(ranked, 60, 20)] == ["a.ts", "c.ts"]
    assert [r.relative_path for r in select_within_budget(ranked, 60, 1)] == ["a.ts"]


def test_search_admits_ranked_files_within_budget(packager: PromptPackager, indexed_project) -> None:
    files = packager.search_relevant_content("update helper", PackageOptions(max_tokens=100, max_files=20))
    assert [record.relative_path for record in files] == ["utils/helper.ts", "test/foo.test.ts"]
    assert sum(record.tokens for record in files) <= 60


def test_worker_package_shape(packager: PromptPackager, storage: PersistentStorage, indexed_project) -> None:
    package = packager.generate_worker_package("update helper", PackageOptions(max_tokens=1000))
    data = package.to_dict()
    assert list(data) == [
        "type",
        "task",
        "timestamp",
        "summary",
        "code_snippets",
        "dependencies",
        "related_files",
        "metadata",
    ]
    assert data["code_snippets"][0]["path"] == "utils/helper.ts"
    assert data["metadata"]["filesIncluded"] == len(data["code_snippets"]) == 3
    assert data["metadata"]["withinBudget"] is True
    assert data["summary"]["relevant_code_files"][0]["path"] == "utils/helper.ts"
    assert "Reuse utility functions where possible" in data["summary"]["implementation_hints"]

    entry = storage.history[0]
    assert entry.tags == ["worker"]
    assert entry.summary == "update helper"
    assert entry.context_size == package.metadata.total_tokens


def test_worker_default_budget_is_reduced(settings, storage: PersistentStorage, indexed_project) -> None:
    settings.max_tokens = 100
    packager = PromptPackager(settings, storage, ContentCompressor())
    package = packager.generate_worker_package("helper")
    assert [snippet.path for snippet in package.code_snippets] == ["utils/helper.ts"]


def test_master_package_fields(packager: PromptPackager, storage: PersistentStorage, indexed_project) -> None:
    storage.create_snapshot("before refactor")
    package = packager.generate_master_package("helper")
    data = package.to_dict()
    assert data["type"] == "master"
    assert data["query"] == "helper"
    assert set(data) >= {"summary", "code_snippets", "related_history", "snapshots", "metadata"}

    summary = data["summary"]
    assert summary["relevant_files"][0]["path"] == "utils/helper.ts"
    assert summary["project_overview"]["totalFiles"] == 3
    assert summary["project_overview"]["languages"] == [{"language": "typescript", "files": 3}]
    assert "Found 1 core files that are critical to the project structure" in summary["key_insights"]
    assert "Consider adding documentation files (README.md, docs/)" in summary["recommendations"]
    assert data["snapshots"][0]["description"] == "before refactor"
    assert storage.history[0].tags == ["master"]


def test_optimize_drops_low_priority_snippets(packager: PromptPackager) -> None:
    package = ContextPackage(
        type="worker",
        task="t",
        timestamp="now",
        summary={},
        code_snippets=[
            CodeSnippet(path="test/a.test.ts", importance="test", tokens=200, content="x " * 400),
            CodeSnippet(path="core/a.ts", importance="core", tokens=200, content="x " * 400),
        ],
    )
    optimized = packager.optimize_package(package, PackageOptions(max_tokens=250))
    assert [snippet.path for snippet in optimized.code_snippets] == ["core/a.ts"]
    assert optimized.metadata.total_tokens == 200
    assert optimized.metadata.files_included == 1
    assert optimized.metadata.compression_ratio == pytest.approx(0.5)
    assert optimized.metadata.within_budget is True


def test_optimize_force_compresses_and_never_grows(packager: PromptPackager) -> None:
    content = "word " * 160
    package = ContextPackage(
        type="worker",
        task="t",
        timestamp="now",
        summary={},
        code_snippets=[CodeSnippet(path="core/notes.txt", importance="core", tokens=200, content=content)],
    )
    before = estimate_package_tokens(package)
    optimized = packager.optimize_package(package, PackageOptions(max_tokens=100))
    snippet = optimized.code_snippets[0]
    assert snippet.compressed is True
    assert snippet.content.startswith("Keywords: word (160)")
    assert optimized.metadata.total_tokens < before
    assert optimized.metadata.within_budget is False


def test_extract_dependencies_dedupes_in_order(packager: PromptPackager) -> None:
    first = _record("src/a.ts", "core")
    first.ast_info = AstInfo(imports=[ImportInfo(source="react"), ImportInfo(source="./util")])
    second = _record("src/b.ts", "normal")
    second.ast_info = AstInfo(imports=[ImportInfo(source="react")] + [ImportInfo(source=f"pkg{i}") for i in range(12)])
    third = _record("README.md", "normal")
    assert packager.extract_dependencies([first, second, third]) == ["react", "./util"] + [f"pkg{i}" for i in range(8)]
