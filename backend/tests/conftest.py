"""Test fixtures for Context Optimizer."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))


def _reset_singletons() -> None:
    from context_optimizer.api import dependencies as deps
    from context_optimizer.core.config import get_settings
    from context_optimizer.indexing.fingerprint import HashedFingerprintEncoder

    HashedFingerprintEncoder._instances.clear()
    get_settings.cache_clear()
    deps.get_app_settings.cache_clear()
    deps._STORAGE = None
    deps._INDEXER = None
    deps._COMPRESSOR = None
    deps._PACKAGER = None
    deps._WATCHER = None


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    root.mkdir()
    return root.resolve()


@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path, project_root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset global singletons and environment between tests."""
    monkeypatch.setenv("CTXO_PROJECT_ROOT", str(project_root))
    monkeypatch.setenv("CTXO_STORAGE_PATH", str(tmp_path / "storage"))
    monkeypatch.setenv("CTXO_INDEX_PATH", str(tmp_path / "indexes"))
    monkeypatch.setenv("CTXO_GIT_ENABLED", "false")
    monkeypatch.delenv("CTXO_CONFIG", raising=False)
    _reset_singletons()
    yield
    _reset_singletons()


@pytest.fixture
def write_file(project_root: Path):
    def _write(relative: str, content: str) -> Path:
        path = project_root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def settings(tmp_path: Path, project_root: Path):
    from context_optimizer.core.config import Settings

    return Settings(
        project_root=project_root,
        storage_path=tmp_path / "storage",
        index_path=tmp_path / "indexes",
        git_enabled=False,
    )
