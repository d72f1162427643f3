"""Indexing API routes."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from fastapi import APIRouter, Depends

from context_optimizer.api.dependencies import get_app_settings, get_indexer
from context_optimizer.core.config import Settings
from context_optimizer.errors import FileAccessError
from context_optimizer.indexing.indexer import DifferentialIndexer
from context_optimizer.models.dto import IndexFileRequest, IndexFileResponse, IndexRequest, IndexResponse

router = APIRouter()


@router.post("", response_model=IndexResponse, summary="Run a full or incremental indexing pass")
async def trigger_index(
    request: IndexRequest,
    indexer: DifferentialIndexer = Depends(get_indexer),
) -> IndexResponse:
    mode = request.mode
    if mode == "auto":
        mode = "full" if len(indexer.storage.files) == 0 else "incremental"
    if mode == "full":
        stats = indexer.perform_full_indexing()
    else:
        stats = indexer.perform_incremental_indexing()
    return IndexResponse(mode=mode, **stats.to_dict())


@router.post("/file", response_model=IndexFileResponse, summary="Index a single file")
async def index_file(
    request: IndexFileRequest,
    indexer: DifferentialIndexer = Depends(get_indexer),
    settings: Settings = Depends(get_app_settings),
) -> IndexFileResponse:
    path = resolve_project_path(request.path, settings)
    if not path.is_file():
        raise FileAccessError(path, "not a file")
    stats = indexer.update_files([path])
    return IndexFileResponse(path=str(path), indexed=stats.indexed == 1)


@router.get("/stats", summary="Index statistics")
async def index_stats(indexer: DifferentialIndexer = Depends(get_indexer)) -> dict[str, Any]:
    return indexer.get_indexing_stats()


def resolve_project_path(raw: str, settings: Settings) -> Path:
    """Relative paths are taken from the project root."""
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = settings.project_root / path
    return path.resolve()


__all__ = ["resolve_project_path", "router"]
