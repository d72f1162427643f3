"""Compression and context package routes."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from context_optimizer.api.dependencies import get_app_settings, get_compressor, get_packager, get_storage
from context_optimizer.api.routes_index import resolve_project_path
from context_optimizer.compression.compressor import ContentCompressor
from context_optimizer.core.config import Settings
from context_optimizer.errors import ContextOptimizerError, FileAccessError
from context_optimizer.models.dto import (
    CompressRequest,
    CompressResponse,
    MasterPackageRequest,
    PackageRequest,
    WorkerPackageRequest,
)
from context_optimizer.packaging.packager import PackageOptions, PromptPackager
from context_optimizer.storage.persistent import PersistentStorage

router = APIRouter()


@router.post("/compress", response_model=CompressResponse, summary="Compress content or a file")
async def compress(
    request: CompressRequest,
    compressor: ContentCompressor = Depends(get_compressor),
    storage: PersistentStorage = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
) -> CompressResponse:
    metadata: dict[str, Any] = {}
    if request.path:
        path = resolve_project_path(request.path, settings)
        try:
            content = path.read_bytes().decode("utf-8", errors="replace")
        except OSError as exc:
            raise FileAccessError(path, str(exc)) from exc
        record = storage.get_file_metadata(str(path))
        metadata["extension"] = path.suffix.lower()
        if record is not None:
            metadata["importance"] = record.importance
    elif request.content is not None:
        content = request.content
    else:
        raise ContextOptimizerError("Either content or path is required")

    overrides = {
        "importance": request.importance,
        "extension": request.extension,
        "algorithm": request.algorithm,
        "compression_ratio": request.compression_ratio,
    }
    metadata.update({key: value for key, value in overrides.items() if value is not None})
    result = compressor.compress_content(content, metadata, force=request.force)
    return CompressResponse(**result.to_dict())


@router.post("/packages/master", summary="Generate a master context package")
async def master_package(
    request: MasterPackageRequest,
    packager: PromptPackager = Depends(get_packager),
) -> dict[str, Any]:
    return packager.generate_master_package(request.query, _options(request)).to_dict()


@router.post("/packages/worker", summary="Generate a worker context package")
async def worker_package(
    request: WorkerPackageRequest,
    packager: PromptPackager = Depends(get_packager),
) -> dict[str, Any]:
    return packager.generate_worker_package(request.task, _options(request)).to_dict()


@router.get("/packages/stats", summary="Packaging and compression settings")
async def packaging_stats(
    packager: PromptPackager = Depends(get_packager),
    compressor: ContentCompressor = Depends(get_compressor),
) -> dict[str, Any]:
    return {"packaging": packager.get_packaging_stats(), "compression": compressor.get_compression_stats()}


def _options(request: PackageRequest) -> PackageOptions:
    return PackageOptions(
        max_tokens=request.max_tokens,
        max_files=request.max_files,
        max_history_entries=request.max_history_entries,
        include_history=request.include_history,
        include_snapshots=request.include_snapshots,
        include_dependencies=request.include_dependencies,
    )


__all__ = ["router"]
