"""Administrative routes: history, snapshots, cleanup and metrics."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from context_optimizer.api.dependencies import get_storage
from context_optimizer.core.metrics import metrics_response
from context_optimizer.models.dto import CleanupRequest, CleanupResponse, SnapshotRequest
from context_optimizer.storage.persistent import PersistentStorage

router = APIRouter()


@router.get("/history", summary="Recent context history, newest first")
async def list_history(
    limit: int = Query(default=20, ge=1, le=500),
    storage: PersistentStorage = Depends(get_storage),
) -> list[dict[str, Any]]:
    return [entry.to_dict() for entry in storage.history[:limit]]


@router.post("/snapshots", summary="Record a snapshot of the current index")
async def create_snapshot(
    request: SnapshotRequest,
    storage: PersistentStorage = Depends(get_storage),
) -> dict[str, Any]:
    snapshot = storage.create_snapshot(request.description)
    storage.save_all()
    return snapshot.to_dict()


@router.get("/snapshots", summary="List snapshots, newest first")
async def list_snapshots(storage: PersistentStorage = Depends(get_storage)) -> list[dict[str, Any]]:
    return [snapshot.to_dict() for snapshot in storage.snapshots]


@router.post("/cleanup", response_model=CleanupResponse, summary="Drop old history entries")
async def cleanup(
    request: CleanupRequest,
    storage: PersistentStorage = Depends(get_storage),
) -> CleanupResponse:
    removed = storage.cleanup_old_data(request.retention_days)
    storage.save_all()
    return CleanupResponse(removed=removed)


@router.get("/metrics", summary="Prometheus metrics")
async def get_metrics():
    return metrics_response()


__all__ = ["router"]
