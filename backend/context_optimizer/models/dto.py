"""Pydantic DTOs exposed via API."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class IndexRequest(BaseModel):
    mode: Literal["auto", "full", "incremental"] = Field(
        default="incremental",
        description="auto picks full on an empty index, incremental otherwise",
    )


class IndexFileRequest(BaseModel):
    path: str


class IndexResponse(BaseModel):
    mode: str
    indexed: int
    skipped: int


class IndexFileResponse(BaseModel):
    path: str
    indexed: bool


class CompressRequest(BaseModel):
    content: str | None = Field(default=None, description="Raw content to compress")
    path: str | None = Field(default=None, description="File to read and compress instead of content")
    importance: str | None = None
    extension: str | None = None
    algorithm: Literal["summarization", "truncation", "keyword-extraction"] | None = None
    compression_ratio: float | None = Field(default=None, gt=0.0, le=1.0)
    force: bool = False


class CompressResponse(BaseModel):
    compressed: bool
    originalContent: str
    compressedContent: str
    compressionRatio: float
    tokens: int
    compressedTokens: int
    algorithm: str
    summary: dict[str, Any] | None = None
    error: str | None = None


class PackageRequest(BaseModel):
    max_tokens: int | None = Field(default=None, gt=0)
    max_files: int | None = Field(default=None, gt=0)
    max_history_entries: int | None = Field(default=None, ge=0)
    include_history: bool = True
    include_snapshots: bool = True
    include_dependencies: bool = True


class MasterPackageRequest(PackageRequest):
    query: str = Field(min_length=1)


class WorkerPackageRequest(PackageRequest):
    task: str = Field(min_length=1)


class SnapshotRequest(BaseModel):
    description: str = ""


class CleanupRequest(BaseModel):
    retention_days: int = Field(default=7, ge=0)


class CleanupResponse(BaseModel):
    removed: int


__all__ = [
    "CleanupRequest",
    "CleanupResponse",
    "CompressRequest",
    "CompressResponse",
    "IndexFileRequest",
    "IndexFileResponse",
    "IndexRequest",
    "IndexResponse",
    "MasterPackageRequest",
    "PackageRequest",
    "SnapshotRequest",
    "WorkerPackageRequest",
]
