"""Shared FastAPI dependencies."""

from __future__ import annotations

from functools import lru_cache

from context_optimizer.compression.compressor import CompressionConfig, ContentCompressor
from context_optimizer.core.config import Settings, get_settings
from context_optimizer.indexing.indexer import DifferentialIndexer
from context_optimizer.indexing.watcher import IndexWatcher
from context_optimizer.packaging.packager import PromptPackager
from context_optimizer.storage.persistent import PersistentStorage

_STORAGE: PersistentStorage | None = None
_INDEXER: DifferentialIndexer | None = None
_COMPRESSOR: ContentCompressor | None = None
_PACKAGER: PromptPackager | None = None
_WATCHER: IndexWatcher | None = None


@lru_cache(maxsize=1)
def get_app_settings() -> Settings:
    return get_settings()


def get_storage() -> PersistentStorage:
    global _STORAGE
    if _STORAGE is None:
        settings = get_app_settings()
        _STORAGE = PersistentStorage(settings.resolved_storage_path)
    return _STORAGE


def get_indexer() -> DifferentialIndexer:
    global _INDEXER
    if _INDEXER is None:
        _INDEXER = DifferentialIndexer(settings=get_app_settings(), storage=get_storage())
    return _INDEXER


def get_compressor() -> ContentCompressor:
    global _COMPRESSOR
    if _COMPRESSOR is None:
        _COMPRESSOR = ContentCompressor(CompressionConfig.from_settings(get_app_settings()))
    return _COMPRESSOR


def get_packager() -> PromptPackager:
    global _PACKAGER
    if _PACKAGER is None:
        _PACKAGER = PromptPackager(
            settings=get_app_settings(),
            storage=get_storage(),
            compressor=get_compressor(),
        )
    return _PACKAGER


def get_watcher() -> IndexWatcher:
    global _WATCHER
    if _WATCHER is None:
        _WATCHER = IndexWatcher(get_indexer())
    return _WATCHER


def shutdown() -> None:
    """Stop the watcher and flush indexes; safe to call when nothing started."""
    global _STORAGE, _INDEXER, _COMPRESSOR, _PACKAGER, _WATCHER
    if _WATCHER is not None:
        _WATCHER.stop()
    if _INDEXER is not None:
        _INDEXER.close()
    elif _STORAGE is not None:
        _STORAGE.close()
    _STORAGE = _INDEXER = _COMPRESSOR = _PACKAGER = _WATCHER = None


__all__ = [
    "get_app_settings",
    "get_compressor",
    "get_indexer",
    "get_packager",
    "get_storage",
    "get_watcher",
    "shutdown",
]
