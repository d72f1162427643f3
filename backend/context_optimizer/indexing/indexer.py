"""Differential indexer orchestration."""

from __future__ import annotations

import threading
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Iterable

from context_optimizer.core.config import Settings
from context_optimizer.core.logging import get_logger
from context_optimizer.core.metrics import FILES_INDEXED, INDEX_SIZE, INDEXING_DURATION
from context_optimizer.errors import FileAccessError, SizeLimitExceeded, StorageIOError
from context_optimizer.indexing.discovery import discover_files, git_commit_files, git_head
from context_optimizer.indexing.fingerprint import FingerprintIndex, HashedFingerprintEncoder
from context_optimizer.indexing.metadata import MetadataExtractor
from context_optimizer.indexing.store import IndexFiles
from context_optimizer.indexing.terms import TermIndex
from context_optimizer.storage.persistent import PersistentStorage

logger = get_logger(__name__)


@dataclass(slots=True)
class IndexingStats:
    indexed: int = 0
    skipped: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


class DifferentialIndexer:
    """Coordinate discovery, change detection, per-file indexing and persistence."""

    def __init__(
        self,
        settings: Settings,
        storage: PersistentStorage,
        term_index: TermIndex | None = None,
        fingerprint_index: FingerprintIndex | None = None,
        extractor: MetadataExtractor | None = None,
        index_files: IndexFiles | None = None,
    ) -> None:
        self.settings = settings
        self.storage = storage
        self.project_root = settings.project_root.expanduser().resolve()
        self.term_index = term_index or TermIndex()
        self.fingerprint_index = fingerprint_index or FingerprintIndex(
            HashedFingerprintEncoder.get(settings.vector_dimensions)
        )
        self.extractor = extractor or MetadataExtractor(self.project_root, settings.token_threshold)
        self.index_files = index_files or IndexFiles(settings.resolved_index_path)
        self._lock = threading.Lock()

    def initialize(self) -> IndexingStats:
        """Load persisted indexes, then run a full or incremental pass."""
        self.load_existing_indexes()
        if len(self.storage.files) == 0:
            logger.info("No indexed files found, performing full indexing")
            return self.perform_full_indexing()
        logger.info("Existing index found (%s files), performing incremental indexing", len(self.storage.files))
        return self.perform_incremental_indexing()

    def load_existing_indexes(self) -> None:
        try:
            terms = self.index_files.load_terms(self.term_index.store)
            vectors = self.index_files.load_fingerprints(self.fingerprint_index.store)
        except StorageIOError as exc:
            logger.warning("%s; starting with empty indexes", exc)
            return
        logger.info("Loaded existing indexes: %s term documents, %s vectors", terms, vectors)

    def perform_full_indexing(self) -> IndexingStats:
        with self._lock, INDEXING_DURATION.labels(mode="full").time():
            started = time.perf_counter()
            files = self._discover()
            self.prune_deleted(files)
            stats = self._index_batch(files)
            self._record_commit()
            self.save_indexes()
        logger.info(
            "Full indexing completed: %s indexed, %s skipped in %.2fs",
            stats.indexed,
            stats.skipped,
            time.perf_counter() - started,
        )
        return stats

    def perform_incremental_indexing(self) -> IndexingStats:
        with self._lock, INDEXING_DURATION.labels(mode="incremental").time():
            changed = self.detect_changed_files()
            if not changed:
                logger.info("No changes detected")
                stats = IndexingStats()
            else:
                logger.info("Indexing %s changed files", len(changed))
                stats = self._index_batch(changed)
            self._record_commit()
            self.save_indexes()
        logger.info("Incremental indexing completed: %s indexed, %s skipped", stats.indexed, stats.skipped)
        return stats

    def detect_changed_files(self) -> list[Path]:
        """Files to re-index; prunes records of files that disappeared as a side effect."""
        try:
            files = self._discover()
        except FileAccessError as exc:
            logger.warning("File discovery failed during change detection: %s", exc)
            return []

        discovered = set(files)
        changed: set[Path] = set()
        if self.settings.git_enabled:
            changed.update(path for path in self._git_changes() if path in discovered)

        for path in files:
            try:
                stat = path.stat()
            except OSError:
                continue
            if self.storage.needs_reindexing(str(path), stat):
                changed.add(path)

        self.prune_deleted(files)
        return sorted(changed)

    def prune_deleted(self, existing: Iterable[Path]) -> int:
        """Drop every record whose file is gone from disk or no longer discovered."""
        present = {str(path) for path in existing}
        known = set(self.storage.files) | set(self.term_index.store) | set(self.fingerprint_index.store)
        removed = 0
        for path in sorted(known):
            if path in present and Path(path).exists():
                continue
            self.remove_file(path)
            removed += 1
        if removed:
            logger.info("Removed %s deleted files from index", removed)
        return removed

    def remove_file(self, path: str) -> bool:
        removed = self.storage.remove_file(path)
        self.term_index.remove(path)
        self.fingerprint_index.remove(path)
        INDEX_SIZE.set(len(self.storage.files))
        return removed

    def index_file(self, path: Path) -> bool:
        """Index one file; returns False when it was skipped."""
        path = path.expanduser().resolve()
        try:
            stat = path.stat()
            if stat.st_size > self.settings.max_file_size:
                raise SizeLimitExceeded(path, stat.st_size, self.settings.max_file_size)
            content = path.read_bytes().decode("utf-8", errors="replace")
        except SizeLimitExceeded as exc:
            logger.warning("Skipping %s", exc)
            FILES_INDEXED.labels(outcome="skipped").inc()
            return False
        except OSError as exc:
            logger.warning("Skipping %s", FileAccessError(path, str(exc)))
            FILES_INDEXED.labels(outcome="skipped").inc()
            return False

        record = self.extractor.extract(path, content, stat)
        self.term_index.update(record, content)
        self.fingerprint_index.update(record, content)
        self.storage.add_file_metadata(record.path, record)
        FILES_INDEXED.labels(outcome="indexed").inc()
        INDEX_SIZE.set(len(self.storage.files))
        logger.debug("Indexed %s (%s tokens, %s)", record.relative_path, record.tokens, record.importance)
        return True

    def update_files(self, paths: Iterable[Path]) -> IndexingStats:
        """Index specific files under the indexer lock and persist."""
        with self._lock:
            stats = self._index_batch(paths)
            self.save_indexes()
        return stats

    def forget_files(self, paths: Iterable[Path]) -> int:
        with self._lock:
            removed = sum(1 for path in paths if self.remove_file(str(path.expanduser().resolve())))
            if removed:
                self.save_indexes()
        return removed

    def save_indexes(self) -> None:
        try:
            self.index_files.save_terms(self.term_index.store)
            self.index_files.save_fingerprints(self.fingerprint_index.store)
        except StorageIOError as exc:
            logger.warning("%s; keeping in-memory indexes", exc)
        self.storage.save_all()

    def get_indexing_stats(self) -> dict[str, Any]:
        return {
            "totalFiles": len(self.storage.files),
            "termDocuments": self.term_index.size,
            "vectorDocuments": self.fingerprint_index.size,
            "vectorDimensions": self.fingerprint_index.dim,
            "lastUpdate": self.storage.last_update,
            "storageStats": self.storage.get_storage_stats(),
        }

    def close(self) -> None:
        with self._lock:
            self.save_indexes()
            self.storage.close()
        logger.info("Differential indexer closed")

    # Internal helpers -------------------------------------------------

    def _discover(self) -> list[Path]:
        return discover_files(
            self.project_root,
            self.settings.file_patterns,
            self.settings.exclude_patterns,
            self.settings.max_file_size,
        )

    def _index_batch(self, paths: Iterable[Path]) -> IndexingStats:
        stats = IndexingStats()
        for path in paths:
            try:
                indexed = self.index_file(path)
            except Exception as exc:  # noqa: BLE001
                logger.exception("Failed to index %s: %s", path, exc)
                FILES_INDEXED.labels(outcome="failed").inc()
                indexed = False
            if indexed:
                stats.indexed += 1
            else:
                stats.skipped += 1
        return stats

    def _git_changes(self) -> list[Path]:
        head = git_head(self.project_root)
        if head is None or head == self.storage.last_commit:
            return []
        return git_commit_files(self.project_root, head)

    def _record_commit(self) -> None:
        if not self.settings.git_enabled:
            return
        head = git_head(self.project_root)
        if head is not None:
            self.storage.last_commit = head


__all__ = ["DifferentialIndexer", "IndexingStats"]
