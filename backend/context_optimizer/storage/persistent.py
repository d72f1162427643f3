"""JSON-file storage for file records, context history and snapshots."""

from __future__ import annotations

import os
from datetime import timedelta
from pathlib import Path
from typing import Any, Callable

import orjson

from context_optimizer.core.logging import get_logger
from context_optimizer.errors import StorageIOError
from context_optimizer.indexing.store import IndexStore, InMemoryIndexStore
from context_optimizer.models.entities import FileRecord, HistoryEntry, Snapshot
from context_optimizer.utils.ids import new_id
from context_optimizer.utils.time import now_iso, parse_iso, utc_now

logger = get_logger(__name__)

STORAGE_VERSION = "1.0.0"
INDEX_FILE_NAME = "persistent-index.json"
HISTORY_FILE_NAME = "context-history.json"
SNAPSHOTS_FILE_NAME = "snapshots.json"


def _empty_compression_stats() -> dict[str, float]:
    return {"totalCompressed": 0, "totalSaved": 0.0, "totalContext": 0, "compressionRatio": 0.0}


class PersistentStorage:
    """Holds the indexed file records plus history and snapshots.

    Data lives in memory and is written back on ``save_all``. Load and save
    failures are logged and never raised, so a broken file costs durability
    rather than availability.
    """

    def __init__(
        self,
        storage_path: Path,
        max_history_entries: int = 100,
        max_snapshots: int = 10,
        files: IndexStore[FileRecord] | None = None,
    ) -> None:
        self.storage_path = storage_path.expanduser()
        self.max_history_entries = max_history_entries
        self.max_snapshots = max_snapshots

        self.files: IndexStore[FileRecord] = files if files is not None else InMemoryIndexStore()
        self.last_update: str | None = None
        self.last_commit: str | None = None
        self.version = STORAGE_VERSION

        self.history: list[HistoryEntry] = []
        self.last_cleanup: str | None = None
        self.compression_stats: dict[str, float] = _empty_compression_stats()

        self.snapshots: list[Snapshot] = []

        try:
            self.storage_path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning("Cannot create storage directory %s: %s", self.storage_path, exc)
        self._load_index_data()
        self._load_history_data()
        self._load_snapshots_data()
        logger.info("Persistent storage initialized at %s", self.storage_path)

    def __enter__(self) -> "PersistentStorage":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # File records -----------------------------------------------------

    def add_file_metadata(self, path: str, record: FileRecord) -> FileRecord:
        if record.indexed_at is None:
            record.indexed_at = now_iso()
        self.files.set(path, record)
        self.last_update = now_iso()
        return record

    def get_file_metadata(self, path: str) -> FileRecord | None:
        return self.files.get(path)

    def remove_file(self, path: str) -> bool:
        removed = self.files.delete(path)
        if removed:
            self.last_update = now_iso()
        return removed

    def needs_reindexing(self, path: str, stat: os.stat_result) -> bool:
        """True for unknown files and files whose mtime or size changed."""
        existing = self.files.get(path)
        if existing is None:
            return True
        return existing.last_modified != stat.st_mtime or existing.size != stat.st_size

    # History & snapshots ----------------------------------------------

    def add_history_entry(
        self,
        context_size: int,
        compressed: bool = False,
        compression_ratio: float = 1.0,
        summary: str | None = None,
        tags: list[str] | None = None,
    ) -> HistoryEntry:
        entry = HistoryEntry(
            id=new_id("entry"),
            timestamp=now_iso(),
            context_size=context_size,
            compressed=compressed,
            compression_ratio=compression_ratio,
            summary=summary,
            tags=list(tags or []),
        )
        self.history.insert(0, entry)
        del self.history[self.max_history_entries :]

        if compressed:
            stats = self.compression_stats
            stats["totalCompressed"] += 1
            stats["totalSaved"] += context_size * (1 - compression_ratio)
            stats["totalContext"] += context_size
            stats["compressionRatio"] = stats["totalSaved"] / stats["totalContext"] if stats["totalContext"] else 0.0
        return entry

    def create_snapshot(self, description: str = "") -> Snapshot:
        snapshot = Snapshot(
            id=new_id("snapshot"),
            timestamp=now_iso(),
            description=description,
            stats={
                "totalFiles": len(self.files),
                "totalHistoryEntries": len(self.history),
                "compressionStats": dict(self.compression_stats),
                "version": self.version,
                "lastUpdate": self.last_update,
            },
        )
        self.snapshots.insert(0, snapshot)
        del self.snapshots[self.max_snapshots :]
        return snapshot

    def cleanup_old_data(self, retention_days: int = 7) -> int:
        """Drop history entries older than ``retention_days``; returns the count removed."""
        cutoff = utc_now() - timedelta(days=retention_days)
        original = len(self.history)
        self.history = [entry for entry in self.history if parse_iso(entry.timestamp) > cutoff]
        self.last_cleanup = now_iso()
        removed = original - len(self.history)
        logger.info("Cleaned up %s old history entries", removed)
        return removed

    # Statistics -------------------------------------------------------

    def get_compression_stats(self) -> dict[str, Any]:
        entries = self.history
        average = sum(entry.compression_ratio for entry in entries) / len(entries) if entries else 1.0
        return {
            **self.compression_stats,
            "totalEntries": len(entries),
            "compressedEntries": sum(1 for entry in entries if entry.compressed),
            "averageCompressionRatio": average,
        }

    def get_storage_stats(self) -> dict[str, Any]:
        return {
            "index": {
                "totalFiles": len(self.files),
                "lastUpdate": self.last_update,
                "version": self.version,
            },
            "history": {
                "totalEntries": len(self.history),
                "lastCleanup": self.last_cleanup,
                "compressionStats": self.get_compression_stats(),
            },
            "snapshots": {
                "totalSnapshots": len(self.snapshots),
                "maxSnapshots": self.max_snapshots,
            },
        }

    # Persistence ------------------------------------------------------

    def save_all(self) -> bool:
        """Write all three files; returns False when any write failed."""
        ok = True
        for name, payload in (
            (INDEX_FILE_NAME, self._index_payload),
            (HISTORY_FILE_NAME, self._history_payload),
            (SNAPSHOTS_FILE_NAME, self._snapshots_payload),
        ):
            try:
                self._write(name, payload())
            except StorageIOError as exc:
                logger.warning("%s; keeping in-memory state", exc)
                ok = False
        return ok

    def close(self) -> None:
        self.save_all()
        logger.info("Persistent storage closed")

    def _index_payload(self) -> dict[str, Any]:
        return {
            "files": [[path, record.to_dict()] for path, record in self.files.items()],
            "lastUpdate": self.last_update or now_iso(),
            "lastCommit": self.last_commit,
            "version": self.version,
        }

    def _history_payload(self) -> dict[str, Any]:
        return {
            "entries": [entry.to_dict() for entry in self.history],
            "lastCleanup": self.last_cleanup,
            "compressionStats": self.compression_stats,
        }

    def _snapshots_payload(self) -> dict[str, Any]:
        return {
            "snapshots": [snapshot.to_dict() for snapshot in self.snapshots],
            "maxSnapshots": self.max_snapshots,
        }

    def _write(self, name: str, payload: dict[str, Any]) -> None:
        path = self.storage_path / name
        try:
            self.storage_path.mkdir(parents=True, exist_ok=True)
            path.write_bytes(orjson.dumps(payload, option=orjson.OPT_INDENT_2))
        except OSError as exc:
            raise StorageIOError(f"Failed to save {path}: {exc}") from exc

    def _read(self, name: str, apply: Callable[[dict[str, Any]], None]) -> None:
        path = self.storage_path / name
        if not path.exists():
            return
        try:
            apply(orjson.loads(path.read_bytes()))
        except (OSError, orjson.JSONDecodeError, AttributeError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Failed to load %s, starting fresh: %s", path, exc)

    def _load_index_data(self) -> None:
        def apply(data: dict[str, Any]) -> None:
            records = [(path, FileRecord.from_dict(item)) for path, item in data.get("files", [])]
            for path, record in records:
                self.files.set(path, record)
            self.last_update = data.get("lastUpdate")
            self.last_commit = data.get("lastCommit")
            self.version = data.get("version", STORAGE_VERSION)
            logger.info("Loaded %s indexed files", len(records))

        self._read(INDEX_FILE_NAME, apply)

    def _load_history_data(self) -> None:
        def apply(data: dict[str, Any]) -> None:
            entries = [HistoryEntry.from_dict(item) for item in data.get("entries", [])]
            self.history = entries
            self.last_cleanup = data.get("lastCleanup")
            self.compression_stats = {**_empty_compression_stats(), **data.get("compressionStats", {})}

        self._read(HISTORY_FILE_NAME, apply)

    def _load_snapshots_data(self) -> None:
        def apply(data: dict[str, Any]) -> None:
            self.snapshots = [Snapshot.from_dict(item) for item in data.get("snapshots", [])]
            self.max_snapshots = int(data.get("maxSnapshots", self.max_snapshots))

        self._read(SNAPSHOTS_FILE_NAME, apply)


__all__ = ["PersistentStorage"]
