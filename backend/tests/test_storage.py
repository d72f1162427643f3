"""Tests for persistent storage."""

import os
import re
from pathlib import Path

from context_optimizer.models.entities import FileRecord
from context_optimizer.storage.persistent import PersistentStorage


def _record(path: Path) -> FileRecord:
    stat = os.stat(path)
    return FileRecord(
        path=str(path),
        relative_path=path.name,
        size=stat.st_size,
        tokens=1,
        last_modified=stat.st_mtime,
        extension=path.suffix,
    )


def test_history_is_newest_first_and_capped(tmp_path: Path) -> None:
    storage = PersistentStorage(tmp_path, max_history_entries=2)
    storage.add_history_entry(100, summary="first")
    storage.add_history_entry(200, compressed=True, compression_ratio=0.5, summary="second")
    storage.add_history_entry(300, summary="third")
    assert [entry.summary for entry in storage.history] == ["third", "second"]
    stats = storage.get_compression_stats()
    assert stats["totalCompressed"] == 1
    assert stats["totalSaved"] == 100
    assert stats["compressedEntries"] == 1


def test_needs_reindexing(tmp_path: Path) -> None:
    source = tmp_path / "a.txt"
    source.write_text("hello")
    storage = PersistentStorage(tmp_path / "storage")
    assert storage.needs_reindexing(str(source), os.stat(source))
    storage.add_file_metadata(str(source), _record(source))
    assert not storage.needs_reindexing(str(source), os.stat(source))
    source.write_text("hello world")
    assert storage.needs_reindexing(str(source), os.stat(source))


def test_save_and_reload(tmp_path: Path) -> None:
    source = tmp_path / "a.txt"
    source.write_text("hello")
    storage = PersistentStorage(tmp_path / "storage", max_snapshots=2)
    storage.add_file_metadata(str(source), _record(source))
    storage.add_history_entry(10, summary="query", tags=["master"])
    for label in ("one", "two", "three"):
        storage.create_snapshot(label)
    storage.last_commit = "abc123"
    assert storage.save_all()

    reloaded = PersistentStorage(tmp_path / "storage")
    assert reloaded.get_file_metadata(str(source)).size == 5
    assert reloaded.history[0].tags == ["master"]
    assert [snap.description for snap in reloaded.snapshots] == ["three", "two"]
    assert reloaded.snapshots[0].stats["totalFiles"] == 1
    assert reloaded.last_commit == "abc123"
    assert (tmp_path / "storage" / "persistent-index.json").exists()


def test_corrupt_files_start_fresh(tmp_path: Path) -> None:
    (tmp_path / "persistent-index.json").write_text("{broken")
    (tmp_path / "context-history.json").write_text("[]")
    storage = PersistentStorage(tmp_path)
    assert len(storage.files) == 0
    assert storage.history == []


def test_cleanup_old_data(tmp_path: Path) -> None:
    storage = PersistentStorage(tmp_path)
    old = storage.add_history_entry(10, summary="old")
    old.timestamp = "2000-01-01T00:00:00+00:00"
    storage.add_history_entry(10, summary="new")
    assert storage.cleanup_old_data(retention_days=7) == 1
    assert [entry.summary for entry in storage.history] == ["new"]
    assert storage.last_cleanup is not None


def test_entry_and_snapshot_ids(tmp_path: Path) -> None:
    storage = PersistentStorage(tmp_path)
    entry = storage.add_history_entry(10)
    snapshot = storage.create_snapshot("ids")
    assert re.fullmatch(r"entry_\d{13}_[0-9a-z]{9}", entry.id)
    assert re.fullmatch(r"snapshot_\d{13}_[0-9a-z]{9}", snapshot.id)
    assert storage.add_history_entry(10).id != entry.id
