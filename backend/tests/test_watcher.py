"""Tests for the filesystem watcher plumbing (the observer thread is not started)."""

from pathlib import Path

from watchdog.events import DirCreatedEvent, FileCreatedEvent, FileDeletedEvent, FileMovedEvent

from context_optimizer.indexing.indexer import DifferentialIndexer
from context_optimizer.indexing.watcher import IndexWatcher, ProjectEventHandler
from context_optimizer.storage.persistent import PersistentStorage


def _handler(root: Path, events: list) -> ProjectEventHandler:
    return ProjectEventHandler(
        root,
        lambda kind, path: events.append((kind, path.relative_to(root).as_posix())),
        ["**/*.{py,ts}"],
        ["**/node_modules/**"],
    )


def test_handler_filters_paths(project_root: Path) -> None:
    events: list = []
    handler = _handler(project_root, events)
    handler.dispatch(FileCreatedEvent(str(project_root / "src" / "app.py")))
    handler.dispatch(FileCreatedEvent(str(project_root / "notes.bin")))
    handler.dispatch(FileCreatedEvent(str(project_root / "node_modules" / "lib" / "x.ts")))
    handler.dispatch(DirCreatedEvent(str(project_root / "src")))
    handler.dispatch(FileDeletedEvent(str(project_root / "main.ts")))
    assert events == [("changed", "src/app.py"), ("deleted", "main.ts")]


def test_handler_ignores_paths_outside_root(project_root: Path, tmp_path: Path) -> None:
    events: list = []
    handler = _handler(project_root, events)
    handler.dispatch(FileCreatedEvent(str(tmp_path / "elsewhere.py")))
    assert events == []


def test_move_is_delete_then_change(project_root: Path) -> None:
    events: list = []
    handler = _handler(project_root, events)
    handler.dispatch(FileMovedEvent(str(project_root / "old.py"), str(project_root / "new.py")))
    assert events == [("deleted", "old.py"), ("changed", "new.py")]


def test_handle_event_updates_index(settings, write_file) -> None:
    indexer = DifferentialIndexer(settings, PersistentStorage(settings.resolved_storage_path))
    watcher = IndexWatcher(indexer)
    path = write_file("src/app.py", "def run():\n    return 1\n")

    watcher.handle_event("changed", path)
    assert indexer.storage.get_file_metadata(str(path)) is not None
    assert indexer.term_index.get(str(path)) is not None

    path.unlink()
    watcher.handle_event("deleted", path)
    assert indexer.storage.get_file_metadata(str(path)) is None
    assert indexer.fingerprint_index.get(str(path)) is None
    watcher.stop()
