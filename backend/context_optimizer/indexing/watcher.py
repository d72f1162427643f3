"""Filesystem watcher that feeds changes into the differential indexer."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable, Sequence

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from context_optimizer.core.logging import get_logger
from context_optimizer.indexing.discovery import expand_patterns, matches_any
from context_optimizer.indexing.indexer import DifferentialIndexer

logger = get_logger(__name__)

FileEventCallback = Callable[[str, Path], None]


class ProjectEventHandler(FileSystemEventHandler):
    """Filter events through the include/exclude globs and forward them."""

    def __init__(
        self,
        root: Path,
        callback: FileEventCallback,
        include: Sequence[str],
        exclude: Sequence[str],
    ) -> None:
        super().__init__()
        self.root = root
        self.callback = callback
        self.include = expand_patterns(include)
        self.exclude = expand_patterns(exclude)

    def wants(self, path: Path) -> bool:
        try:
            relative = path.resolve().relative_to(self.root).as_posix()
        except ValueError:
            return False
        return matches_any(relative, self.include) and not matches_any(relative, self.exclude)

    def on_created(self, event: FileSystemEvent) -> None:
        self._dispatch("changed", event.src_path, event)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._dispatch("changed", event.src_path, event)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._dispatch("deleted", event.src_path, event)
        self._dispatch("changed", event.dest_path, event)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._dispatch("deleted", event.src_path, event)

    def _dispatch(self, kind: str, raw_path: str | bytes, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        path = Path(raw_path.decode() if isinstance(raw_path, bytes) else raw_path)
        if self.wants(path):
            self.callback(kind, path)


class IndexWatcher:
    """Watch the project root and keep the index current."""

    def __init__(self, indexer: DifferentialIndexer) -> None:
        self.indexer = indexer
        self._observer: BaseObserver = Observer()
        self._lock = threading.Lock()
        self._started = False
        settings = indexer.settings
        self.handler = ProjectEventHandler(
            indexer.project_root,
            self.handle_event,
            settings.file_patterns,
            settings.exclude_patterns,
        )

    def handle_event(self, kind: str, path: Path) -> None:
        if kind == "deleted":
            if self.indexer.forget_files([path]):
                logger.info("Removed %s from index", path)
            return
        stats = self.indexer.update_files([path])
        logger.info("Re-indexed %s (indexed=%s, skipped=%s)", path, stats.indexed, stats.skipped)

    def start(self) -> None:
        with self._lock:
            if self._started:
                return
            self._observer.schedule(self.handler, str(self.indexer.project_root), recursive=True)
            self._observer.start()
            self._started = True
        logger.info("Watching %s for changes", self.indexer.project_root)

    def stop(self) -> None:
        with self._lock:
            if not self._started:
                return
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer.unschedule_all()
            self._started = False


__all__ = ["FileEventCallback", "IndexWatcher", "ProjectEventHandler"]
