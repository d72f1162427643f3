"""Index store abstraction and the on-disk term/fingerprint index files."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Generic, Iterator, Mapping, Protocol, TypeVar

import orjson

from context_optimizer.errors import StorageIOError
from context_optimizer.models.entities import FingerprintIndexEntry, TermIndexEntry
from context_optimizer.utils.time import now_iso

T = TypeVar("T")

INDEX_FORMAT_VERSION = "1.0.0"
TERM_INDEX_FILE = Path("search-index") / "bm25-index.json"
FINGERPRINT_INDEX_FILE = Path("vector-index") / "vector-index.json"


class IndexStore(Protocol[T]):
    """Keyed store for per-file index entries."""

    def get(self, key: str) -> T | None: ...

    def set(self, key: str, value: T) -> None: ...

    def delete(self, key: str) -> bool: ...

    def items(self) -> Iterator[tuple[str, T]]: ...

    def clear(self) -> None: ...

    def __iter__(self) -> Iterator[str]: ...

    def __len__(self) -> int: ...

    def __contains__(self, key: object) -> bool: ...


class InMemoryIndexStore(Generic[T]):
    """Dictionary-backed store preserving insertion order."""

    def __init__(self, entries: Mapping[str, T] | None = None) -> None:
        self._entries: dict[str, T] = dict(entries or {})

    @property
    def size(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> T | None:
        return self._entries.get(key)

    def set(self, key: str, value: T) -> None:
        self._entries[key] = value

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def items(self) -> Iterator[tuple[str, T]]:
        return iter(list(self._entries.items()))

    def values(self) -> Iterator[T]:
        return iter(list(self._entries.values()))

    def clear(self) -> None:
        self._entries.clear()

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries


class IndexFiles:
    """Reads and writes ``bm25-index.json`` and ``vector-index.json``.

    Files are overwritten in place; a crash mid-write can leave a truncated
    file, which is reported as ``StorageIOError`` on the next load.
    """

    def __init__(self, root: Path) -> None:
        self.root = root

    @property
    def term_path(self) -> Path:
        return self.root / TERM_INDEX_FILE

    @property
    def fingerprint_path(self) -> Path:
        return self.root / FINGERPRINT_INDEX_FILE

    def load_terms(self, store: IndexStore[TermIndexEntry]) -> int:
        return _load(self.term_path, "documents", TermIndexEntry.from_payload, store)

    def load_fingerprints(self, store: IndexStore[FingerprintIndexEntry]) -> int:
        return _load(self.fingerprint_path, "vectors", FingerprintIndexEntry.from_payload, store)

    def save_terms(self, store: IndexStore[TermIndexEntry]) -> None:
        documents = [[path, entry.to_payload()] for path, entry in store.items()]
        _write(self.term_path, {"documents": documents, "lastUpdate": now_iso(), "version": INDEX_FORMAT_VERSION})

    def save_fingerprints(self, store: IndexStore[FingerprintIndexEntry]) -> None:
        vectors = [[path, entry.to_payload()] for path, entry in store.items()]
        _write(self.fingerprint_path, {"vectors": vectors, "lastUpdate": now_iso(), "version": INDEX_FORMAT_VERSION})


def _load(path: Path, key: str, build: Callable[[dict], T], store: IndexStore[T]) -> int:
    if not path.exists():
        return 0
    try:
        payload = orjson.loads(path.read_bytes())
        entries = [(item_path, build(item)) for item_path, item in payload.get(key, [])]
    except (OSError, orjson.JSONDecodeError, AttributeError, KeyError, TypeError, ValueError) as exc:
        raise StorageIOError(f"Failed to load {path}: {exc}") from exc
    for item_path, entry in entries:
        store.set(item_path, entry)
    return len(entries)


def _write(path: Path, payload: dict) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(orjson.dumps(payload, option=orjson.OPT_INDENT_2))
    except (OSError, TypeError) as exc:
        raise StorageIOError(f"Failed to write {path}: {exc}") from exc


__all__ = ["IndexFiles", "IndexStore", "InMemoryIndexStore"]
