"""Term-frequency index ("BM25-style" document entries without IDF)."""

from __future__ import annotations

from collections import Counter

from context_optimizer.indexing.store import IndexStore, InMemoryIndexStore
from context_optimizer.models.entities import FileRecord, TermIndexEntry
from context_optimizer.utils.text import index_terms
from context_optimizer.utils.time import now_iso


def term_frequencies(content: str) -> dict[str, int]:
    """Frequency map of lower-cased word tokens longer than two characters."""
    return dict(Counter(index_terms(content)))


class TermIndex:
    """Per-file bag-of-terms frequency tables."""

    def __init__(self, store: IndexStore[TermIndexEntry] | None = None) -> None:
        self.store: IndexStore[TermIndexEntry] = store if store is not None else InMemoryIndexStore()

    @property
    def size(self) -> int:
        return len(self.store)

    def update(self, record: FileRecord, content: str) -> TermIndexEntry:
        entry = TermIndexEntry(terms=term_frequencies(content), metadata=record, indexed_at=now_iso())
        self.store.set(record.path, entry)
        return entry

    def remove(self, path: str) -> bool:
        return self.store.delete(path)

    def get(self, path: str) -> TermIndexEntry | None:
        return self.store.get(path)


__all__ = ["TermIndex", "term_frequencies"]
