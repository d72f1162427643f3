"""Deterministic term-hash fingerprint vectors."""

from __future__ import annotations

import math
from typing import Protocol, Sequence

from context_optimizer.indexing.store import IndexStore, InMemoryIndexStore
from context_optimizer.models.entities import FileRecord, FingerprintIndexEntry
from context_optimizer.utils.hashing import hash32
from context_optimizer.utils.text import index_terms
from context_optimizer.utils.time import now_iso


class VectorEncoder(Protocol):
    """Turns a sequence of terms into a fixed-length vector."""

    @property
    def dim(self) -> int: ...

    @property
    def backend(self) -> str: ...

    def encode(self, terms: Sequence[str]) -> list[float]: ...


class HashedFingerprintEncoder:
    """Lightweight hashed encoder with deterministic output."""

    _instances: dict[int, "HashedFingerprintEncoder"] = {}

    def __init__(self, dim: int = 384) -> None:
        if dim <= 0:
            raise ValueError("Fingerprint dimension must be positive")
        self._dim = dim
        self._backend = "hashed"

    @classmethod
    def get(cls, dim: int = 384) -> "HashedFingerprintEncoder":
        if dim not in cls._instances:
            cls._instances[dim] = HashedFingerprintEncoder(dim=dim)
        return cls._instances[dim]

    @property
    def dim(self) -> int:
        return self._dim

    @property
    def backend(self) -> str:
        return self._backend

    def encode(self, terms: Sequence[str]) -> list[float]:
        vector = [0.0] * self._dim
        for term in terms:
            vector[hash32(term) % self._dim] += 1.0
        _normalize(vector)
        return vector


class FingerprintIndex:
    """Per-file fingerprint vectors behind a swappable encoder."""

    def __init__(
        self,
        encoder: VectorEncoder | None = None,
        store: IndexStore[FingerprintIndexEntry] | None = None,
    ) -> None:
        self.encoder: VectorEncoder = encoder or HashedFingerprintEncoder.get()
        self.store: IndexStore[FingerprintIndexEntry] = store if store is not None else InMemoryIndexStore()

    @property
    def dim(self) -> int:
        return self.encoder.dim

    @property
    def size(self) -> int:
        return len(self.store)

    def update(self, record: FileRecord, content: str) -> FingerprintIndexEntry:
        vector = self.encoder.encode(index_terms(content))
        if len(vector) != self.encoder.dim:
            raise ValueError("Vector dimension mismatch")
        entry = FingerprintIndexEntry(vector=vector, metadata=record, indexed_at=now_iso())
        self.store.set(record.path, entry)
        return entry

    def remove(self, path: str) -> bool:
        return self.store.delete(path)

    def get(self, path: str) -> FingerprintIndexEntry | None:
        return self.store.get(path)


def _normalize(vector: list[float]) -> None:
    norm = math.sqrt(sum(value * value for value in vector))
    if norm == 0:
        return
    inv = 1.0 / norm
    for idx, value in enumerate(vector):
        vector[idx] = value * inv


__all__ = ["FingerprintIndex", "HashedFingerprintEncoder", "VectorEncoder"]
