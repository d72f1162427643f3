"""Tests for fingerprint vectors."""

import math

from context_optimizer.indexing.fingerprint import FingerprintIndex, HashedFingerprintEncoder
from context_optimizer.models.entities import FileRecord


def _record(path: str) -> FileRecord:
    return FileRecord(path=path, relative_path=path, size=0, tokens=0, last_modified=0.0, extension=".py")


def test_hashed_encoder_is_normalized_and_deterministic() -> None:
    encoder = HashedFingerprintEncoder.get(384)
    first = encoder.encode(["alpha", "beta", "alpha"])
    second = encoder.encode(["alpha", "beta", "alpha"])
    assert len(first) == 384
    assert first == second
    assert abs(math.sqrt(sum(value * value for value in first)) - 1.0) < 1e-9


def test_empty_terms_give_zero_vector() -> None:
    vector = HashedFingerprintEncoder(dim=16).encode([])
    assert vector == [0.0] * 16


def test_fingerprint_index_entries_keep_dimension() -> None:
    index = FingerprintIndex(HashedFingerprintEncoder.get(64))
    entry = index.update(_record("/a.py"), "def load_config(path): return parse(path)")
    empty = index.update(_record("/b.py"), "a b")
    assert len(entry.vector) == 64
    assert abs(sum(value * value for value in entry.vector) - 1.0) < 1e-9
    assert sum(empty.vector) == 0.0
    assert index.size == 2
    assert index.remove("/a.py")
    assert index.get("/a.py") is None
