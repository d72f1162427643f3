"""Tests for index stores and on-disk index files."""

from pathlib import Path

import orjson
import pytest

from context_optimizer.errors import StorageIOError
from context_optimizer.indexing.store import IndexFiles, InMemoryIndexStore
from context_optimizer.indexing.terms import TermIndex, term_frequencies
from context_optimizer.models.entities import FileRecord


def _record(path: str) -> FileRecord:
    return FileRecord(path=path, relative_path=Path(path).name, size=10, tokens=3, last_modified=1.0, extension=".md")


def test_in_memory_store_basic() -> None:
    store: InMemoryIndexStore[int] = InMemoryIndexStore()
    store.set("a", 1)
    store.set("b", 2)
    assert store.get("a") == 1
    assert list(store) == ["a", "b"]
    assert store.delete("a")
    assert not store.delete("a")
    assert "a" not in store
    assert len(store) == 1


def test_term_frequencies_skip_short_tokens() -> None:
    assert term_frequencies("The cat and the DOG, a dog!") == {"the": 2, "cat": 1, "and": 1, "dog": 2}


def test_index_files_round_trip(tmp_path: Path) -> None:
    terms = TermIndex()
    terms.update(_record("/p/readme.md"), "index index files")
    files = IndexFiles(tmp_path)
    files.save_terms(terms.store)

    payload = orjson.loads(files.term_path.read_bytes())
    assert files.term_path == tmp_path / "search-index" / "bm25-index.json"
    assert payload["version"] == "1.0.0"
    path, document = payload["documents"][0]
    assert path == "/p/readme.md"
    assert ["index", 2] in document["terms"]
    assert "indexedAt" in document

    reloaded = TermIndex()
    assert files.load_terms(reloaded.store) == 1
    assert reloaded.get("/p/readme.md").terms == {"index": 2, "files": 1}


def test_corrupt_index_file_raises_storage_error(tmp_path: Path) -> None:
    files = IndexFiles(tmp_path)
    files.fingerprint_path.parent.mkdir(parents=True)
    files.fingerprint_path.write_text("{not json")
    with pytest.raises(StorageIOError):
        files.load_fingerprints(InMemoryIndexStore())
