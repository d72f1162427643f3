"""Exception taxonomy shared by indexing, compression and storage."""

from __future__ import annotations

from pathlib import Path


class ContextOptimizerError(Exception):
    """Base class for errors raised by the optimizer core."""


class FileAccessError(ContextOptimizerError):
    """A file or directory is missing or unreadable."""

    def __init__(self, path: Path | str, detail: str | None = None) -> None:
        self.path = Path(path)
        message = f"Cannot access {self.path}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ParseError(ContextOptimizerError):
    """Source text could not be parsed into a syntax tree."""


class SizeLimitExceeded(ContextOptimizerError):
    """A file is larger than the configured maximum."""

    def __init__(self, path: Path | str, size: int, limit: int) -> None:
        self.path = Path(path)
        self.size = size
        self.limit = limit
        super().__init__(f"{self.path} is {size} bytes (limit {limit})")


class StorageIOError(ContextOptimizerError):
    """Persisted index data could not be read or written."""


__all__ = [
    "ContextOptimizerError",
    "FileAccessError",
    "ParseError",
    "SizeLimitExceeded",
    "StorageIOError",
]
