"""Incremental code indexing, compression and context packaging."""

__version__ = "0.1.0"
