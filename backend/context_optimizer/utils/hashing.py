"""Hashing utilities."""

from __future__ import annotations

import hashlib


def hash32(token: str) -> int:
    """Return a stable unsigned 32-bit hash of a token."""
    digest = hashlib.blake2b(token.encode("utf-8"), digest_size=4).digest()
    return int.from_bytes(digest, "big")
