"""Identifiers for history entries and snapshots."""

from __future__ import annotations

import secrets
import string
import time

_ALPHABET = string.digits + string.ascii_lowercase
SUFFIX_LENGTH = 9


def new_id(kind: str) -> str:
    """``<kind>_<epoch millis>_<9 base-36 chars>``, sortable by creation time within a kind."""
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(SUFFIX_LENGTH))
    return f"{kind}_{time.time_ns() // 1_000_000}_{suffix}"
