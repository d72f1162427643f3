"""Text processing helpers."""

from __future__ import annotations

import math
import re

WORD_RE = re.compile(r"\w+")

CHARS_PER_TOKEN = 4


def tokenize(text: str) -> list[str]:
    """Split text into lower-cased word tokens."""
    return WORD_RE.findall(text.lower())


def index_terms(text: str, min_length: int = 3) -> list[str]:
    """Word tokens long enough to be indexed (longer than two characters)."""
    return [token for token in tokenize(text) if len(token) >= min_length]


def estimate_tokens(text: str) -> int:
    """Approximate token count as ceil(characters / 4)."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)
