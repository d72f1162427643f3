"""Relevance ranking and token-budgeted file selection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping

from context_optimizer.models.entities import FileRecord

DEFAULT_WEIGHT = 0.5
SEARCH_BUDGET_SHARE = 0.6


@dataclass(slots=True)
class RankedFile:
    record: FileRecord
    score: float


def query_words(query: str) -> list[str]:
    return query.lower().split()


def relevance_score(record: FileRecord, words: list[str], weights: Mapping[str, float]) -> float:
    """``(2 * path hits + 1 * matching tags) * importance weight``."""
    path = record.relative_path.lower()
    score = 2.0 * sum(1 for word in words if word in path)
    score += sum(1 for tag in record.tags if any(word in tag.lower() for word in words))
    return score * weights.get(record.importance, DEFAULT_WEIGHT)


def rank_files_by_relevance(
    query: str,
    records: Iterable[FileRecord],
    weights: Mapping[str, float],
) -> list[RankedFile]:
    """Score every record; ties keep the input order."""
    words = query_words(query)
    ranked = [RankedFile(record, relevance_score(record, words, weights)) for record in records]
    ranked.sort(key=lambda item: item.score, reverse=True)
    return ranked


def select_within_budget(ranked: Iterable[RankedFile], token_budget: float, max_files: int) -> list[FileRecord]:
    """Admit files in rank order; a file over the remaining budget is skipped, not deferred."""
    selected: list[FileRecord] = []
    remaining = token_budget
    for item in ranked:
        if remaining <= 0 or len(selected) >= max_files:
            break
        if item.record.tokens <= remaining:
            selected.append(item.record)
            remaining -= item.record.tokens
    return selected


__all__ = [
    "DEFAULT_WEIGHT",
    "RankedFile",
    "SEARCH_BUDGET_SHARE",
    "query_words",
    "rank_files_by_relevance",
    "relevance_score",
    "select_within_budget",
]
