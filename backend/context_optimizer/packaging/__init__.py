"""Relevance ranking and context package assembly."""

from .packager import (
    CodeSnippet,
    ContextPackage,
    PackageMetadata,
    PackageOptions,
    PromptPackager,
    estimate_package_tokens,
)
from .ranking import rank_files_by_relevance, relevance_score, select_within_budget

__all__ = [
    "CodeSnippet",
    "ContextPackage",
    "PackageMetadata",
    "PackageOptions",
    "PromptPackager",
    "estimate_package_tokens",
    "rank_files_by_relevance",
    "relevance_score",
    "select_within_budget",
]
