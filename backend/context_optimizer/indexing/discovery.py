"""File discovery and version-control change signals."""

from __future__ import annotations

import fnmatch
import os
import subprocess
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Sequence

from context_optimizer.core.logging import get_logger
from context_optimizer.errors import FileAccessError

logger = get_logger(__name__)


def expand_patterns(patterns: Iterable[str]) -> list[str]:
    """Expand ``{a,b}`` alternatives into plain glob patterns."""
    expanded: list[str] = []
    pending = [pattern.strip() for pattern in patterns if pattern and pattern.strip()]
    while pending:
        pattern = pending.pop(0)
        start = pattern.find("{")
        end = pattern.find("}", start + 1)
        if start == -1 or end == -1:
            expanded.append(pattern)
            continue
        prefix, suffix = pattern[:start], pattern[end + 1 :]
        options = pattern[start + 1 : end].split(",")
        pending[0:0] = [f"{prefix}{option.strip()}{suffix}" for option in options]
    return expanded


@lru_cache(maxsize=512)
def pattern_variants(pattern: str) -> tuple[str, ...]:
    """``pattern`` plus every form where a ``**/`` segment matches zero directories."""
    seen = {pattern}
    pending = [pattern]
    while pending:
        current = pending.pop()
        candidates = [current[3:]] if current.startswith("**/") else []
        index = current.find("/**/")
        while index != -1:
            candidates.append(current[:index] + current[index + 3 :])
            index = current.find("/**/", index + 1)
        for candidate in candidates:
            if candidate not in seen:
                seen.add(candidate)
                pending.append(candidate)
    return tuple(sorted(seen, key=lambda variant: (-len(variant), variant)))


def matches_any(relative_path: str, patterns: Sequence[str]) -> bool:
    """Glob-match a POSIX relative path, letting each ``**/`` also match no directory."""
    return any(
        fnmatch.fnmatchcase(relative_path, variant)
        for pattern in patterns
        for variant in pattern_variants(pattern)
    )


def discover_files(
    root: Path,
    patterns: Sequence[str],
    exclude_patterns: Sequence[str],
    max_file_size: int,
) -> list[Path]:
    """Return absolute paths under ``root`` selected by the include/exclude globs.

    Files that cannot be stat'ed or exceed ``max_file_size`` are left out.
    Raises ``FileAccessError`` when ``root`` is not a readable directory.
    """
    if not root.is_dir():
        raise FileAccessError(root, "project root is not a directory")
    root = root.resolve()
    include = expand_patterns(patterns)
    exclude = expand_patterns(exclude_patterns)
    found: set[Path] = set()

    def _on_error(exc: OSError) -> None:
        if Path(exc.filename or "") == root:
            raise FileAccessError(root, str(exc)) from exc
        logger.debug("Skipping unreadable directory %s: %s", exc.filename, exc)

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        current = Path(dirpath)
        rel_dir = current.relative_to(root).as_posix()
        prefix = "" if rel_dir == "." else f"{rel_dir}/"
        dirnames[:] = sorted(d for d in dirnames if not matches_any(f"{prefix}{d}/", exclude))
        for filename in filenames:
            rel_path = f"{prefix}{filename}"
            if not matches_any(rel_path, include) or matches_any(rel_path, exclude):
                continue
            file_path = current / filename
            try:
                if file_path.stat().st_size > max_file_size:
                    continue
            except OSError:
                continue
            found.add(file_path.resolve())
    return sorted(found)


def git_head(root: Path) -> str | None:
    """Current HEAD commit hash, or None outside a repository."""
    try:
        result = subprocess.run(
            ["git", "-C", str(root), "rev-parse", "HEAD"],
            capture_output=True,
            text=True,
            check=True,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        logger.warning("Git HEAD lookup failed: %s", exc)
        return None
    return result.stdout.strip() or None


def git_commit_files(root: Path, commit: str) -> list[Path]:
    """Absolute paths of the files touched by ``commit``."""
    try:
        result = subprocess.run(
            ["git", "-C", str(root), "diff-tree", "--no-commit-id", "--name-only", "-r", commit],
            capture_output=True,
            text=True,
            check=True,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        logger.warning("Git change detection failed: %s", exc)
        return []
    files = [(root / line.strip()).resolve() for line in result.stdout.splitlines() if line.strip()]
    logger.info("Git detected %s changed files", len(files))
    return files


__all__ = [
    "discover_files",
    "expand_patterns",
    "git_commit_files",
    "git_head",
    "matches_any",
    "pattern_variants",
]
