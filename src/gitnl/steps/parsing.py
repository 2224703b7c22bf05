# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""Parsers for git command output."""

from __future__ import annotations

import re
from collections.abc import Iterable

from gitnl.steps.facts import CodeStats, FileStat, LineCounts

CHANGED_FILE_PREFIXES = ("modified:", "new file:", "deleted:", "修改:", "新文件:", "删除:")
CLEAN_TREE_MARKERS = ("nothing to commit", "没有可提交的内容")
EXTENSION_PATTERN = re.compile(r"\.([^./\\]+)$")

NAME_STATUS_LABELS = {
    "A": "added",
    "D": "deleted",
    "M": "modified",
    "R": "renamed",
}


def is_clean_tree(status_output: str) -> bool:
    """Return True when ``git status`` reports nothing to commit."""
    return any(marker in status_output for marker in CLEAN_TREE_MARKERS)


def extract_changed_files(status_output: str) -> list[str]:
    """Return the paths listed after ``modified:``, ``new file:`` or ``deleted:``.

    Example:
        >>> extract_changed_files("\\tmodified:   src/app.py\\n\\tnew file:   a.ts")
        ['src/app.py', 'a.ts']
    """
    files: list[str] = []
    for line in status_output.splitlines():
        stripped = line.strip()
        if stripped.startswith(CHANGED_FILE_PREFIXES):
            path = stripped.split(":", 1)[1].strip()
            if path:
                files.append(path)
    return files


def parse_numstat(output: str) -> list[FileStat]:
    """Parse ``git diff --numstat`` output.

    Binary files report ``-`` counts, which are taken as zero.
    """
    stats: list[FileStat] = []
    for line in output.splitlines():
        parts = line.split()
        if len(parts) < 3:
            continue
        added = 0 if parts[0] == "-" else _to_int(parts[0])
        deleted = 0 if parts[1] == "-" else _to_int(parts[1])
        stats.append(FileStat(file=" ".join(parts[2:]), added=added, deleted=deleted))
    return stats


def _to_int(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        return 0


def file_extension(path: str) -> str:
    """Return the lowercased extension of ``path`` without the dot, or ''."""
    match = EXTENSION_PATTERN.search(path)
    return match.group(1).lower() if match else ""


def build_code_stats(staged: list[FileStat], unstaged: list[FileStat]) -> CodeStats:
    """Aggregate per-file stats into totals and per-extension counts."""
    totals = LineCounts()
    by_extension: dict[str, LineCounts] = {}
    for stat in [*staged, *unstaged]:
        totals.added += stat.added
        totals.deleted += stat.deleted
        bucket = by_extension.setdefault(file_extension(stat.file), LineCounts())
        bucket.added += stat.added
        bucket.deleted += stat.deleted
    return CodeStats(totals=totals, by_extension=by_extension, staged=staged, unstaged=unstaged)


def top_files(stats: Iterable[FileStat], limit: int = 5) -> list[FileStat]:
    """Return the ``limit`` files with the most changed lines."""
    return sorted(stats, key=lambda stat: stat.changed, reverse=True)[:limit]


def parse_branches(output: str, exclude: str | None = None) -> list[str]:
    """Parse ``git branch`` output, dropping the ``*`` marker and ``exclude``."""
    branches: list[str] = []
    for line in output.splitlines():
        name = line.strip()
        if name.startswith("*"):
            name = name[1:].strip()
        if name and name != exclude:
            branches.append(name)
    return branches


def parse_remotes(output: str) -> list[str]:
    """Parse ``git remote`` output."""
    return [line.strip() for line in output.splitlines() if line.strip()]


def describe_name_status(output: str) -> list[str]:
    """Render ``git diff --name-status`` lines as ``<label>: <path>``."""
    lines: list[str] = []
    for line in output.splitlines():
        parts = line.split()
        if not parts:
            continue
        status, path = parts[0], " ".join(parts[1:])
        label = NAME_STATUS_LABELS.get(status[:1], "modified")
        lines.append(f"{label}: {path}")
    return lines
