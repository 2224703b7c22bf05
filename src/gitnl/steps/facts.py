# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""Typed facts the git steps exchange through the execution context."""

from __future__ import annotations

from pydantic import BaseModel, Field

from gitnl.engine.context import FactSchema


class FileStat(BaseModel):
    """Added and deleted line counts of one file."""

    file: str
    added: int = 0
    deleted: int = 0

    @property
    def changed(self) -> int:
        return self.added + self.deleted


class LineCounts(BaseModel):
    """Aggregated added and deleted line counts."""

    added: int = 0
    deleted: int = 0

    @property
    def net(self) -> int:
        return self.added - self.deleted


class CodeStats(BaseModel):
    """Line statistics of the working tree and the index."""

    totals: LineCounts = Field(default_factory=LineCounts)
    by_extension: dict[str, LineCounts] = Field(default_factory=dict)
    staged: list[FileStat] = Field(default_factory=list)
    unstaged: list[FileStat] = Field(default_factory=list)

    @property
    def all_stats(self) -> list[FileStat]:
        """Staged entries followed by unstaged ones."""
        return [*self.staged, *self.unstaged]


# Fact name -> type. Every fact a git step writes is declared here.
GIT_FACTS: dict[str, object] = {
    "status_output": str,
    "has_changes": bool,
    "changed_files": list[str],
    "diff_content": str,
    "suggested_commit_message": str,
    "final_commit_message": str,
    "files_added": bool,
    "cancel_operation": bool,
    "should_push": bool,
    "code_stats": CodeStats,
    "current_branch": str,
    "branches": list[str],
    "has_branches": bool,
    "source_branch": str,
    "target_branch": str,
    "need_branch_switch": bool,
    "has_stash": bool,
    "cancel_branch_switch": bool,
    "has_changes_to_merge": bool,
    "cancel_merge": bool,
    "manual_conflict_resolution": bool,
}


def git_fact_schema() -> FactSchema:
    """Return a fresh schema declaring every git fact."""
    return FactSchema(GIT_FACTS)
