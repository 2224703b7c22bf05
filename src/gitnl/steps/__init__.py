# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""Workflow steps and their registration.

Example:
    >>> registry = register_git_steps(StepRegistry())
    >>> registry.ids()[:2]
    ['git-status', 'git-diff-analysis']
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from gitnl.steps.base import FunctionStep, Step
from gitnl.steps.facts import GIT_FACTS, CodeStats, git_fact_schema
from gitnl.steps.git_steps import (
    GitAddStep,
    GitCodeStatsStep,
    GitCommitStep,
    GitDiffAnalysisStep,
    GitPushStep,
    GitStatusStep,
)
from gitnl.steps.merge_steps import (
    GitListBranchesStep,
    GitMergeExecuteStep,
    GitMergePreviewStep,
    GitPushMergeStep,
    GitSwitchBranchStep,
)

if TYPE_CHECKING:
    from gitnl.engine.registry import StepRegistry

GIT_STEP_TYPES: tuple[type[Step], ...] = (
    GitStatusStep,
    GitDiffAnalysisStep,
    GitAddStep,
    GitCommitStep,
    GitPushStep,
    GitCodeStatsStep,
    GitListBranchesStep,
    GitSwitchBranchStep,
    GitMergePreviewStep,
    GitMergeExecuteStep,
    GitPushMergeStep,
)


def register_git_steps(registry: StepRegistry) -> StepRegistry:
    """Register every git step and return the registry."""
    for step_type in GIT_STEP_TYPES:
        registry.register(step_type())
    return registry


__all__ = [
    "GIT_FACTS",
    "GIT_STEP_TYPES",
    "CodeStats",
    "FunctionStep",
    "Step",
    "git_fact_schema",
    "register_git_steps",
]
