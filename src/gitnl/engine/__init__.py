# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""Workflow engine for gitnl.

This module provides the workflow execution engine, the step registry and
the per-run execution context.
"""

from gitnl.engine.context import ExecutionContext, FactSchema, StepServices
from gitnl.engine.plan import PlanProposal, PlanSource, WorkflowPlan
from gitnl.engine.registry import StepRegistry
from gitnl.engine.workflow import (
    RunOutcome,
    RunResult,
    StepRecord,
    StepStatus,
    WorkflowEngine,
)

__all__ = [
    "ExecutionContext",
    "FactSchema",
    "PlanProposal",
    "PlanSource",
    "RunOutcome",
    "RunResult",
    "StepRecord",
    "StepServices",
    "StepStatus",
    "StepRegistry",
    "WorkflowEngine",
    "WorkflowPlan",
]
