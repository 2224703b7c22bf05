# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""Workflow execution engine for gitnl.

This module provides the WorkflowEngine class that turns a resolved plan
into a supervised, step-by-step run with skip logic, user decisions before
each step and after each failure, and a shared execution context.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape

from gitnl.engine.context import ExecutionContext, FactSchema, StepServices
from gitnl.engine.plan import PlanProposal, WorkflowPlan
from gitnl.gates.human import FailureDecision, HumanDecisionHandler, StepDecision

if TYPE_CHECKING:
    from gitnl.engine.plan import PlanSource
    from gitnl.engine.registry import StepRegistry
    from gitnl.steps.base import Step

logger = logging.getLogger(__name__)


def _verbose_log(message: str, style: str = "dim") -> None:
    """Lazy import wrapper for verbose_log to avoid circular imports."""
    from gitnl.cli.run import verbose_log

    verbose_log(message, style)


def _verbose_log_timing(operation: str, elapsed: float) -> None:
    """Lazy import wrapper for verbose_log_timing to avoid circular imports."""
    from gitnl.cli.run import verbose_log_timing

    verbose_log_timing(operation, elapsed)


class RunOutcome(str, Enum):
    """Terminal outcome of a run."""

    COMPLETED = "completed"
    USER_ABORTED = "user_aborted"
    ABORTED = "aborted"
    NO_PLAN = "no_plan"


class StepStatus(str, Enum):
    """Per-step state.

    PENDING -> SKIPPED | RUNNING; RUNNING -> COMPLETED | FAILED;
    FAILED -> FAILED_CONTINUE | ABORTED. Steps never reached end as NOT_RUN.
    """

    PENDING = "pending"
    RUNNING = "running"
    SKIPPED = "skipped"
    COMPLETED = "completed"
    FAILED = "failed"
    FAILED_CONTINUE = "failed_continue"
    ABORTED = "aborted"
    NOT_RUN = "not_run"


EXIT_CODES = {
    RunOutcome.COMPLETED: 0,
    RunOutcome.USER_ABORTED: 0,
    RunOutcome.ABORTED: 1,
    RunOutcome.NO_PLAN: 2,
}


@dataclass
class StepRecord:
    """What happened to one planned step."""

    step_id: str
    name: str
    status: StepStatus = StepStatus.PENDING
    error: str | None = None


@dataclass
class RunResult:
    """Result of one run of the engine."""

    outcome: RunOutcome
    """Terminal outcome."""

    summary: str
    """Plan summary shown before execution."""

    records: list[StepRecord] = field(default_factory=list)
    """One record per planned step, in plan order."""

    context: ExecutionContext | None = None
    """The run's context, for inspection after the run."""

    def status_of(self, step_id: str) -> StepStatus | None:
        """Return the final status of ``step_id``, or None if it was not planned."""
        for record in self.records:
            if record.step_id == step_id:
                return record.status
        return None

    @property
    def exit_code(self) -> int:
        """Process exit code for this outcome."""
        return EXIT_CODES[self.outcome]


class WorkflowEngine:
    """Drives one interactive workflow run at a time.

    The engine:
    1. Asks the plan source for step ids and resolves them against the registry
    2. Runs the steps strictly in order, skipping those whose predicate holds
    3. Asks continue / skip / exit before each step that needs confirmation
    4. Turns a step failure into a continue / exit decision

    Example:
        >>> registry = register_git_steps(StepRegistry())
        >>> engine = WorkflowEngine(registry, PlanResolver(config, registry.catalog()))
        >>> result = await engine.process_input("commit my changes")
        >>> result.outcome
        <RunOutcome.COMPLETED: 'completed'>
    """

    def __init__(
        self,
        registry: StepRegistry,
        planner: PlanSource,
        decisions: HumanDecisionHandler | None = None,
        services: StepServices | None = None,
        schema: FactSchema | None = None,
        console: Console | None = None,
    ) -> None:
        """Initialize the WorkflowEngine.

        Args:
            registry: Steps plans are resolved against.
            planner: Source of plan proposals.
            decisions: Pre-step and post-failure decision handler.
            services: Collaborators handed to every step through the context.
            schema: Declared context fact types.
            console: Rich console for step headers.
        """
        self.registry = registry
        self.planner = planner
        self.console = console or (services.console if services else None) or Console()
        self.decisions = decisions or HumanDecisionHandler(console=self.console)
        self.services = services or StepServices(console=self.console)
        self.schema = schema or FactSchema()

    async def process_input(self, raw_input: str) -> RunResult:
        """Resolve a plan for ``raw_input`` and run it.

        Args:
            raw_input: The user's request.

        Returns:
            The RunResult of the run.
        """
        plan = await self.resolve_plan(raw_input)
        return await self.execute(plan, raw_input)

    async def resolve_plan(self, raw_input: str) -> WorkflowPlan:
        """Ask the planner for step ids and resolve them against the registry.

        Unknown ids are dropped with a log note and duplicates keep their
        first position. A planner failure yields an empty plan.
        """
        _start = time.time()
        try:
            proposal = await self.planner.propose(raw_input)
        except Exception as e:
            logger.warning("Plan resolution failed, treating as empty plan: %s", e)
            proposal = PlanProposal(steps=[], summary="")
        _verbose_log_timing("Plan resolution", time.time() - _start)

        steps: list[Step] = []
        seen: set[str] = set()
        dropped: list[str] = []
        for step_id in proposal.steps:
            if step_id in seen:
                logger.debug("Dropping duplicate step id '%s' from plan", step_id)
                continue
            seen.add(step_id)
            step = self.registry.lookup(step_id)
            if step is None:
                logger.info("Dropping unknown step id '%s' from plan", step_id)
                dropped.append(step_id)
                continue
            steps.append(step)

        _verbose_log(f"Plan: {[step.id for step in steps]}")
        if proposal.reasoning:
            _verbose_log(f"Reasoning: {proposal.reasoning}")
        return WorkflowPlan(steps=tuple(steps), summary=proposal.summary, dropped=tuple(dropped))

    async def execute(self, plan: WorkflowPlan, raw_input: str = "") -> RunResult:
        """Run an already resolved plan.

        Raises:
            ConfigurationError: If a planned step writes an undeclared fact.
        """
        if plan.is_empty:
            self.console.print("[yellow]No runnable steps for this request.[/yellow]")
            return RunResult(
                outcome=RunOutcome.NO_PLAN,
                summary=plan.summary,
                context=ExecutionContext(original_input=raw_input, steps=(), schema=self.schema),
            )

        self.schema.check_plan(plan.steps)

        if plan.summary:
            self.console.print(f"\n[bold]Plan:[/bold] {escape(plan.summary)}")

        context = ExecutionContext(
            original_input=raw_input,
            steps=plan.steps,
            schema=self.schema,
            services=self.services,
        )
        records = [StepRecord(step_id=step.id, name=step.name) for step in plan.steps]
        total = len(plan.steps)

        def finish(outcome: RunOutcome) -> RunResult:
            for record in records:
                if record.status is StepStatus.PENDING:
                    record.status = StepStatus.NOT_RUN
            return RunResult(
                outcome=outcome,
                summary=plan.summary,
                records=records,
                context=context,
            )

        for index, step in enumerate(plan.steps):
            context.cursor = index
            record = records[index]

            try:
                skip = await step.should_skip(context)
            except Exception as e:
                logger.debug("Skip check of '%s' raised: %s", step.id, e)
                if await self._handle_failure(step, record, e) is FailureDecision.EXIT_ON_ERROR:
                    return finish(RunOutcome.ABORTED)
                continue

            if skip:
                record.status = StepStatus.SKIPPED
                _verbose_log(f"Skipping '{step.id}': skip condition met")
                continue

            self.console.print(
                f"\n[bold blue][{index + 1}/{total}] {escape(step.name)}[/bold blue]"
            )

            if step.requires_confirmation:
                decision = await self.decisions.decide_step(step, index, total)
                if decision is StepDecision.SKIP:
                    record.status = StepStatus.SKIPPED
                    continue
                if decision is StepDecision.EXIT:
                    self.console.print("[yellow]Workflow ended by user.[/yellow]")
                    return finish(RunOutcome.USER_ABORTED)

            record.status = StepStatus.RUNNING
            _start = time.time()
            try:
                await step.run(context)
            except Exception as e:
                _verbose_log_timing(f"Step '{step.id}' (failed)", time.time() - _start)
                if await self._handle_failure(step, record, e) is FailureDecision.EXIT_ON_ERROR:
                    return finish(RunOutcome.ABORTED)
                continue

            _verbose_log_timing(f"Step '{step.id}'", time.time() - _start)
            record.status = StepStatus.COMPLETED

        context.cursor = total
        return finish(RunOutcome.COMPLETED)

    async def _handle_failure(
        self,
        step: Step,
        record: StepRecord,
        error: Exception,
    ) -> FailureDecision:
        logger.info("Step '%s' failed: %s", step.id, error)
        record.status = StepStatus.FAILED
        record.error = getattr(error, "message", None) or str(error) or type(error).__name__

        decision = await self.decisions.decide_failure(step, error)
        if decision is FailureDecision.CONTINUE_AFTER_ERROR:
            record.status = StepStatus.FAILED_CONTINUE
        else:
            record.status = StepStatus.ABORTED
            self.console.print("[red]Workflow aborted.[/red]")
        return decision

    def describe_steps(self) -> dict[str, list[Step]]:
        """Group registered steps for help output."""
        groups: dict[str, list[Step]] = {"git": [], "other": []}
        for step in self.registry:
            groups["git" if step.id.startswith("git-") else "other"].append(step)
        return groups
