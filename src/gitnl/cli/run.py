# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""Implementation of the interactive workflow and helper commands.

This module wires the engine, steps, gates and model-backed helpers
together for one CLI invocation and renders plans and run summaries.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from gitnl.analysis import AnalysisResult, IssueSeverity, ScanOptions, analyze_codebase
from gitnl.config.loader import load_config
from gitnl.config.schema import AppConfig
from gitnl.engine.context import StepServices
from gitnl.engine.plan import WorkflowPlan
from gitnl.engine.registry import StepRegistry
from gitnl.engine.workflow import RunOutcome, RunResult, StepStatus, WorkflowEngine
from gitnl.gates.human import FAILURE_OPTIONS, STEP_OPTIONS, HumanDecisionHandler, Prompter
from gitnl.gates.risk import CommandGate
from gitnl.git.executor import GitRunner
from gitnl.nlp.commit_message import CommitMessageGenerator
from gitnl.nlp.planner import PlanResolver
from gitnl.providers.claude import ClaudeClient
from gitnl.risk.classifier import RiskClassifier
from gitnl.steps import git_fact_schema, register_git_steps

# stderr console for --verbose output
_verbose_console = Console(stderr=True, highlight=False)

EXAMPLE_REQUESTS: tuple[tuple[str, str], ...] = (
    ("gt commit my changes", "status, diff analysis, stage and commit"),
    ("gt commit and push", "the commit flow followed by a push"),
    ("gt show code stats", "status and changed-line statistics"),
    ("gt merge feature into main", "pick branches, preview, merge and push"),
    ("gt status", "repository status only"),
    ("gt 提交并推送", "commit and push (Chinese keywords are understood)"),
    ("gt interactive --dry-run commit my work", "show the plan without running it"),
    ("gt scan -s -p src", "look for security issues under src/"),
)

STATUS_STYLES = {
    StepStatus.COMPLETED: "green",
    StepStatus.SKIPPED: "dim",
    StepStatus.FAILED_CONTINUE: "yellow",
    StepStatus.FAILED: "red",
    StepStatus.ABORTED: "red",
    StepStatus.NOT_RUN: "dim",
    StepStatus.PENDING: "dim",
    StepStatus.RUNNING: "cyan",
}

OUTCOME_MESSAGES = {
    RunOutcome.COMPLETED: "[green]Workflow completed[/green]",
    RunOutcome.USER_ABORTED: "[yellow]Workflow ended by user[/yellow]",
    RunOutcome.ABORTED: "[red]Workflow aborted after a failed step[/red]",
    RunOutcome.NO_PLAN: "[yellow]No steps matched this request[/yellow]",
}

SEVERITY_STYLES = {
    IssueSeverity.HIGH: "red",
    IssueSeverity.MEDIUM: "yellow",
    IssueSeverity.LOW: "cyan",
    IssueSeverity.INFO: "dim",
}


def verbose_log(message: str, style: str = "dim") -> None:
    """Print ``message`` to stderr when ``--verbose`` is on."""
    from gitnl.cli.app import is_verbose

    if is_verbose():
        _verbose_console.print(f"[{style}]{escape(message)}[/{style}]")


def verbose_log_section(title: str, content: str, truncate: bool = True) -> None:
    """Print a titled block (a diff, a model prompt) when ``--verbose`` is on.

    Blocks longer than 500 characters are cut unless ``truncate`` is False
    or full output is enabled.
    """
    from gitnl.cli.app import is_full, is_verbose

    if not is_verbose():
        return
    shown = content
    if truncate and not is_full() and len(content) > 500:
        shown = content[:500] + "\n... [truncated]"
    _verbose_console.print(Panel(escape(shown), title=f"[cyan]{title}[/cyan]", border_style="dim"))


def verbose_log_timing(operation: str, elapsed: float) -> None:
    """Print how long ``operation`` took, in seconds, when ``--verbose`` is on."""
    from gitnl.cli.app import is_verbose

    if is_verbose():
        _verbose_console.print(f"[dim]⏱ {escape(operation)}: {elapsed:.2f}s[/dim]")


@dataclass
class Session:
    """Everything one CLI invocation builds."""

    config: AppConfig
    engine: WorkflowEngine
    client: ClaudeClient | None = None

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()


def build_session(
    config: AppConfig,
    console: Console | None = None,
    assume_yes: bool = False,
) -> Session:
    """Wire registry, gates, model helpers and engine for one run.

    Args:
        config: Loaded application config.
        console: Console for user-facing output.
        assume_yes: Answer prompts with their defaults.
    """
    console = console or Console()
    assume_yes = assume_yes or config.workflow.assume_yes

    client = ClaudeClient(config.model) if config.model.enabled else None
    verbose_log(f"Model: {config.model.model if client else 'disabled (local rules)'}")

    registry = register_git_steps(StepRegistry())
    gate = CommandGate(
        RiskClassifier(config, client=client),
        console=console,
        assume_yes=assume_yes,
    )
    services = StepServices(
        console=console,
        prompter=Prompter(console=console, assume_yes=assume_yes),
        git=GitRunner(gate=gate),
        messages=CommitMessageGenerator(config, client=client),
        default_remote=config.workflow.default_remote,
    )
    engine = WorkflowEngine(
        registry,
        PlanResolver(config, registry.catalog(), client=client),
        decisions=HumanDecisionHandler(console=console, assume_yes=assume_yes),
        services=services,
        schema=git_fact_schema(),
        console=console,
    )
    return Session(config=config, engine=engine, client=client)


async def run_interactive_async(
    text: str,
    config_path: Path | None = None,
    assume_yes: bool = False,
    dry_run: bool = False,
    console: Console | None = None,
) -> int:
    """Run (or preview) the workflow for ``text`` and return the exit code.

    Raises:
        GitNLError: If the configuration cannot be loaded.
    """
    console = console or Console()
    start_time = time.time()

    load_start = time.time()
    config = load_config(config_path)
    verbose_log_timing("Configuration loaded", time.time() - load_start)
    verbose_log(f"Request: {text}")

    session = build_session(config, console=console, assume_yes=assume_yes)
    try:
        if dry_run:
            plan = await session.engine.resolve_plan(text)
            display_plan(plan, console)
            return 0 if not plan.is_empty else 2

        result = await session.engine.process_input(text)
        display_run_summary(result, console)
        verbose_log_timing("Total workflow execution", time.time() - start_time)
        return result.exit_code
    finally:
        await session.close()


def display_plan(plan: WorkflowPlan, console: Console | None = None) -> None:
    """Display a resolved plan without running it."""
    output_console = console if console is not None else Console()

    output_console.print(
        Panel(
            escape(plan.summary) or "[dim]no summary[/dim]",
            title="[cyan]Workflow Plan (Dry Run)[/cyan]",
        )
    )
    if plan.is_empty:
        output_console.print("[yellow]No runnable steps for this request.[/yellow]")
    else:
        table = Table(title="Steps", show_lines=True)
        table.add_column("Step", style="cyan", justify="right", width=6)
        table.add_column("Id", style="green")
        table.add_column("Name")
        table.add_column("Confirm", width=8)
        for i, step in enumerate(plan.steps, 1):
            table.add_row(
                str(i),
                step.id,
                escape(step.name),
                "yes" if step.requires_confirmation else "no",
            )
        output_console.print(table)

    if plan.dropped:
        output_console.print(f"[dim]Ignored unknown steps: {escape(', '.join(plan.dropped))}[/dim]")


def display_run_summary(result: RunResult, console: Console | None = None) -> None:
    """Display the final status of every planned step and the outcome."""
    output_console = console if console is not None else Console()

    if result.records:
        table = Table(title="Run Summary")
        table.add_column("Step", style="cyan")
        table.add_column("Status")
        table.add_column("Error", style="red")
        for record in result.records:
            style = STATUS_STYLES.get(record.status, "white")
            table.add_row(
                escape(record.name),
                f"[{style}]{record.status.value}[/{style}]",
                escape(record.error or ""),
            )
        output_console.print()
        output_console.print(table)

    output_console.print(OUTCOME_MESSAGES[result.outcome])


def display_workflow_help(console: Console | None = None) -> None:
    """List registered steps, the decision vocabulary and usage examples."""
    output_console = console if console is not None else Console()
    registry = register_git_steps(StepRegistry())
    engine = WorkflowEngine(registry, PlanResolver(catalog=registry.catalog()), console=output_console)
    groups = engine.describe_steps()

    for key, title in (("git", "Git steps"), ("other", "Other steps")):
        steps = groups[key]
        if not steps:
            continue
        table = Table(title=title, show_lines=False)
        table.add_column("Id", style="green")
        table.add_column("Name", style="cyan")
        table.add_column("Description")
        for step in steps:
            table.add_row(step.id, step.name, step.description)
        output_console.print(table)

    output_console.print()
    output_console.print("[bold]Before each step:[/bold]")
    for decision, label in STEP_OPTIONS:
        output_console.print(f"  [cyan]{decision.value}[/cyan]  {label}")
    output_console.print("[bold]After a failed step:[/bold]")
    for decision, label in FAILURE_OPTIONS:
        output_console.print(f"  [cyan]{decision.value}[/cyan]  {label}")
    output_console.print(
        "[dim]Commands classified as medium risk show a warning first; "
        "high-risk commands also require typing a verification code.[/dim]"
    )

    output_console.print()
    display_examples(output_console)


def display_examples(console: Console | None = None) -> None:
    """Print example requests."""
    output_console = console if console is not None else Console()
    table = Table(title="Examples")
    table.add_column("Command", style="green")
    table.add_column("What it does")
    for command, explanation in EXAMPLE_REQUESTS:
        table.add_row(command, explanation)
    output_console.print(table)


async def generate_message_async(
    config_path: Path | None = None,
    assume_yes: bool = False,
    console: Console | None = None,
) -> int:
    """Suggest a commit message for the current diff and optionally commit.

    Returns:
        Process exit code.
    """
    console = console or Console()
    config = load_config(config_path)
    assume_yes = assume_yes or config.workflow.assume_yes

    client = ClaudeClient(config.model) if config.model.enabled else None
    try:
        runner = GitRunner(
            gate=CommandGate(
                RiskClassifier(config, client=client), console=console, assume_yes=assume_yes
            )
        )
        prompts = Prompter(console=console, assume_yes=assume_yes)

        diff = await runner.diff()
        if not diff.strip():
            console.print("[yellow]No changes found to describe.[/yellow]")
            return 1
        verbose_log_section("Diff", diff)

        generator = CommitMessageGenerator(config, client=client)
        message = await generator.generate(diff)
        verbose_log(f"Message source: {generator.last_source}")
        console.print(Panel(escape(message), title="[cyan]Suggested Commit Message[/cyan]"))

        action = prompts.choose(
            "What do you want to do?",
            {
                "commit": "Commit with this message",
                "edit": "Edit, then commit",
                "print": "Print only",
                "cancel": "Cancel",
            },
        )
        if action in ("print", "cancel"):
            return 0

        if action == "edit":
            message = prompts.ask_text("Commit message", default=message)

        staged = await runner.run(["git", "diff", "--staged", "--quiet"])
        if staged.success:
            # nothing staged yet
            await runner.run_guarded(["git", "add", "-A"], check=True)
        result = await runner.run_guarded(["git", "commit", "-m", message], check=True)
        console.print("[green]Committed![/green]")
        if result.output:
            console.print(result.output, markup=False, highlight=False)
        return 0
    finally:
        if client is not None:
            await client.close()


def run_scan(
    path: Path,
    security: bool = False,
    quality: bool = False,
    console: Console | None = None,
) -> AnalysisResult:
    """Scan ``path`` and print the findings.

    Without ``security`` or ``quality`` every check runs; with either, only
    the chosen kinds do.
    """
    output_console = console if console is not None else Console()
    options = ScanOptions.only(security=security, quality=quality)
    output_console.print(f"[blue]Scanning {escape(str(path))}...[/blue]")
    verbose_log(
        f"Checks: security={options.security}, quality={options.quality}, "
        f"standard={options.standard}"
    )

    start = time.time()
    result = analyze_codebase(path, options)
    verbose_log_timing("Scan", time.time() - start)

    display_scan_result(result, output_console)
    return result


def display_scan_result(result: AnalysisResult, console: Console | None = None) -> None:
    """Display scan findings as a table followed by per-kind counts."""
    output_console = console if console is not None else Console()

    if result.issues:
        table = Table(title="Scan Findings")
        table.add_column("Id", style="cyan")
        table.add_column("Severity")
        table.add_column("Location", style="green")
        table.add_column("Finding")
        for issue in result.issues:
            style = SEVERITY_STYLES[issue.severity]
            location = issue.file if issue.line is None else f"{issue.file}:{issue.line}"
            table.add_row(
                issue.id,
                f"[{style}]{issue.severity.value}[/{style}]",
                escape(location),
                escape(issue.description),
            )
        output_console.print(table)

    for path in result.unreadable:
        output_console.print(f"[yellow]Could not read {escape(path)}[/yellow]")

    summary = ", ".join(f"{kind} {count}" for kind, count in result.summary.items())
    output_console.print(
        f"\n[green]Scan complete:[/green] {result.files_scanned} file(s), "
        f"{result.issue_count} issue(s) ({summary})"
    )
