# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""Human decision points for interactive workflow runs.

This module implements the two decisions the engine asks for around every
step (before running it, and after it fails) and the data-entry prompts
step actions use while they run. All interaction goes through Rich
prompts so tests can patch ``Prompt.ask`` and ``Confirm.ask``.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import Enum
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, Prompt

from gitnl.exceptions import HumanGateError

if TYPE_CHECKING:
    from gitnl.steps.base import Step


class StepDecision(str, Enum):
    """Answer to the pre-step question."""

    CONTINUE = "continue"
    SKIP = "skip"
    EXIT = "exit"


class FailureDecision(str, Enum):
    """Answer to the post-failure question."""

    CONTINUE_AFTER_ERROR = "continue_after_error"
    EXIT_ON_ERROR = "exit_on_error"


STEP_OPTIONS: tuple[tuple[StepDecision, str], ...] = (
    (StepDecision.CONTINUE, "Continue - run this step"),
    (StepDecision.SKIP, "Skip - move on to the next step"),
    (StepDecision.EXIT, "Exit - end the workflow here"),
)

FAILURE_OPTIONS: tuple[tuple[FailureDecision, str], ...] = (
    (FailureDecision.EXIT_ON_ERROR, "Exit - stop the workflow"),
    (FailureDecision.CONTINUE_AFTER_ERROR, "Continue - run the remaining steps anyway"),
)


def _select_index(console: Console, count: int, default: int = 1) -> int:
    """Ask for a 1-based option number and return the 0-based index."""
    valid_choices = [str(i) for i in range(1, count + 1)]
    while True:
        choice = Prompt.ask(
            "\n[bold]Select option[/bold]",
            choices=valid_choices,
            default=str(default),
            show_choices=True,
        )
        try:
            index = int(choice) - 1
            if 0 <= index < count:
                return index
        except ValueError:
            pass
        console.print("[red]Invalid selection. Please try again.[/red]")


class HumanDecisionHandler:
    """Collects the continue / skip / exit decisions the engine needs.

    In assume-yes mode no prompt is shown: every step is continued and a
    failure ends the run (the default failure decision).

    Example:
        >>> handler = HumanDecisionHandler()
        >>> decision = await handler.decide_step(step, index=0, total=3)
        >>> if decision is StepDecision.EXIT:
        ...     print("stopping")
    """

    def __init__(
        self,
        console: Console | None = None,
        assume_yes: bool = False,
    ) -> None:
        """Initialize the HumanDecisionHandler.

        Args:
            console: Rich console for output. Creates one if not provided.
            assume_yes: If True, answers every decision with its default.
        """
        self.console = console or Console()
        self.assume_yes = assume_yes

    async def decide_step(self, step: Step, index: int, total: int) -> StepDecision:
        """Ask whether to run, skip, or exit before ``step`` runs.

        Args:
            step: The step about to run.
            index: 0-based position of the step in the plan.
            total: Number of steps in the plan.

        Returns:
            The user's StepDecision.
        """
        if self.assume_yes:
            self.console.print(f"[dim]Auto-continuing: {escape(step.name)} (--yes)[/dim]")
            return StepDecision.CONTINUE

        body = f"[bold]{escape(step.name)}[/bold]"
        if step.description:
            body += f"\n{escape(step.description)}"
        self.console.print()
        self.console.print(
            Panel(
                body,
                title=f"[bold cyan]Decision Required ({index + 1}/{total})[/bold cyan]",
                border_style="cyan",
            )
        )
        self.console.print("[bold]Options:[/bold]")
        for i, (_, label) in enumerate(STEP_OPTIONS, 1):
            self.console.print(f"  [cyan][{i}][/cyan] {label}")

        decision = STEP_OPTIONS[_select_index(self.console, len(STEP_OPTIONS))][0]
        self.console.print(f"\n[green]Selected:[/green] {decision.value}")
        return decision

    async def decide_failure(self, step: Step, error: BaseException) -> FailureDecision:
        """Show a step failure and ask whether to continue or exit.

        Args:
            step: The step whose action failed.
            error: The exception it raised.

        Returns:
            The user's FailureDecision (EXIT_ON_ERROR by default).
        """
        message = getattr(error, "message", None) or str(error) or type(error).__name__
        self.console.print()
        self.console.print(
            Panel(
                f"[bold]{escape(step.name)}[/bold] failed:\n{escape(message)}",
                title="[bold red]Step Failed[/bold red]",
                border_style="red",
            )
        )

        if self.assume_yes:
            self.console.print("[dim]Exiting after error (--yes)[/dim]")
            return FailureDecision.EXIT_ON_ERROR

        self.console.print("[bold]Options:[/bold]")
        for i, (_, label) in enumerate(FAILURE_OPTIONS, 1):
            self.console.print(f"  [cyan][{i}][/cyan] {label}")

        return FAILURE_OPTIONS[_select_index(self.console, len(FAILURE_OPTIONS))][0]


class Prompter:
    """Data-entry prompts used by step actions.

    Assume-yes mode answers with defaults: the first option, the default
    text, the default confirmation, and every item of a multi-select.
    """

    def __init__(
        self,
        console: Console | None = None,
        assume_yes: bool = False,
    ) -> None:
        self.console = console or Console()
        self.assume_yes = assume_yes

    def choose(self, question: str, options: Mapping[str, str]) -> str:
        """Ask the user to pick one of ``options`` and return its key.

        Args:
            question: Question shown above the numbered options.
            options: Mapping of option key to display label, in display order.

        Returns:
            The key of the selected option.

        Raises:
            HumanGateError: If no options are given.
        """
        if not options:
            raise HumanGateError(
                f"No options to choose from for: {question}",
                suggestion="Pass at least one option",
            )

        keys = list(options)
        if self.assume_yes:
            self.console.print(f"[dim]Auto-selecting: {escape(options[keys[0]])} (--yes)[/dim]")
            return keys[0]

        self.console.print()
        self.console.print(f"[bold]{escape(question)}[/bold]")
        for i, key in enumerate(keys, 1):
            self.console.print(f"  [cyan][{i}][/cyan] {escape(options[key])}")

        return keys[_select_index(self.console, len(keys))]

    def ask_text(
        self,
        question: str,
        default: str | None = None,
        required: bool = True,
    ) -> str:
        """Ask for free text.

        Args:
            question: Prompt text.
            default: Value used on empty input (and in assume-yes mode).
            required: If True, blank answers are rejected and asked again.

        Returns:
            The entered text, stripped.

        Raises:
            HumanGateError: In assume-yes mode when a required answer has no
                default.
        """
        if self.assume_yes:
            if default is not None:
                return default
            if required:
                raise HumanGateError(
                    f"Cannot answer '{question}' automatically",
                    suggestion="Run without --yes to enter the value interactively",
                )
            return ""

        while True:
            if default is not None:
                value = Prompt.ask(f"[bold]{escape(question)}[/bold]", default=default)
            else:
                value = Prompt.ask(f"[bold]{escape(question)}[/bold]")
            value = (value or "").strip()
            if value or not required:
                return value
            self.console.print("[red]A value is required. Please try again.[/red]")

    def confirm(self, question: str, default: bool = True) -> bool:
        """Ask a yes/no question."""
        if self.assume_yes:
            return default
        return bool(Confirm.ask(f"[bold]{escape(question)}[/bold]", default=default))

    def select_many(self, question: str, items: Sequence[str]) -> list[str]:
        """Ask the user to pick any number of ``items``.

        Accepts comma or space separated option numbers, or ``all``.

        Returns:
            The selected items in their original order (possibly empty).
        """
        items = list(items)
        if self.assume_yes or not items:
            return items

        self.console.print()
        self.console.print(f"[bold]{escape(question)}[/bold]")
        for i, item in enumerate(items, 1):
            self.console.print(f"  [cyan][{i}][/cyan] {escape(item)}")

        while True:
            answer = Prompt.ask(
                "\n[bold]Enter numbers separated by commas, or 'all'[/bold]",
                default="all",
            )
            answer = (answer or "").strip().lower()
            if answer == "all":
                return items

            picked: set[int] = set()
            valid = bool(answer)
            for token in answer.replace(",", " ").split():
                if token.isdigit() and 1 <= int(token) <= len(items):
                    picked.add(int(token) - 1)
                else:
                    valid = False
                    break
            if valid:
                return [item for i, item in enumerate(items) if i in picked]
            self.console.print("[red]Invalid selection. Please try again.[/red]")
