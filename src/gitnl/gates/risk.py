# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""Risk-driven confirmation before mutating commands run.

Confirmation strength follows the assessed level:
- low: a single yes/no confirmation
- medium: a warning panel with mitigation text, then the confirmation
- high: the warning, the confirmation, then a freshly generated six-digit
  code the user must type back exactly
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, Prompt

from gitnl.exceptions import CommandRejectedError
from gitnl.risk.classifier import RiskAssessment, RiskClassifier, RiskLevel

logger = logging.getLogger(__name__)


def generate_verification_code() -> str:
    """Return a random six-digit code."""
    return str(100000 + secrets.randbelow(900000))


class CommandGate:
    """Authorizes commands according to their risk level.

    Example:
        >>> gate = CommandGate(RiskClassifier())
        >>> assessment = await gate.authorize("git push origin main")
        >>> assessment.level
        <RiskLevel.LOW: 'low'>
    """

    def __init__(
        self,
        classifier: RiskClassifier | None = None,
        console: Console | None = None,
        assume_yes: bool = False,
        code_factory: Callable[[], str] = generate_verification_code,
    ) -> None:
        """Initialize the gate.

        Args:
            classifier: Risk classifier. Uses local rules if not provided.
            console: Rich console for output. Creates one if not provided.
            assume_yes: Approve low and medium commands without asking and
                refuse high-risk ones.
            code_factory: Produces the verification code for high-risk commands.
        """
        self.classifier = classifier or RiskClassifier()
        self.console = console or Console()
        self.assume_yes = assume_yes
        self.code_factory = code_factory

    async def authorize(self, command: str) -> RiskAssessment:
        """Classify ``command`` and collect the confirmation its level needs.

        Returns:
            The assessment the decision was based on.

        Raises:
            CommandRejectedError: If the user declines, types a wrong code,
                or a high-risk command is met in assume-yes mode.
        """
        assessment = await self.classifier.classify(command)

        if assessment.level is not RiskLevel.LOW:
            self._show_warning(command, assessment)

        if self.assume_yes:
            if assessment.level is RiskLevel.HIGH:
                raise CommandRejectedError(
                    f"Refusing high-risk command in non-interactive mode: {command}",
                    command=command,
                    risk_level=assessment.level.value,
                    suggestion="Run without --yes to confirm it interactively",
                )
            logger.info("Auto-approved %s-risk command: %s", assessment.level.value, command)
            return assessment

        if not Confirm.ask(f"Run [bold]{escape(command)}[/bold]?", default=True):
            raise CommandRejectedError(
                f"Command declined: {command}",
                command=command,
                risk_level=assessment.level.value,
            )

        if assessment.level is RiskLevel.HIGH:
            self._verify_code(command, assessment)

        return assessment

    def _show_warning(self, command: str, assessment: RiskAssessment) -> None:
        color = "red" if assessment.level is RiskLevel.HIGH else "yellow"
        body = f"[bold]{escape(command)}[/bold]\n\n{escape(assessment.description)}"
        if assessment.mitigation:
            body += f"\n\n[bold]Mitigation:[/bold] {escape(assessment.mitigation)}"
        self.console.print()
        self.console.print(
            Panel(
                body,
                title=f"[bold {color}]{assessment.level.value.upper()} RISK[/bold {color}]",
                border_style=color,
            )
        )

    def _verify_code(self, command: str, assessment: RiskAssessment) -> None:
        code = self.code_factory()
        self.console.print(
            f"[red]To confirm this high-risk command, type the code:[/red] [bold]{code}[/bold]"
        )
        typed = Prompt.ask("Verification code")
        if (typed or "").strip() != code:
            logger.info("Verification code mismatch for: %s", command)
            raise CommandRejectedError(
                f"Verification code did not match; command not run: {command}",
                command=command,
                risk_level=assessment.level.value,
            )
