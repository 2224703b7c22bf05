# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""Command execution for git steps.

``execute`` is the opaque ``command -> {success, output, error}`` call the
steps build on. ``GitRunner`` adds the risk gate in front of mutating
commands and logs a HEAD checkpoint before history-changing ones.
"""

from __future__ import annotations

import asyncio
import logging
import shlex
import subprocess
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from gitnl.exceptions import StepActionError
from gitnl.gates.risk import CommandGate

logger = logging.getLogger(__name__)

Command = str | Sequence[str]

# git subcommands that get a HEAD checkpoint logged before they run
CHECKPOINT_COMMANDS = frozenset(
    {"reset", "rebase", "checkout", "branch", "merge", "commit", "push"}
)


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one command."""

    success: bool
    output: str = ""
    error: str = ""


def _split(command: Command) -> list[str]:
    if isinstance(command, str):
        return shlex.split(command)
    return list(command)


def command_text(command: Command) -> str:
    """Return the display form of a command."""
    if isinstance(command, str):
        return command
    return shlex.join(command)


def _run_process(argv: list[str], cwd: str | Path | None) -> ExecutionResult:
    try:
        completed = subprocess.run(
            argv,
            cwd=cwd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except (FileNotFoundError, PermissionError, NotADirectoryError) as e:
        return ExecutionResult(success=False, error=str(e))

    if completed.returncode != 0:
        error = completed.stderr.strip() or completed.stdout.strip()
        return ExecutionResult(
            success=False,
            output=completed.stdout,
            error=error or f"Command exited with status {completed.returncode}",
        )
    return ExecutionResult(success=True, output=completed.stdout, error=completed.stderr)


async def execute(command: Command, cwd: str | Path | None = None) -> ExecutionResult:
    """Run a command without a shell in a worker thread.

    Never raises: an unparsable command line or a missing binary is
    reported as ``success=False``.

    Args:
        command: Command line (tokenized with shlex) or argument list.
        cwd: Working directory. Defaults to the current directory.
    """
    try:
        argv = _split(command)
    except ValueError as e:
        return ExecutionResult(success=False, error=f"Cannot parse command: {e}")
    if not argv:
        return ExecutionResult(success=False, error="Empty command")

    logger.debug("Executing: %s", command_text(argv))
    result = await asyncio.to_thread(_run_process, argv, cwd)
    if not result.success:
        logger.debug("Command failed: %s: %s", command_text(argv), result.error)
    return result


Executor = Callable[[Command], Awaitable[ExecutionResult]]


class GitRunner:
    """Runs git commands for step actions.

    Read-only commands go through ``run``; anything that changes the
    repository goes through ``run_guarded`` so the risk gate sees it first.

    Example:
        >>> runner = GitRunner(gate=CommandGate())
        >>> status = await runner.run("git status")
        >>> await runner.run_guarded(["git", "commit", "-m", "fix: typo"])
    """

    def __init__(
        self,
        executor: Executor | None = None,
        gate: CommandGate | None = None,
        cwd: str | Path | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            executor: Command executor. Defaults to ``execute`` in ``cwd``.
            gate: Risk gate for mutating commands. Creates one if not provided.
            cwd: Working directory for the default executor.
        """
        async def run_in_cwd(command: Command) -> ExecutionResult:
            return await execute(command, cwd=cwd)

        self.executor: Executor = executor or run_in_cwd
        self.gate = gate or CommandGate()

    async def run(self, command: Command, check: bool = False) -> ExecutionResult:
        """Run a read-only command.

        Args:
            command: Command line or argument list.
            check: Raise StepActionError when the command fails.
        """
        result = await self.executor(command)
        if check and not result.success:
            raise StepActionError(f"'{command_text(command)}' failed: {result.error}")
        return result

    async def run_guarded(self, command: Command, check: bool = False) -> ExecutionResult:
        """Authorize a mutating command through the risk gate, then run it.

        Raises:
            CommandRejectedError: If the gate refuses the command.
            StepActionError: If ``check`` is set and the command fails.
        """
        text = command_text(command)
        await self.gate.authorize(text)
        await self._checkpoint(command)
        logger.info("Running: %s", text)
        return await self.run(command, check=check)

    async def _checkpoint(self, command: Command) -> None:
        try:
            argv = _split(command)
        except ValueError:
            return
        if len(argv) < 2 or argv[0] != "git" or argv[1] not in CHECKPOINT_COMMANDS:
            return
        head = await self.executor(["git", "rev-parse", "HEAD"])
        if head.success:
            logger.info("Checkpoint before '%s': HEAD at %s", argv[1], head.output.strip())
        else:
            logger.info("No checkpoint before '%s' (repository has no HEAD yet)", argv[1])

    async def current_branch(self) -> str:
        """Return the checked-out branch name.

        Raises:
            StepActionError: If the branch cannot be determined.
        """
        result = await self.run(["git", "branch", "--show-current"], check=True)
        return result.output.strip()

    async def diff(self) -> str:
        """Return the staged diff, or the working-tree diff when nothing is staged."""
        staged = await self.run(["git", "diff", "--staged"])
        if staged.success and staged.output.strip():
            return staged.output
        unstaged = await self.run(["git", "diff"])
        return unstaged.output if unstaged.success else ""
