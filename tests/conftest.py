"""Pytest configuration and shared fixtures for gitnl tests.

This module contains fixtures used across multiple test modules.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from unittest.mock import MagicMock

import pytest

from gitnl.config.schema import AppConfig
from gitnl.engine.context import ExecutionContext, StepServices
from gitnl.gates.human import Prompter
from gitnl.gates.risk import CommandGate
from gitnl.git.executor import Command, ExecutionResult, GitRunner, command_text
from gitnl.nlp.commit_message import CommitMessageGenerator
from gitnl.steps import git_fact_schema


class FakeExecutor:
    """Scripted command executor.

    Responses are keyed by command text. A list is consumed one result per
    call. Commands without a response succeed with empty output.
    """

    def __init__(self, responses: Mapping[str, ExecutionResult | list[ExecutionResult]] | None = None):
        self.responses = {
            key: list(value) if isinstance(value, list) else value
            for key, value in (responses or {}).items()
        }
        self.calls: list[str] = []

    async def __call__(self, command: Command) -> ExecutionResult:
        text = command_text(command)
        self.calls.append(text)
        response = self.responses.get(text)
        if isinstance(response, list):
            return response.pop(0) if response else ExecutionResult(success=True)
        return response or ExecutionResult(success=True)

    def ran(self, text: str) -> bool:
        """Return True if ``text`` was executed."""
        return text in self.calls


def ok(output: str = "") -> ExecutionResult:
    """Successful result with ``output``."""
    return ExecutionResult(success=True, output=output)


def failed(error: str) -> ExecutionResult:
    """Failed result with ``error``."""
    return ExecutionResult(success=False, error=error)


@pytest.fixture
def mock_console() -> MagicMock:
    """Create a mock Rich console."""
    return MagicMock()


@pytest.fixture
def make_context(
    mock_console: MagicMock,
) -> Callable[..., tuple[ExecutionContext, FakeExecutor]]:
    """Build an ExecutionContext wired to a FakeExecutor.

    By default every prompt answers with its default (assume-yes mode).
    """

    def factory(
        responses: Mapping[str, ExecutionResult | list[ExecutionResult]] | None = None,
        data: Mapping[str, object] | None = None,
        assume_yes: bool = True,
        messages: CommitMessageGenerator | None = None,
    ) -> tuple[ExecutionContext, FakeExecutor]:
        executor = FakeExecutor(responses)
        gate = CommandGate(console=mock_console, assume_yes=assume_yes)
        services = StepServices(
            console=mock_console,
            prompter=Prompter(console=mock_console, assume_yes=assume_yes),
            git=GitRunner(executor=executor, gate=gate),
            messages=messages or CommitMessageGenerator(AppConfig()),
        )
        context = ExecutionContext(
            original_input="test request",
            steps=(),
            schema=git_fact_schema(),
            services=services,
        )
        for key, value in (data or {}).items():
            context.add_to_context(key, value)
        return context, executor

    return factory
