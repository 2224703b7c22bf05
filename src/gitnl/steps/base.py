# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""Step contract shared by every workflow step.

A step is a named, registered unit of work. The engine only relies on the
attributes and the two coroutines defined here; everything a step does with
git, prompts or the model happens inside ``run``.
"""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from gitnl.engine.context import ExecutionContext

StepAction = Callable[["ExecutionContext"], Awaitable[None] | None]
SkipPredicate = Callable[["ExecutionContext"], Awaitable[bool] | bool]


class Step(ABC):
    """Base class for workflow steps.

    Subclasses set the identity attributes at class level and implement
    ``run``. ``should_skip`` defaults to never skipping, so a step without a
    skip condition is always offered to the user.

    Example:
        >>> class HelloStep(Step):
        ...     id = "hello"
        ...     name = "Say hello"
        ...     description = "Prints a greeting"
        ...     requires_confirmation = False
        ...
        ...     async def run(self, context):
        ...         context.services.console.print("hello")
    """

    id: str
    """Unique registry key."""

    name: str
    """Short label shown in the step header."""

    description: str = ""
    """Human-readable purpose shown under the header."""

    requires_confirmation: bool = True
    """Ask continue / skip / exit before running."""

    reads: frozenset[str] = frozenset()
    """Context facts this step consults."""

    writes: frozenset[str] = frozenset()
    """Context facts this step may set."""

    @abstractmethod
    async def run(self, context: ExecutionContext) -> None:
        """Perform the step's action.

        Args:
            context: The shared context of the current run.

        Raises:
            Exception: Any error is caught by the engine and turned into a
                continue / exit decision.
        """
        ...

    async def should_skip(self, context: ExecutionContext) -> bool:
        """Return True to bypass this step for the current run."""
        return False

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id!r}>"


@dataclass(frozen=True, repr=False, eq=False)
class FunctionStep(Step):
    """A step assembled from plain callables.

    Both ``action`` and ``skip_predicate`` may be regular functions or
    coroutine functions.
    """

    id: str
    name: str
    action: StepAction
    description: str = ""
    requires_confirmation: bool = True
    skip_predicate: SkipPredicate | None = None
    reads: frozenset[str] = field(default_factory=frozenset)
    writes: frozenset[str] = field(default_factory=frozenset)

    async def run(self, context: ExecutionContext) -> None:
        await _maybe_await(self.action(context))

    async def should_skip(self, context: ExecutionContext) -> bool:
        if self.skip_predicate is None:
            return False
        return bool(await _maybe_await(self.skip_predicate(context)))


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value
