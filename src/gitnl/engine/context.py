# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""Execution context management for gitnl.

This module provides the ExecutionContext that is threaded through every
step of one workflow run, and the FactSchema that gives the otherwise open
key-value store a typed contract between steps.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, get_origin

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console

from gitnl.exceptions import ConfigurationError, ExecutionError, ValidationError

if TYPE_CHECKING:
    from gitnl.gates.human import Prompter
    from gitnl.git.executor import GitRunner
    from gitnl.nlp.commit_message import CommitMessageGenerator
    from gitnl.steps.base import Step

logger = logging.getLogger(__name__)


class FactSchema:
    """Declared types for named context facts.

    Writing a declared fact validates the value in strict mode, so a step
    that stores ``"yes"`` where a later step expects a bool fails at the
    write, not three steps later. Facts declared as a pydantic model only
    accept instances of that model; a plain dict of the same shape is
    rejected. Undeclared keys stay allowed.

    Example:
        >>> schema = FactSchema({"has_changes": bool})
        >>> schema.validate("has_changes", True)
        True
        >>> schema.validate("has_changes", "yes")
        Traceback (most recent call last):
        ...
        gitnl.exceptions.ValidationError: ...
    """

    def __init__(self, facts: Mapping[str, Any] | None = None) -> None:
        self._facts: dict[str, Any] = dict(facts or {})
        self._adapters: dict[str, TypeAdapter[Any]] = {}

    def declare(self, name: str, type_: Any) -> None:
        """Declare (or redeclare) a fact's type."""
        self._facts[name] = type_
        self._adapters.pop(name, None)

    def __contains__(self, name: object) -> bool:
        return name in self._facts

    def __len__(self) -> int:
        return len(self._facts)

    def names(self) -> list[str]:
        """Return the declared fact names in declaration order."""
        return list(self._facts)

    def type_of(self, name: str) -> Any:
        """Return the declared type for a fact, or None if undeclared."""
        return self._facts.get(name)

    def validate(self, name: str, value: Any) -> Any:
        """Validate a value against the declared type of ``name``.

        Args:
            name: Fact name.
            value: Value a step wants to store.

        Returns:
            The validated value (unchanged for undeclared facts).

        Raises:
            ValidationError: If the value does not match the declared type.
        """
        if name not in self._facts:
            return value

        fact_type = self._facts[name]
        # strict mode still builds models from dicts
        if (
            get_origin(fact_type) is None
            and isinstance(fact_type, type)
            and issubclass(fact_type, BaseModel)
            and not isinstance(value, fact_type)
        ):
            raise self._rejected(name, value)

        adapter = self._adapters.get(name)
        if adapter is None:
            adapter = TypeAdapter(fact_type)
            self._adapters[name] = adapter

        try:
            return adapter.validate_python(value, strict=True)
        except PydanticValidationError as e:
            raise self._rejected(name, value) from e

    def _rejected(self, name: str, value: Any) -> ValidationError:
        fact_type = self._facts[name]
        return ValidationError(
            f"Context fact '{name}' rejected value of type {type(value).__name__}",
            field_name=name,
            expected_type=getattr(fact_type, "__name__", str(fact_type)),
            actual_value=repr(value)[:80],
        )

    def check_plan(self, steps: Iterable[Step]) -> None:
        """Check the facts a planned sequence of steps reads and writes.

        Every written fact must be declared. A read with no earlier writer
        is only logged: absence means the predecessor did not run.

        Raises:
            ConfigurationError: If a step writes an undeclared fact.
        """
        written: set[str] = set()
        for step in steps:
            for name in sorted(step.reads - written):
                logger.debug("Step '%s' reads fact '%s' that no earlier step writes", step.id, name)
            undeclared = sorted(name for name in step.writes if name not in self._facts)
            if undeclared:
                raise ConfigurationError(
                    f"Step '{step.id}' writes undeclared fact(s): {', '.join(undeclared)}",
                    field_path=f"steps.{step.id}.writes",
                )
            written.update(step.writes)


@dataclass
class StepServices:
    """Collaborators a step action reaches through its context."""

    console: Console = field(default_factory=Console)
    """Console for user-facing step output."""

    prompter: Prompter | None = None
    """Data-entry prompts (choices, text, confirmations)."""

    git: GitRunner | None = None
    """Command runner with the risk gate attached."""

    messages: CommitMessageGenerator | None = None
    """Commit message generator."""

    default_remote: str = "origin"
    """Remote listed first when a repository has several."""


@dataclass
class ExecutionContext:
    """State of one workflow run.

    The context stores everything the steps of a run share:
    - original_input: The request that triggered the run
    - steps: The resolved, ordered steps of the run
    - cursor: Index of the step currently executing (never decreases)
    - data: Intermediate results written by steps

    Example:
        >>> ctx = ExecutionContext(original_input="commit my work", steps=())
        >>> ctx.add_to_context("has_changes", True)
        >>> ctx.get_from_context("has_changes")
        True
        >>> ctx.get_from_context("final_commit_message") is None
        True
    """

    original_input: str
    """The triggering request. Not modified during the run."""

    steps: tuple[Step, ...]
    """Resolved steps of this run, in execution order."""

    schema: FactSchema = field(default_factory=FactSchema)
    """Declared fact types."""

    services: StepServices = field(default_factory=StepServices)
    """Collaborators available to step actions."""

    data: dict[str, Any] = field(default_factory=dict)
    """Open key-value store of intermediate results."""

    _cursor: int = field(default=0, init=False, repr=False)

    @property
    def cursor(self) -> int:
        """Index of the step currently executing."""
        return self._cursor

    @cursor.setter
    def cursor(self, value: int) -> None:
        if value < self._cursor:
            raise ExecutionError(
                f"Cursor cannot move backwards (from {self._cursor} to {value})",
            )
        self._cursor = value

    @property
    def current_step(self) -> Step | None:
        """The step at the cursor, or None past the end."""
        if 0 <= self._cursor < len(self.steps):
            return self.steps[self._cursor]
        return None

    def add_to_context(self, key: str, value: Any) -> None:
        """Store a value, overwriting any previous one (last write wins).

        Raises:
            ValidationError: If ``key`` is a declared fact and the value has
                the wrong type.
        """
        self.data[key] = self.schema.validate(key, value)

    def get_from_context(self, key: str, default: Any = None) -> Any:
        """Return a stored value, or ``default`` if no step wrote it."""
        return self.data.get(key, default)

    def has(self, key: str) -> bool:
        """Return True if some step wrote ``key`` during this run."""
        return key in self.data

    def snapshot(self) -> dict[str, Any]:
        """Return a shallow copy of the stored data."""
        return dict(self.data)
