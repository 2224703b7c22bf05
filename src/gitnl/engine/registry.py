# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""Step registry: the id → step mapping plans are resolved against."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING

from gitnl.exceptions import ConfigurationError

if TYPE_CHECKING:
    from gitnl.steps.base import Step

logger = logging.getLogger(__name__)


class StepRegistry:
    """Holds every step known to the process.

    Registering an id that already exists replaces the earlier step (last
    registration wins). Lookups of unknown ids return None; the engine
    drops such ids from plans.

    Example:
        >>> registry = StepRegistry()
        >>> registry.register(status_step)
        >>> registry.lookup("git-status") is status_step
        True
        >>> registry.lookup("git-nonexistent") is None
        True
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._steps: dict[str, Step] = {}

    def register(self, step: Step) -> Step:
        """Insert or replace the step under ``step.id``.

        Args:
            step: The step to register.

        Returns:
            The registered step.

        Raises:
            ConfigurationError: If the step id is empty.
        """
        step_id = getattr(step, "id", "")
        if not step_id or not step_id.strip():
            raise ConfigurationError(
                f"Cannot register step without an id: {step!r}",
                suggestion="Give every step a non-empty 'id'",
            )
        if step_id in self._steps:
            logger.debug("Replacing registered step '%s'", step_id)
        self._steps[step_id] = step
        return step

    def lookup(self, step_id: str) -> Step | None:
        """Return the step registered under ``step_id``, or None."""
        return self._steps.get(step_id)

    def __contains__(self, step_id: object) -> bool:
        return step_id in self._steps

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self) -> Iterator[Step]:
        return iter(list(self._steps.values()))

    def ids(self) -> list[str]:
        """Return registered ids in registration order."""
        return list(self._steps)

    def catalog(self) -> list[tuple[str, str]]:
        """Return ``(id, description)`` pairs for plan resolvers."""
        return [(step.id, step.description or step.name) for step in self._steps.values()]
