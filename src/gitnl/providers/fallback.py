# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""One fallback chain for every model-backed decision.

The planner, the risk classifier and the commit message generator all have
the same shape: ask the model when one is configured, otherwise (or when
the call fails) answer with a local pure function.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

InputT = TypeVar("InputT")
ResultT = TypeVar("ResultT")


class FallbackStrategy(Generic[InputT, ResultT]):
    """Remote strategy with a local fallback that never fails.

    Example:
        >>> strategy = FallbackStrategy(classify_locally, remote=model.classify, label="risk")
        >>> assessment = await strategy.run("git reset --hard HEAD~3")
        >>> strategy.last_source
        'local'
    """

    def __init__(
        self,
        local: Callable[[InputT], ResultT],
        remote: Callable[[InputT], Awaitable[ResultT]] | None = None,
        label: str = "strategy",
    ) -> None:
        """Initialize the strategy.

        Args:
            local: Pure function used without a remote, or after it fails.
            remote: Optional coroutine function tried first.
            label: Name used in log messages.
        """
        self.local = local
        self.remote = remote
        self.label = label
        self.last_source: str | None = None

    @property
    def has_remote(self) -> bool:
        """True when a remote strategy is configured."""
        return self.remote is not None

    async def run(self, value: InputT) -> ResultT:
        """Answer with the remote strategy, falling back to the local one."""
        if self.remote is not None:
            try:
                result = await self.remote(value)
                self.last_source = "remote"
                return result
            except Exception as e:
                logger.warning("%s: model call failed, using local rules (%s)", self.label, e)

        self.last_source = "local"
        return self.local(value)
