# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""Plan types exchanged between plan resolvers and the engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from gitnl.steps.base import Step


class PlanProposal(BaseModel):
    """Ordered git workflow step ids chosen for a request."""

    steps: list[str] = Field(
        default_factory=list,
        description="Step ids in execution order, chosen from the available steps",
    )
    summary: str = Field("", description="One-sentence summary shown before execution")
    reasoning: str = Field("", description="Why these steps were chosen")


class PlanSource(Protocol):
    """Anything that turns raw input into a PlanProposal."""

    async def propose(self, raw_input: str) -> PlanProposal: ...


@dataclass(frozen=True)
class WorkflowPlan:
    """A plan resolved against the registry.

    Unknown and duplicate ids are already filtered out of ``steps``.
    """

    steps: tuple[Step, ...]
    """Resolved steps in execution order."""

    summary: str = ""
    """Summary shown to the user before execution begins."""

    dropped: tuple[str, ...] = field(default=())
    """Ids that were proposed but not registered."""

    @property
    def is_empty(self) -> bool:
        """True when nothing is left to run."""
        return not self.steps

    @property
    def step_ids(self) -> list[str]:
        """Ids of the resolved steps."""
        return [step.id for step in self.steps]
