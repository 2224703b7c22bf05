# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""Natural-language helpers: plan resolution and commit messages."""

from gitnl.engine.plan import PlanProposal
from gitnl.nlp.commit_message import CommitMessageGenerator, message_from_diff
from gitnl.nlp.planner import ModelPlanner, PlanResolver, plan_from_rules

__all__ = [
    "CommitMessageGenerator",
    "ModelPlanner",
    "PlanProposal",
    "PlanResolver",
    "message_from_diff",
    "plan_from_rules",
]
