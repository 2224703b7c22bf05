# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""Interactive gates: step decisions, data-entry prompts and the command risk gate."""

from gitnl.gates.human import (
    FailureDecision,
    HumanDecisionHandler,
    Prompter,
    StepDecision,
)
from gitnl.gates.risk import CommandGate, generate_verification_code

__all__ = [
    "CommandGate",
    "FailureDecision",
    "HumanDecisionHandler",
    "Prompter",
    "StepDecision",
    "generate_verification_code",
]
