# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""Risk classification of candidate git commands.

The local policy is a pure function of the command text and two ordered
substring tables. A model-backed classifier may answer first; any failure
falls back to the local policy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from gitnl.config.schema import AppConfig
from gitnl.providers.claude import ClaudeClient
from gitnl.providers.fallback import FallbackStrategy

logger = logging.getLogger(__name__)


class RiskLevel(str, Enum):
    """How much damage a command can do."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


HIGH_RISK_PATTERNS: tuple[str, ...] = (
    "reset --hard",
    "clean -fd",
    "push --force",
    "push -f",
    "branch -D",
)

MEDIUM_RISK_PATTERNS: tuple[str, ...] = (
    "reset",
    "rebase",
    "checkout -b",
    "branch -d",
    "stash drop",
)

HIGH_RISK_DESCRIPTION = "This command can lose data or rewrite repository history"
HIGH_RISK_MITIGATION = "Create a backup branch or note the current HEAD before running it"
MEDIUM_RISK_DESCRIPTION = "This command changes repository state, usually recoverably"
MEDIUM_RISK_MITIGATION = "Check which branches and files the command affects"
LOW_RISK_DESCRIPTION = "This command is safe and does not lose data"
MODEL_RISK_MITIGATION = "Confirm the scope of the command or create a backup first"


@dataclass(frozen=True)
class RiskAssessment:
    """Advisory classification of one command."""

    level: RiskLevel
    description: str
    mitigation: str | None = None
    matched_pattern: str | None = None


def classify_locally(command: str) -> RiskAssessment:
    """Classify a command with the fixed pattern tables.

    Any high-risk substring wins over every medium-risk one; within a
    table the first matching pattern is reported.

    Example:
        >>> classify_locally("git reset --hard HEAD~3").level
        <RiskLevel.HIGH: 'high'>
        >>> classify_locally("git checkout -b feature/x").level
        <RiskLevel.MEDIUM: 'medium'>
        >>> classify_locally("git status").level
        <RiskLevel.LOW: 'low'>
    """
    for pattern in HIGH_RISK_PATTERNS:
        if pattern in command:
            return RiskAssessment(
                level=RiskLevel.HIGH,
                description=HIGH_RISK_DESCRIPTION,
                mitigation=HIGH_RISK_MITIGATION,
                matched_pattern=pattern,
            )

    for pattern in MEDIUM_RISK_PATTERNS:
        if pattern in command:
            return RiskAssessment(
                level=RiskLevel.MEDIUM,
                description=MEDIUM_RISK_DESCRIPTION,
                mitigation=MEDIUM_RISK_MITIGATION,
                matched_pattern=pattern,
            )

    return RiskAssessment(level=RiskLevel.LOW, description=LOW_RISK_DESCRIPTION)


class RiskAnalysis(BaseModel):
    """Risk level of a git command with a one-sentence explanation."""

    risk_level: Literal["low", "medium", "high"] = Field(
        description="low: safe and easily undone; medium: changes repository state "
        "but is usually recoverable; high: may lose data or is hard to undo",
    )
    explanation: str = Field(description="Short explanation of the risk")


RISK_SYSTEM_PROMPT = (
    "You analyze the risk of git commands. Consider possible data loss, whether "
    "the command can be undone, and its effect on repository history. "
    "Answer only by calling the provided tool."
)


class ModelRiskClassifier:
    """Asks the model to classify a command."""

    def __init__(self, client: ClaudeClient) -> None:
        self.client = client

    async def classify(self, command: str) -> RiskAssessment:
        analysis = await self.client.structured(
            f"Analyze this git command: {command}",
            tool_name="emit_risk",
            output_model=RiskAnalysis,
            system=RISK_SYSTEM_PROMPT,
        )
        level = RiskLevel(analysis.risk_level)
        return RiskAssessment(
            level=level,
            description=analysis.explanation,
            mitigation=MODEL_RISK_MITIGATION if level is not RiskLevel.LOW else None,
        )


class RiskClassifier:
    """Model classifier when configured, local pattern policy otherwise.

    A fresh assessment is produced for every call; nothing is cached.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        client: ClaudeClient | None = None,
    ) -> None:
        """Initialize the classifier.

        Args:
            config: Application config. A model is used when it has an API key.
            client: Pre-built model client (overrides ``config``).
        """
        if client is None and config is not None and config.model.enabled:
            client = ClaudeClient(config.model)
        remote = ModelRiskClassifier(client).classify if client is not None else None
        self._strategy: FallbackStrategy[str, RiskAssessment] = FallbackStrategy(
            classify_locally,
            remote=remote,
            label="risk classifier",
        )

    async def classify(self, command: str) -> RiskAssessment:
        """Classify ``command``. Never raises."""
        assessment = await self._strategy.run(command)
        logger.debug(
            "Risk of '%s': %s (%s)", command, assessment.level.value, self._strategy.last_source
        )
        return assessment
