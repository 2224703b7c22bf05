# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""Pydantic models for gitnl configuration.

This module defines the models used to validate and parse the user
configuration file (``~/.gitnl/config.yaml`` by default).
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

DEFAULT_MODEL = "claude-3-5-haiku-latest"


class ModelConfig(BaseModel):
    """Connection settings for the model-backed planner and classifiers."""

    api_key: str | None = None
    """Anthropic API key. Falls back to ANTHROPIC_API_KEY when unset."""

    model: str = DEFAULT_MODEL
    """Model used for plan resolution, risk analysis and commit messages."""

    base_url: str | None = None
    """Optional custom API endpoint."""

    temperature: float = Field(
        0.0,
        ge=0.0,
        le=1.0,
        description="Controls randomness. Range: 0.0-1.0",
    )
    """Temperature parameter for model calls."""

    max_tokens: int = Field(1024, ge=1, le=8192)
    """Maximum output tokens per model response."""

    timeout: float = Field(60.0, ge=1.0)
    """Request timeout in seconds."""

    @field_validator("api_key", "base_url")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        """Treat empty strings as unset."""
        if v is not None and not v.strip():
            return None
        return v

    @property
    def enabled(self) -> bool:
        """True when an API key is available for model calls."""
        return bool(self.api_key)


class WorkflowSettings(BaseModel):
    """Behavior of interactive workflow runs."""

    assume_yes: bool = False
    """Answer every prompt with its default (for automation)."""

    diff_char_limit: int = Field(3000, ge=200)
    """Maximum diff characters sent to the model for commit messages."""

    default_remote: str = "origin"
    """Remote used when a repository has exactly one or no preference."""


class AppConfig(BaseModel):
    """Complete gitnl configuration."""

    model: ModelConfig = Field(default_factory=ModelConfig)
    """Model connection settings."""

    workflow: WorkflowSettings = Field(default_factory=WorkflowSettings)
    """Workflow run settings."""
