# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""Commit message generation from a diff."""

from __future__ import annotations

import re
from typing import Literal

from pydantic import BaseModel, Field

from gitnl.config.schema import AppConfig
from gitnl.exceptions import ProviderError
from gitnl.providers.claude import ClaudeClient
from gitnl.providers.fallback import FallbackStrategy

DIFF_HEADER_PATTERN = re.compile(r"^diff --git a/(\S+) b/(\S+)$", re.MULTILINE)
TRUNCATION_NOTICE = "\n... [diff truncated]"
MAX_FILES_IN_SUMMARY = 3

CommitType = Literal["feat", "fix", "docs", "style", "refactor", "test", "chore"]


def truncate_diff(diff: str, limit: int) -> str:
    """Cut ``diff`` to ``limit`` characters, marking the cut."""
    if len(diff) <= limit:
        return diff
    return diff[:limit] + TRUNCATION_NOTICE


def files_in_diff(diff: str) -> list[str]:
    """Return the paths named in ``diff --git`` headers, in order."""
    files: list[str] = []
    for match in DIFF_HEADER_PATTERN.finditer(diff):
        path = match.group(2)
        if path not in files:
            files.append(path)
    return files


def message_from_diff(diff: str) -> str:
    """Build a commit message without a model.

    Example:
        >>> message_from_diff("diff --git a/app.py b/app.py\\n+print()")
        'chore: update app.py'
    """
    files = files_in_diff(diff)
    if not files:
        return "chore: update files"
    names = ", ".join(files[:MAX_FILES_IN_SUMMARY])
    extra = len(files) - MAX_FILES_IN_SUMMARY
    if extra > 0:
        names += f" and {extra} more"
    return f"chore: update {names}"


class CommitMessage(BaseModel):
    """A concise imperative git commit message for the diff."""

    commit_message: str = Field(description="Commit message without quotes, under 50 characters")
    type: CommitType | None = Field(None, description="Conventional commit type, if clear")


COMMIT_SYSTEM_PROMPT = (
    "Write a concise, descriptive git commit message for the given diff. "
    "Use the imperative mood, keep it under 50 characters, do not use quotes, "
    "and pick a conventional commit type (feat, fix, docs, style, refactor, "
    "test, chore) when one is clear. Answer only by calling the provided tool."
)


class CommitMessageGenerator:
    """Generates commit messages with the model, or from diff headers.

    Example:
        >>> generator = CommitMessageGenerator(config)
        >>> await generator.generate(diff)
        'fix: handle empty config file'
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        client: ClaudeClient | None = None,
    ) -> None:
        self.config = config or AppConfig()
        if client is None and self.config.model.enabled:
            client = ClaudeClient(self.config.model)
        self.client = client
        self._strategy: FallbackStrategy[str, str] = FallbackStrategy(
            message_from_diff,
            remote=self._generate_remote if client is not None else None,
            label="commit message",
        )

    @property
    def last_source(self) -> str | None:
        return self._strategy.last_source

    async def _generate_remote(self, diff: str) -> str:
        if self.client is None:
            raise ProviderError("No model client is configured for commit messages")
        limit = self.config.workflow.diff_char_limit
        result = await self.client.structured(
            f"Git diff:\n\n{truncate_diff(diff, limit)}",
            tool_name="emit_commit_message",
            output_model=CommitMessage,
            system=COMMIT_SYSTEM_PROMPT,
        )
        message = result.commit_message.strip().strip("\"'")
        if not message:
            raise ValueError("model returned an empty commit message")
        if result.type and not message.startswith(f"{result.type}:"):
            return f"{result.type}: {message}"
        return message

    async def generate(self, diff: str) -> str:
        """Return a commit message for ``diff``. Never raises."""
        return await self._strategy.run(diff)
