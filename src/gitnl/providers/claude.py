# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""Anthropic Claude client with tool-based structured output.

Every model call gitnl makes wants a small structured answer (a plan, a
risk level, a commit message). The client forces a single tool call whose
input schema is the JSON schema of a pydantic model and validates the tool
input back into that model.

Error Handling Strategy:
- ProviderError: API failures, network errors, missing tool output.
  Callers fall back to local strategies on any ProviderError.
- ValidationError: the tool input did not match the requested model.
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import anthropic
from anthropic import AsyncAnthropic
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from gitnl.config.schema import ModelConfig
from gitnl.exceptions import ProviderError, ValidationError

logger = logging.getLogger(__name__)

OutputT = TypeVar("OutputT", bound=BaseModel)


class ClaudeClient:
    """Thin async wrapper over ``anthropic.AsyncAnthropic``.

    Example:
        >>> client = ClaudeClient(config.model)
        >>> proposal = await client.structured(
        ...     "commit and push my work",
        ...     tool_name="emit_plan",
        ...     output_model=PlanProposal,
        ... )
        >>> await client.close()
    """

    def __init__(self, config: ModelConfig, client: Any | None = None) -> None:
        """Initialize the client.

        Args:
            config: Model connection settings.
            client: Pre-built SDK client (used by tests).

        Raises:
            ProviderError: If no API key is configured and no client is given.
        """
        self.config = config
        if client is not None:
            self._client = client
            return

        if not config.api_key:
            raise ProviderError(
                "No API key configured for model calls",
                suggestion="Run 'gt config --key YOUR_API_KEY' or set ANTHROPIC_API_KEY",
                is_retryable=False,
            )

        kwargs: dict[str, Any] = {"api_key": config.api_key, "timeout": config.timeout}
        if config.base_url:
            kwargs["base_url"] = config.base_url
        self._client = AsyncAnthropic(**kwargs)
        logger.debug(
            "Initialized Claude client (model=%s, sdk=%s)",
            config.model,
            getattr(anthropic, "__version__", "unknown"),
        )

    async def structured(
        self,
        prompt: str,
        tool_name: str,
        output_model: type[OutputT],
        system: str | None = None,
    ) -> OutputT:
        """Ask the model for a structured answer.

        Args:
            prompt: User message.
            tool_name: Name of the forced tool.
            output_model: Pydantic model describing the expected answer.
            system: Optional system prompt.

        Returns:
            The validated answer.

        Raises:
            ProviderError: If the API call fails or no tool call is returned.
            ValidationError: If the tool input does not match ``output_model``.
        """
        if self._client is None:
            raise ProviderError("Claude client is closed", is_retryable=False)

        tool = {
            "name": tool_name,
            "description": (output_model.__doc__ or f"Return a {output_model.__name__}").strip(),
            "input_schema": output_model.model_json_schema(),
        }
        request: dict[str, Any] = {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "messages": [{"role": "user", "content": prompt}],
            "tools": [tool],
            "tool_choice": {"type": "tool", "name": tool_name},
        }
        if system:
            request["system"] = system

        try:
            response = await self._client.messages.create(**request)
        except anthropic.APIStatusError as e:
            raise ProviderError(
                f"Claude API error: {e}",
                status_code=e.status_code,
            ) from e
        except anthropic.APIError as e:
            raise ProviderError(f"Claude API call failed: {e}") from e

        payload = self._extract_tool_input(response, tool_name)
        if payload is None:
            raise ProviderError(
                f"Claude response contained no '{tool_name}' tool call",
                is_retryable=False,
            )

        try:
            return output_model.model_validate(payload)
        except PydanticValidationError as e:
            raise ValidationError(
                f"Claude returned invalid {output_model.__name__}: {e.errors()[0]['msg']}",
                field_name=".".join(str(x) for x in e.errors()[0]["loc"]) or None,
            ) from e

    @staticmethod
    def _extract_tool_input(response: Any, tool_name: str) -> dict[str, Any] | None:
        for block in getattr(response, "content", None) or []:
            if getattr(block, "type", None) == "tool_use" and block.name == tool_name:
                return dict(block.input)
        return None

    async def close(self) -> None:
        """Release the underlying HTTP client."""
        if self._client is not None:
            await self._client.close()
            self._client = None
            logger.debug("Claude client closed")
