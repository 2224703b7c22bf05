# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""Errors raised by gitnl.

Every error derives from GitNLError and may carry a suggestion that the CLI
prints under the message. The engine treats anything raised from a step
action as a step failure and asks the user how to proceed; ExecutionError
and its subclasses are the errors steps raise on purpose.
"""

from __future__ import annotations

SUGGESTION_PREFIX = "💡 Suggestion: "
FIELD_PREFIX = "📋 Field: "


class GitNLError(Exception):
    """Root of the gitnl error tree.

    Attributes:
        suggestion: What the user can do about it, if anything is known.
    """

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        super().__init__(message)
        self.suggestion = suggestion

    def __str__(self) -> str:
        if not self.suggestion:
            return self.message
        return f"{self.message}\n\n{SUGGESTION_PREFIX}{self.suggestion}"

    @property
    def message(self) -> str:
        """The message alone, without the suggestion."""
        return self.args[0] if self.args else ""

    @property
    def error_type(self) -> str:
        """Class name shown in the title of CLI error panels."""
        return type(self).__name__


# Keyword in a configuration error message -> default suggestion
_CONFIG_HINTS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("api key", "api_key"), "Run 'gt config --key YOUR_API_KEY' or set ANTHROPIC_API_KEY"),
    (("fact",), "Declare the fact in the context schema before a step writes it"),
    (("type", "validation"), "Check the field type matches the expected schema type"),
)


class ConfigurationError(GitNLError):
    """The config file, an environment reference or a step's fact
    declarations are wrong.

    Attributes:
        field_path: Dotted path of the offending field, e.g. ``model.temperature``.
    """

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        field_path: str | None = None,
    ) -> None:
        self.field_path = field_path
        super().__init__(message, suggestion or self._hint(message, field_path))

    @staticmethod
    def _hint(message: str, field_path: str | None) -> str | None:
        lowered = message.lower()
        if "required" in lowered and not any(word in lowered for word in ("api key", "fact")):
            where = f" at {field_path}" if field_path else ""
            return f"Add the missing required field{where}"
        for keywords, hint in _CONFIG_HINTS:
            if any(word in lowered for word in keywords):
                return hint
        return None

    def __str__(self) -> str:
        parts = [self.message]
        if self.field_path:
            parts.append(f"{FIELD_PREFIX}{self.field_path}")
        if self.suggestion:
            parts.append(f"{SUGGESTION_PREFIX}{self.suggestion}")
        return "\n\n".join(parts)


class ValidationError(GitNLError):
    """A value has the wrong shape: a context fact of the wrong type, or a
    model answer that does not fit the requested output model."""

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        field_name: str | None = None,
        expected_type: str | None = None,
        actual_value: str | None = None,
    ) -> None:
        self.field_name = field_name
        self.expected_type = expected_type
        self.actual_value = actual_value
        if suggestion is None and expected_type:
            suggestion = f"Expected type '{expected_type}'"
            if actual_value:
                suggestion += f", but got '{actual_value}'"
        super().__init__(message, suggestion)


class ProviderError(GitNLError):
    """The model API call failed or returned something unusable.

    ``is_retryable`` is taken from the caller when given, otherwise from the
    HTTP status, otherwise from whether the message mentions a connection
    problem or a timeout.
    """

    RETRYABLE_CODES = frozenset({429, 500, 502, 503, 504})

    STATUS_HINTS = {
        401: "Check your API key with 'gt config --show'",
        404: "The requested model was not found. Check 'gt config --model'",
        429: "Rate limit exceeded. Local rules are used until the limit resets",
    }

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        status_code: int | None = None,
        is_retryable: bool | None = None,
    ) -> None:
        self.status_code = status_code
        lowered = message.lower()
        if is_retryable is None:
            if status_code is not None:
                is_retryable = status_code in self.RETRYABLE_CODES
            else:
                is_retryable = "connection" in lowered or "timeout" in lowered
        self._is_retryable = is_retryable

        if suggestion is None:
            suggestion = self.STATUS_HINTS.get(status_code or 0)
        if suggestion is None and "connection" in lowered:
            suggestion = "Check your network connection and base URL"
        super().__init__(message, suggestion)

    @property
    def is_retryable(self) -> bool:
        return self._is_retryable


class ExecutionError(GitNLError):
    """Something went wrong while a workflow was running.

    Attributes:
        step_id: The step that was running, when known.
    """

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        step_id: str | None = None,
    ) -> None:
        self.step_id = step_id
        super().__init__(message, suggestion)


class StepActionError(ExecutionError):
    """A step action could not do its job (a git command failed, a needed
    fact is missing)."""


class CommandRejectedError(ExecutionError):
    """The risk gate did not let a command run.

    Raised when the user declines, types the wrong verification code, or a
    high-risk command comes up while answers are assumed.
    """

    def __init__(
        self,
        message: str,
        *,
        command: str,
        risk_level: str,
        suggestion: str | None = None,
        step_id: str | None = None,
    ) -> None:
        self.command = command
        self.risk_level = risk_level
        if suggestion is None and risk_level == "high":
            suggestion = "High-risk commands need the verification code typed exactly"
        super().__init__(message, suggestion, step_id)


class HumanGateError(ExecutionError):
    """A prompt could not get an answer, e.g. required text in assume-yes mode."""
