"""Test that the exceptions module works correctly."""

from gitnl.exceptions import (
    CommandRejectedError,
    ConfigurationError,
    ExecutionError,
    GitNLError,
    HumanGateError,
    ProviderError,
    StepActionError,
    ValidationError,
)


class TestGitNLError:
    """Tests for the base GitNLError class."""

    def test_basic_error_message(self) -> None:
        """Test that basic error message is preserved."""
        error = GitNLError("Something went wrong")
        assert str(error) == "Something went wrong"
        assert error.message == "Something went wrong"

    def test_error_with_suggestion(self) -> None:
        """Test that the formatted message includes the suggestion."""
        error = GitNLError("Something went wrong", suggestion="Try doing X instead")
        assert "Something went wrong" in str(error)
        assert "💡 Suggestion: Try doing X instead" in str(error)
        assert error.message == "Something went wrong"

    def test_no_suggestion(self) -> None:
        """Test that suggestion is None when not provided."""
        assert GitNLError("Error").suggestion is None

    def test_error_type(self) -> None:
        """Test that error_type reports the concrete class name."""
        assert StepActionError("boom").error_type == "StepActionError"


class TestConfigurationError:
    """Tests for ConfigurationError."""

    def test_field_path_in_message(self) -> None:
        """Test that the field path is rendered."""
        error = ConfigurationError("Bad value", field_path="model.temperature")
        assert error.field_path == "model.temperature"
        assert "📋 Field: model.temperature" in str(error)

    def test_generated_suggestion_for_facts(self) -> None:
        """Test that undeclared fact errors get a suggestion."""
        error = ConfigurationError("Step 'x' writes undeclared fact(s): y")
        assert error.suggestion is not None
        assert "Declare the fact" in error.suggestion

    def test_explicit_suggestion_wins(self) -> None:
        """Test that an explicit suggestion is not replaced."""
        error = ConfigurationError("api key missing", suggestion="Do this")
        assert error.suggestion == "Do this"


class TestValidationError:
    """Tests for ValidationError."""

    def test_suggestion_from_expected_type(self) -> None:
        """Test that expected and actual values build a suggestion."""
        error = ValidationError(
            "Wrong type",
            field_name="has_changes",
            expected_type="bool",
            actual_value="'yes'",
        )
        assert error.field_name == "has_changes"
        assert error.suggestion == "Expected type 'bool', but got ''yes''"


class TestProviderError:
    """Tests for ProviderError."""

    def test_retryable_status_codes(self) -> None:
        """Test that 429 and 5xx are retryable."""
        assert ProviderError("limited", status_code=429).is_retryable
        assert ProviderError("server", status_code=503).is_retryable
        assert not ProviderError("bad key", status_code=401).is_retryable

    def test_override_retryable(self) -> None:
        """Test that is_retryable can be forced."""
        assert not ProviderError("connection reset", is_retryable=False).is_retryable

    def test_connection_message_is_retryable(self) -> None:
        """Test that connection failures without status are retryable."""
        assert ProviderError("Connection refused").is_retryable

    def test_suggestion_for_unauthorized(self) -> None:
        """Test the suggestion for a 401."""
        error = ProviderError("Unauthorized", status_code=401)
        assert "gt config --show" in (error.suggestion or "")


class TestExecutionErrors:
    """Tests for the execution error family."""

    def test_step_action_error_is_execution_error(self) -> None:
        """Test the hierarchy used by the engine's failure boundary."""
        error = StepActionError("Commit failed", step_id="git-commit")
        assert isinstance(error, ExecutionError)
        assert isinstance(error, GitNLError)
        assert error.step_id == "git-commit"

    def test_command_rejected_error(self) -> None:
        """Test that the rejected command and level are kept."""
        error = CommandRejectedError(
            "Command declined",
            command="git reset --hard HEAD",
            risk_level="high",
        )
        assert error.command == "git reset --hard HEAD"
        assert error.risk_level == "high"
        assert error.suggestion is not None

    def test_command_rejected_low_has_no_default_suggestion(self) -> None:
        """Test that only high-risk rejections get the code suggestion."""
        error = CommandRejectedError("declined", command="git add -A", risk_level="low")
        assert error.suggestion is None

    def test_human_gate_error(self) -> None:
        """Test HumanGateError is an ExecutionError."""
        assert isinstance(HumanGateError("no input"), ExecutionError)
