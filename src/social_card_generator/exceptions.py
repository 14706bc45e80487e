"""Centralized exception hierarchy for social-card-generator.

All errors raised by the generation pipeline inherit from SocialCardError,
so callers can catch every pipeline failure with a single except clause.

Exception Hierarchy:
    SocialCardError (base)
     ConfigurationError - Configuration loading/validation errors
     ProviderError - Text-generation backend failures
        ProviderConnectionError - Backend unreachable (refused, DNS)
        ProviderTimeoutError - Backend took too long
        ProviderAuthenticationError - Backend rejected the credentials
        ModelNotFoundError - Backend does not know the requested model
     FormatError - Model output could not be coerced into JSON
     ValidationError - JSON parsed but required fields are missing
     GenerationError - Unexpected failure inside a pipeline step

    CancellationError (separate) - User-initiated stop. Not a SocialCardError:
    stopping is a neutral outcome, not a failure.

Usage Examples:
    try:
        designs = await generator.generate_designs(...)
    except CancellationError:
        sink.stopped()
    except SocialCardError as e:
        sink.error(e.message)

    from social_card_generator.error_codes import ErrorCode

    raise ProviderError(
        "CLI command 'claude' failed with exit code 2",
        error_code=ErrorCode.PRV_CLI_EXIT.value,
        context={"exit_code": 2},
    )
"""

from typing import Any


class SocialCardError(Exception):
    """Base exception for all generation errors.

    Attributes:
        message: Human-readable error message
        suggestion: Optional suggestion for resolving the error
        error_code: Structured error code for machine-readable handling
        context: Additional context for debugging (e.g., model names, steps)
    """

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        error_code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        self.message = message
        self.suggestion = suggestion
        self.error_code = error_code
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with error code and suggestion if available."""
        parts = []
        if self.error_code:
            parts.append(f"[{self.error_code}] {self.message}")
        else:
            parts.append(self.message)
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def with_message(self, message: str, **context: Any) -> "SocialCardError":
        """Return a copy of this error of the same type with a new message.

        Used to qualify an error with the pipeline step that produced it while
        keeping its type, suggestion and error code.
        """
        return type(self)(
            message,
            suggestion=self.suggestion,
            error_code=self.error_code,
            context={**self.context, **context},
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for structured logging."""
        return {
            "message": self.message,
            "error_code": self.error_code,
            "suggestion": self.suggestion,
            "context": self.context,
            "type": type(self).__name__,
        }


class CancellationError(Exception):
    """Raised when the user stops a generation.

    Kept outside the SocialCardError hierarchy so that ``except
    SocialCardError`` never turns a stop into a reported failure.
    """

    def __init__(self, message: str = "Operation cancelled"):
        self.message = message
        super().__init__(message)


# Configuration Errors


class ConfigurationError(SocialCardError):
    """Configuration loading or validation errors.

    Raised when:
    - Config file is missing or malformed
    - Required configuration values are missing (base URL, model name)
    - Configuration values fail validation
    """


# Provider Errors


class ProviderError(SocialCardError):
    """Text-generation backend errors.

    Base class for hosted-model, CLI and OpenAI-compatible failures. These are
    the errors the retry controller exists for.
    """


class ProviderConnectionError(ProviderError):
    """Backend connection failures.

    Raised when:
    - The endpoint refuses the connection
    - The base URL host cannot be resolved
    """


class ProviderTimeoutError(ProviderError):
    """Backend request timeouts."""


class ProviderAuthenticationError(ProviderError):
    """Backend rejected the API key (HTTP 401)."""


class ModelNotFoundError(ProviderError):
    """Backend does not serve the configured model (HTTP 404)."""


# Output Errors


class FormatError(SocialCardError):
    """LLM output could not be parsed as JSON by any normalizer tier."""


class ValidationError(SocialCardError):
    """Parsed output is missing required semantic fields.

    Raised when:
    - Summary has an empty title or summary
    - Design response contains no designs
    - Modification is requested with no designs to modify
    """


class GenerationError(SocialCardError):
    """Unexpected failure inside a generation step."""
