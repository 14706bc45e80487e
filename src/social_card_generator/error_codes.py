"""Structured error codes for machine-readable error handling.

Error codes follow the format: {DOMAIN}-{CATEGORY}-{NUMBER}

Error Domains:
    GEN - Generation errors (summarization, design generation, modification)
    FMT - Output format errors (JSON normalization)
    PRV - Provider errors (hosted models, CLI, OpenAI-compatible endpoints)
    CFG - Configuration errors

Usage:
    from social_card_generator.error_codes import ErrorCode

    logger.error(
        "design_generation_failed",
        error_code=ErrorCode.GEN_NO_DESIGNS.value,
        design_number=2,
    )
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Structured error codes for machine-readable handling.

    All error codes inherit from str for JSON serialization compatibility.
    """

    # =========================================================================
    # Generation Errors (GEN-xxx-xxx)
    # =========================================================================
    GEN_NO_DESIGNS = "GEN-EMPTY-001"
    """Design response contained no designs."""

    GEN_SUMMARY_INCOMPLETE = "GEN-EMPTY-002"
    """Summarization response lacked a title or summary."""

    GEN_NOTHING_TO_MODIFY = "GEN-INPUT-001"
    """Modification requested without existing designs."""

    GEN_STEP_FAILED = "GEN-STEP-001"
    """Unexpected error inside a pipeline step."""

    # =========================================================================
    # Format Errors (FMT-xxx-xxx)
    # =========================================================================
    FMT_NO_JSON = "FMT-JSON-001"
    """No JSON object found in the model output."""

    FMT_UNPARSEABLE = "FMT-JSON-002"
    """All normalizer tiers failed."""

    # =========================================================================
    # Provider Errors (PRV-xxx-xxx)
    # =========================================================================
    PRV_CONNECTION_REFUSED = "PRV-CONN-001"
    """Endpoint refused the connection."""

    PRV_DNS_FAILED = "PRV-CONN-002"
    """Endpoint host could not be resolved."""

    PRV_AUTH_FAILED = "PRV-AUTH-001"
    """API key rejected."""

    PRV_MODEL_NOT_FOUND = "PRV-MODEL-001"
    """Endpoint does not serve the configured model."""

    PRV_NO_LOCAL_MODELS = "PRV-MODEL-002"
    """Local runner has no models installed."""

    PRV_HTTP_ERROR = "PRV-HTTP-001"
    """Any other HTTP or transport failure."""

    PRV_EMPTY_COMPLETION = "PRV-EMPTY-001"
    """Backend returned no content."""

    PRV_CLI_EXIT = "PRV-CLI-001"
    """CLI process exited with a non-zero status."""

    PRV_CLI_SPAWN = "PRV-CLI-002"
    """CLI executable could not be started."""

    PRV_TIMEOUT = "PRV-TIMEOUT-001"
    """Backend call exceeded its timeout."""

    PRV_HOSTED_MODEL = "PRV-HOSTED-001"
    """Hosted language model raised an error."""

    PRV_RETRIES_EXHAUSTED = "PRV-RETRY-001"
    """Retry loop ended without recording an error."""

    # =========================================================================
    # Configuration Errors (CFG-xxx-xxx)
    # =========================================================================
    CFG_MISSING_KEY = "CFG-MISSING-001"
    """Required configuration value is missing."""

    CFG_INVALID = "CFG-INVALID-001"
    """Configuration value or file is invalid."""


def is_retriable(code: ErrorCode) -> bool:
    """Check whether an error code typically clears up on a fresh attempt."""
    retriable_codes = {
        ErrorCode.PRV_CONNECTION_REFUSED,
        ErrorCode.PRV_HTTP_ERROR,
        ErrorCode.PRV_EMPTY_COMPLETION,
        ErrorCode.PRV_TIMEOUT,
        ErrorCode.PRV_HOSTED_MODEL,
        ErrorCode.PRV_CLI_EXIT,
    }
    return code in retriable_codes


def get_error_severity(code: ErrorCode) -> str:
    """Get the severity level for an error code.

    Returns:
        Severity level: "critical", "error", "warning"
    """
    critical_codes = {
        ErrorCode.CFG_INVALID,
        ErrorCode.CFG_MISSING_KEY,
        ErrorCode.PRV_AUTH_FAILED,
        ErrorCode.PRV_NO_LOCAL_MODELS,
    }
    warning_codes = {
        ErrorCode.FMT_NO_JSON,
    }

    if code in critical_codes:
        return "critical"
    if code in warning_codes:
        return "warning"
    return "error"


def lookup_error_code(value: str | None) -> ErrorCode | None:
    """Map a raw ``error_code`` string back to its ErrorCode, if it is one."""
    if value is None:
        return None
    try:
        return ErrorCode(value)
    except ValueError:
        return None
