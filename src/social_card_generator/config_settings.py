"""Settings model for the social card generator."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .models import MAX_DESIGNS, MIN_DESIGNS, CardDimensions, ProviderHandle, ProviderKind


@dataclass(frozen=True)
class TokenUsageSettings:
    """Flags derived from a token usage level."""

    use_separate_requests_for_premium_models: bool
    always_use_mini_for_summary: bool
    skip_summary_step: bool


# 0 conservative, 1 balanced, 2 quality, 3 maximum
TOKEN_USAGE_LEVELS: dict[int, TokenUsageSettings] = {
    0: TokenUsageSettings(False, True, False),
    1: TokenUsageSettings(False, True, False),
    2: TokenUsageSettings(True, False, False),
    3: TokenUsageSettings(True, False, True),
}


class Config(BaseSettings):
    """Generator configuration using pydantic-settings.

    Values come from (highest first) explicit keyword arguments, which is how
    the YAML loader passes file values, then ``SOCIAL_CARD_*`` environment
    variables and a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="SOCIAL_CARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True,
    )

    # Generation
    number_of_designs: int = Field(
        default=5,
        ge=MIN_DESIGNS,
        le=MAX_DESIGNS,
        description="Designs generated per run",
    )
    prompt_mode: Literal["default", "append", "custom"] = Field(
        default="default",
        description="How custom prompt instructions combine with the built-in prompt",
    )
    custom_prompt_instructions: str = Field(
        default="",
        description=(
            "Custom design instructions. Supports {{title}}, {{summary}}, "
            "{{width}}, {{height}}, {{designNumber}} and {{numberOfDesigns}}"
        ),
    )
    custom_prompt_file: Path | None = Field(
        default=None,
        description="Prompt file whose body replaces custom_prompt_instructions",
    )
    use_separate_requests_for_premium_models: bool = Field(
        default=False,
        description="Quality mode: one request per design even on premium models",
    )
    skip_summary_step: bool = Field(
        default=False,
        description="Send the full post to the design step instead of a summary",
    )
    always_use_mini_for_summary: bool = Field(
        default=True,
        description="Summarize with the cheapest available model",
    )
    token_usage_level: int | None = Field(
        default=None,
        ge=0,
        le=3,
        description=(
            "Preset for the three flags above: 0 conservative, 1 balanced, "
            "2 quality, 3 maximum. Overrides them when set"
        ),
    )
    free_tier_vendors: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["copilot"],
        description="Hosted vendors whose models are billed as free/standard tier",
    )
    max_attempts: int = Field(default=3, ge=1, le=10, description="Attempts per call")
    default_width: int = Field(default=1200, gt=0)
    default_height: int = Field(default=630, gt=0)

    # Provider selection
    provider: Literal["hosted", "cli", "openai_compatible"] = Field(
        default="hosted", description="Backend used for design generation"
    )

    # Hosted (streaming chat completions)
    hosted_base_url: str = Field(default="https://api.openai.com/v1")
    hosted_api_key: str = Field(default="")
    hosted_model: str = Field(default="gpt-4o")
    hosted_vendor: str = Field(
        default="",
        description="Vendor label used for tier detection (defaults to the host name)",
    )

    # CLI
    cli_command: str = Field(default="", description="Shell command fed the prompt")
    cli_working_dir: Path | None = Field(default=None)
    cli_timeout: float | None = Field(
        default=None, gt=0, description="Seconds before a CLI run is killed"
    )
    ollama_model: str = Field(
        default="", description="Explicit model for the Ollama runner"
    )

    # OpenAI-compatible endpoint
    openai_compatible_base_url: str = Field(default="")
    openai_compatible_api_key: str = Field(default="")
    openai_compatible_model_name: str = Field(default="")

    llm_timeout: float = Field(
        default=300.0, gt=0, description="HTTP timeout in seconds"
    )

    # Persistence and logging
    state_file: Path = Field(
        default=Path("~/.social-card-generator/state.json"),
        description="Where the last used local model is remembered",
    )
    log_level: str = Field(default="INFO")
    log_dir: Path | None = Field(default=None)

    @field_validator("free_tier_vendors", mode="before")
    @classmethod
    def parse_vendor_list(cls, v: Any) -> list[str]:
        """Accept a comma-separated string as well as a list."""
        if v is None:
            return []
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        if isinstance(v, list | tuple):
            return [str(item).strip() for item in v if str(item).strip()]
        msg = f"free_tier_vendors must be string or list, got {type(v).__name__}"
        raise ValueError(msg)

    @field_validator(
        "state_file", "cli_working_dir", "log_dir", "custom_prompt_file", mode="before"
    )
    @classmethod
    def parse_path(cls, v: Any) -> Path | None:
        """Convert string to Path, expanding ``~``."""
        if v is None or v == "":
            return None
        if isinstance(v, str | Path):
            return Path(v).expanduser()
        msg = f"Path field must be string or Path, got {type(v).__name__}"
        raise ValueError(msg)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            msg = f"Invalid log level: {v}"
            raise ValueError(msg)
        return level

    @model_validator(mode="after")
    def validate_config(self) -> Config:
        """Cross-field checks."""
        if self.provider == "cli" and not self.cli_command.strip():
            msg = "cli_command is required when provider is 'cli'"
            raise ValueError(msg)
        return self

    def token_usage(self) -> TokenUsageSettings:
        """Effective batching/summary flags after applying the usage preset."""
        if self.token_usage_level is not None:
            return TOKEN_USAGE_LEVELS[self.token_usage_level]
        return TokenUsageSettings(
            use_separate_requests_for_premium_models=(
                self.use_separate_requests_for_premium_models
            ),
            always_use_mini_for_summary=self.always_use_mini_for_summary,
            skip_summary_step=self.skip_summary_step,
        )

    def default_dimensions(self) -> CardDimensions:
        return CardDimensions(self.default_width, self.default_height)

    def provider_handle(self) -> ProviderHandle:
        """Describe the configured backend."""
        kind = ProviderKind(self.provider)
        if kind is ProviderKind.CLI:
            return ProviderHandle(
                kind=kind,
                identifier=self.cli_command.strip(),
                display_name=f"CLI: {self.cli_command.strip()}",
            )
        if kind is ProviderKind.OPENAI_COMPATIBLE:
            name = self.openai_compatible_model_name or "openai-compatible"
            return ProviderHandle(
                kind=kind,
                identifier=name,
                display_name=f"OpenAI-Compatible: {name}",
            )
        return ProviderHandle(
            kind=kind,
            identifier=self.hosted_model,
            display_name=self.hosted_model,
            vendor=self.hosted_vendor,
        )
