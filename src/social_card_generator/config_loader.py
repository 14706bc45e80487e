"""Config loader utilities."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from .config_settings import Config
from .error_codes import ErrorCode
from .exceptions import ConfigurationError
from .utils.logging import get_logger

CONFIG_ENV_VAR = "SOCIAL_CARD_CONFIG"
DEFAULT_CONFIG_NAME = "social-cards.yaml"

_config: Config | None = None


def _candidate_paths(config_path: Path | None) -> list[Path]:
    if config_path:
        return [config_path.expanduser()]
    candidates: list[Path] = []
    env_path = os.getenv(CONFIG_ENV_VAR)
    if env_path:
        candidates.append(Path(env_path).expanduser())
    candidates.append(Path.cwd() / DEFAULT_CONFIG_NAME)
    return candidates


def _read_yaml(path: Path) -> dict[str, Any]:
    logger = get_logger(__name__)
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(
            "config_yaml_load_error",
            config_path=str(path),
            error=str(e),
            error_type=type(e).__name__,
        )
        msg = f"Failed to parse config file: {path}"
        suggestion = (
            "Check YAML syntax (indentation, colons, quotes) and that the file "
            f"is UTF-8. Original error: {e}"
        )
        raise ConfigurationError(
            msg, suggestion=suggestion, error_code=ErrorCode.CFG_INVALID.value
        ) from e

    if not isinstance(data, dict):
        msg = f"Config file must contain a mapping at the top level: {path}"
        raise ConfigurationError(msg, error_code=ErrorCode.CFG_INVALID.value)

    logger.debug("config_yaml_loaded", config_path=str(path), keys_count=len(data))
    return data


def load_config(
    config_path: Path | None = None, overrides: dict[str, Any] | None = None
) -> Config:
    """Load configuration from a YAML file, environment and ``.env``.

    Args:
        config_path: Explicit YAML file. When omitted, ``$SOCIAL_CARD_CONFIG``
            and ``./social-cards.yaml`` are tried in that order.
        overrides: Values that win over everything else (CLI options)

    Raises:
        ConfigurationError: If the file is unreadable or values are invalid
    """
    logger = get_logger(__name__)

    candidates = _candidate_paths(config_path)
    resolved_path = next((p for p in candidates if p.exists()), None)

    if config_path and resolved_path is None:
        msg = f"Config file not found: {config_path}"
        raise ConfigurationError(
            msg,
            suggestion="Check the --config path",
            error_code=ErrorCode.CFG_INVALID.value,
        )

    yaml_data: dict[str, Any] = {}
    if resolved_path:
        logger.debug("config_file_found", config_path=str(resolved_path))
        yaml_data = _read_yaml(resolved_path)
    else:
        logger.debug(
            "config_file_not_found", searched_paths=[str(p) for p in candidates]
        )

    known_fields = set(Config.model_fields)
    unknown = sorted(set(yaml_data) - known_fields)
    if unknown:
        logger.warning("config_warning", unknown_keys=unknown)

    kwargs = {k: v for k, v in yaml_data.items() if k in known_fields}
    kwargs.update({k: v for k, v in (overrides or {}).items() if v is not None})

    try:
        config = Config(**kwargs)
    except PydanticValidationError as e:
        logger.error(
            "config_validation_error",
            error=str(e),
            config_path=str(resolved_path) if resolved_path else None,
        )
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigurationError(
            f"Invalid configuration: {problems}",
            suggestion="Fix the listed settings in your config file or environment",
            error_code=ErrorCode.CFG_INVALID.value,
        ) from e

    logger.debug(
        "config_loaded",
        provider=config.provider,
        number_of_designs=config.number_of_designs,
        prompt_mode=config.prompt_mode,
    )
    return config


def get_config() -> Config:
    """Get singleton config instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: Config) -> None:
    """Set singleton config instance (for testing)."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset global config instance (for testing only)."""
    global _config
    _config = None


__all__ = ["Config", "get_config", "load_config", "reset_config", "set_config"]
