"""Configuration entrypoint (re-exported from split modules)."""

from .config_loader import get_config, load_config, reset_config, set_config
from .config_settings import TOKEN_USAGE_LEVELS, Config, TokenUsageSettings

__all__ = [
    "TOKEN_USAGE_LEVELS",
    "Config",
    "TokenUsageSettings",
    "get_config",
    "load_config",
    "reset_config",
    "set_config",
]
