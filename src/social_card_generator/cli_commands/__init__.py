"""CLI command modules for social-card-generator.

- shared.py: Common utilities (config/logger loading, console)
- console_sink.py: Terminal output sink that writes design files
- generate_handler.py: Generate and modify command implementation
- providers_handler.py: Providers command implementation
"""

from .generate_handler import run_generate, run_modify
from .providers_handler import run_list_providers
from .shared import console, get_config_and_logger

__all__ = [
    "console",
    "get_config_and_logger",
    "run_generate",
    "run_list_providers",
    "run_modify",
]
