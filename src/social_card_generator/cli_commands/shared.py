"""Shared utilities for CLI commands."""

from pathlib import Path
from typing import Any

import typer
from rich.console import Console

from social_card_generator.config import Config, load_config, set_config
from social_card_generator.exceptions import SocialCardError
from social_card_generator.utils.logging import configure_logging, get_logger

# Shared console for all commands
console = Console()

EXIT_FAILURE = 1
EXIT_CANCELLED = 130


def print_error(error: SocialCardError) -> None:
    console.print(f"\n[bold red]Error:[/bold red] {error.message}")
    if error.suggestion:
        console.print(f"[yellow]Suggestion:[/yellow] {error.suggestion}")


def get_config_and_logger(
    config_path: Path | None = None,
    log_level: str | None = None,
    overrides: dict[str, Any] | None = None,
    verbose: bool = False,
) -> tuple[Config, Any]:
    """Load configuration and logger for one command invocation.

    Args:
        config_path: Optional path to config file
        log_level: Console log level; defaults to the configured level
        overrides: Setting values passed on the command line
        verbose: Show all log messages on the terminal

    Returns:
        Tuple of (Config, Logger)

    Raises:
        typer.Exit: If the configuration cannot be loaded
    """
    try:
        config = load_config(config_path, overrides=overrides)
    except SocialCardError as e:
        configure_logging(log_level or "INFO", verbose=verbose)
        print_error(e)
        raise typer.Exit(code=EXIT_FAILURE) from e

    set_config(config)
    configure_logging(
        log_level or config.log_level,
        log_dir=config.log_dir,
        verbose=verbose,
    )
    return config, get_logger("cli")
