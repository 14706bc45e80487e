"""Provider inspection CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from .providers_handler import run_list_providers
from .shared import get_config_and_logger


def register(app: typer.Typer) -> None:
    """Register provider commands on the given Typer app."""

    @app.command(name="providers")
    def providers(
        hosted: Annotated[
            bool,
            typer.Option(
                "--hosted/--no-hosted",
                help="Also list models from the hosted chat API",
            ),
        ] = True,
        config_path: Annotated[
            Path | None,
            typer.Option("--config", help="Path to social-cards.yaml", exists=True),
        ] = None,
        log_level: Annotated[
            str | None,
            typer.Option("--log-level", help="Log level (DEBUG, INFO, WARN, ERROR)"),
        ] = None,
    ) -> None:
        """Probe CLI providers and list available models."""
        config, logger = get_config_and_logger(config_path, log_level)
        run_list_providers(config, logger, include_hosted=hosted)
