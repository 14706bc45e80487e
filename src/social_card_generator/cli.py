"""Command-line interface for the social card generator."""

from __future__ import annotations

import typer

from .cli_commands import generation_commands, provider_commands

app = typer.Typer(
    name="social-cards",
    help="Generate social card designs for blog posts with an LLM.",
    no_args_is_help=True,
)

generation_commands.register(app)
provider_commands.register(app)


def cli() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    cli()
