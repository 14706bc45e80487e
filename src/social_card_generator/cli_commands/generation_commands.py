"""Design generation CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from social_card_generator.models import MAX_DESIGNS, MIN_DESIGNS

from .generate_handler import run_generate, run_modify
from .shared import get_config_and_logger


def register(app: typer.Typer) -> None:
    """Register generation commands on the given Typer app."""

    @app.command(name="generate")
    def generate(
        post: Annotated[
            Path,
            typer.Argument(help="Blog post (Markdown or text) to design cards for"),
        ],
        width: Annotated[
            int | None,
            typer.Option("--width", "-W", help="Card width in pixels", min=1),
        ] = None,
        height: Annotated[
            int | None,
            typer.Option("--height", "-H", help="Card height in pixels", min=1),
        ] = None,
        count: Annotated[
            int | None,
            typer.Option(
                "--count",
                "-c",
                help="Number of designs (defaults to number_of_designs)",
                min=MIN_DESIGNS,
                max=MAX_DESIGNS,
            ),
        ] = None,
        guidance: Annotated[
            str | None,
            typer.Option(
                "--guidance",
                "-g",
                help="Extra instructions for this run only",
            ),
        ] = None,
        output_dir: Annotated[
            Path,
            typer.Option("--output-dir", "-o", help="Directory for design files"),
        ] = Path("social-cards"),
        provider: Annotated[
            str | None,
            typer.Option(
                "--provider",
                help="Backend to use: hosted, cli or openai_compatible",
            ),
        ] = None,
        cli_command: Annotated[
            str | None,
            typer.Option("--cli-command", help="Command for the cli provider"),
        ] = None,
        json_output: Annotated[
            bool,
            typer.Option("--json", help="Print the designs document as JSON"),
        ] = False,
        trace: Annotated[
            bool,
            typer.Option("--trace", help="Echo prompts and replies to stderr"),
        ] = False,
        config_path: Annotated[
            Path | None,
            typer.Option("--config", help="Path to social-cards.yaml", exists=True),
        ] = None,
        log_level: Annotated[
            str | None,
            typer.Option("--log-level", help="Log level (DEBUG, INFO, WARN, ERROR)"),
        ] = None,
        verbose: Annotated[
            bool,
            typer.Option("--verbose", "-v", help="Show all log messages"),
        ] = False,
    ) -> None:
        """Generate social card designs for a blog post."""
        config, logger = get_config_and_logger(
            config_path,
            log_level,
            overrides={"provider": provider, "cli_command": cli_command},
            verbose=verbose,
        )
        run_generate(
            config=config,
            logger=logger,
            post=post,
            width=width,
            height=height,
            count=count,
            guidance=guidance,
            output_dir=output_dir,
            json_output=json_output,
            show_trace=trace,
        )

    @app.command(name="modify")
    def modify(
        designs_file: Annotated[
            Path,
            typer.Argument(help="designs.json written by a previous run", exists=True),
        ],
        instruction: Annotated[
            str,
            typer.Argument(help='What to change, e.g. "make design 2 darker"'),
        ],
        output_dir: Annotated[
            Path | None,
            typer.Option(
                "--output-dir",
                "-o",
                help="Directory for design files (defaults to the designs.json folder)",
            ),
        ] = None,
        provider: Annotated[
            str | None,
            typer.Option(
                "--provider",
                help="Backend to use: hosted, cli or openai_compatible",
            ),
        ] = None,
        cli_command: Annotated[
            str | None,
            typer.Option("--cli-command", help="Command for the cli provider"),
        ] = None,
        json_output: Annotated[
            bool,
            typer.Option("--json", help="Print the designs document as JSON"),
        ] = False,
        trace: Annotated[
            bool,
            typer.Option("--trace", help="Echo prompts and replies to stderr"),
        ] = False,
        config_path: Annotated[
            Path | None,
            typer.Option("--config", help="Path to social-cards.yaml", exists=True),
        ] = None,
        log_level: Annotated[
            str | None,
            typer.Option("--log-level", help="Log level (DEBUG, INFO, WARN, ERROR)"),
        ] = None,
    ) -> None:
        """Apply a change request to previously generated designs."""
        config, logger = get_config_and_logger(
            config_path,
            log_level,
            overrides={"provider": provider, "cli_command": cli_command},
        )
        run_modify(
            config=config,
            logger=logger,
            designs_file=designs_file,
            instruction=instruction,
            output_dir=output_dir,
            json_output=json_output,
            show_trace=trace,
        )
