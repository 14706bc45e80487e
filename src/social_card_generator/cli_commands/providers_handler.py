"""Providers command implementation logic."""

import asyncio
from typing import Any

import typer
from rich.table import Table

from social_card_generator.config import Config
from social_card_generator.exceptions import SocialCardError
from social_card_generator.generation.model_selection import (
    deduplicate_models,
    filter_supported_models,
    model_display_name,
    select_summary_model,
)
from social_card_generator.providers import (
    CliProvider,
    OpenAICompatibleProvider,
    ProviderFactory,
)

from .shared import EXIT_FAILURE, console, print_error

KNOWN_CLI_COMMANDS = ("claude", "codex", "gemini", "ollama")


async def _probe_cli(commands: list[str]) -> list[tuple[str, bool]]:
    results = await asyncio.gather(*(CliProvider.is_available(c) for c in commands))
    return list(zip(commands, results, strict=True))


def _cli_commands(config: Config) -> list[str]:
    commands = list(KNOWN_CLI_COMMANDS)
    configured = config.cli_command.split()
    if configured and configured[0] not in commands:
        commands.insert(0, configured[0])
    return commands


def run_list_providers(config: Config, logger: Any, include_hosted: bool) -> None:
    """Show CLI availability and the models each configured backend serves.

    Raises:
        typer.Exit: If the OpenAI-compatible endpoint is configured but unusable
    """
    console.print(f"\n[bold]Active provider:[/bold] {config.provider_handle().label}\n")

    cli_table = Table(title="CLI providers")
    cli_table.add_column("Command", style="cyan")
    cli_table.add_column("Available")
    for command, available in asyncio.run(_probe_cli(_cli_commands(config))):
        cli_table.add_row(command, "[green]yes[/green]" if available else "[red]no[/red]")
    console.print(cli_table)

    if include_hosted:
        catalog = ProviderFactory.catalog_from_config(config)
        models = deduplicate_models(filter_supported_models(asyncio.run(catalog.list_models())))
        summary_model = select_summary_model(models)
        hosted_table = Table(title=f"Hosted models ({config.hosted_base_url})")
        hosted_table.add_column("Model", style="cyan")
        hosted_table.add_column("Id")
        hosted_table.add_column("Vendor")
        for model in models:
            name = model_display_name(model)
            if summary_model is not None and model.id == summary_model.id:
                name += " [dim](summaries)[/dim]"
            hosted_table.add_row(name, model.id, model.vendor)
        console.print(hosted_table)
        logger.info("hosted_models_shown", count=len(models))

    if config.openai_compatible_base_url:
        try:
            provider = OpenAICompatibleProvider(
                base_url=config.openai_compatible_base_url,
                model_name=config.openai_compatible_model_name or "unset",
                api_key=config.openai_compatible_api_key,
                timeout=config.llm_timeout,
            )
            names = asyncio.run(provider.list_models())
        except SocialCardError as e:
            print_error(e)
            raise typer.Exit(code=EXIT_FAILURE) from e

        compat_table = Table(title=f"OpenAI-compatible models ({provider.base_url})")
        compat_table.add_column("Model", style="cyan")
        for name in names:
            marker = " [green](configured)[/green]" if name == provider.model_name else ""
            compat_table.add_row(name + marker)
        console.print(compat_table)
