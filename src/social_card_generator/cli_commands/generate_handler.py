"""Generate and modify command implementation logic."""

import asyncio
import json
import signal
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path
from typing import Any

import typer

from social_card_generator.config import Config
from social_card_generator.exceptions import SocialCardError
from social_card_generator.generation import (
    CardGenerator,
    GenerationSession,
    GenerationState,
    SessionOutcome,
)
from social_card_generator.generation.model_selection import (
    deduplicate_models,
    filter_supported_models,
)
from social_card_generator.models import CardDesign, CardDimensions, GenerationRequest
from social_card_generator.providers import BaseProvider, ProviderFactory
from social_card_generator.providers.hosted import ChatModel
from social_card_generator.utils.io import write_text_atomic

from .console_sink import RichConsoleSink
from .shared import EXIT_CANCELLED, EXIT_FAILURE, console, print_error

DESIGNS_FILE = "designs.json"


def _run_session(
    session: GenerationSession,
    run: Callable[[], Awaitable[SessionOutcome]],
) -> SessionOutcome:
    """Run a session coroutine, turning Ctrl-C into a session cancel."""

    async def main() -> SessionOutcome:
        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, session.cancel)
        except (NotImplementedError, RuntimeError):
            pass
        try:
            return await run()
        finally:
            try:
                loop.remove_signal_handler(signal.SIGINT)
            except (NotImplementedError, RuntimeError):
                pass

    return asyncio.run(main())


async def _summary_candidates(config: Config) -> list[ChatModel]:
    if config.provider != "hosted":
        return []
    catalog = ProviderFactory.catalog_from_config(config)
    models = await catalog.list_models()
    return deduplicate_models(filter_supported_models(models))


def _create_provider(config: Config) -> BaseProvider:
    try:
        return ProviderFactory.create_from_config(config)
    except SocialCardError as e:
        print_error(e)
        raise typer.Exit(code=EXIT_FAILURE) from e


def _create_generator(config: Config) -> CardGenerator:
    try:
        return CardGenerator.from_config(config)
    except SocialCardError as e:
        print_error(e)
        raise typer.Exit(code=EXIT_FAILURE) from e


def designs_document(
    designs: Sequence[CardDesign],
    dimensions: CardDimensions,
    title: str = "",
    model_name: str = "",
) -> dict[str, Any]:
    return {
        "title": title,
        "modelName": model_name,
        "dimensions": {"width": dimensions.width, "height": dimensions.height},
        "designs": [design.to_dict() for design in designs],
    }


def load_designs_document(
    path: Path, default_dimensions: CardDimensions
) -> tuple[list[CardDesign], CardDimensions]:
    """Read designs and dimensions from a ``designs.json`` file.

    Raises:
        typer.Exit: If the file is missing or malformed
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        designs = [CardDesign.from_dict(entry) for entry in data.get("designs", [])]
        raw_dimensions = data.get("dimensions") or {}
        dimensions = CardDimensions(
            int(raw_dimensions.get("width", default_dimensions.width)),
            int(raw_dimensions.get("height", default_dimensions.height)),
        )
    except (OSError, ValueError, AttributeError, TypeError) as e:
        console.print(f"\n[bold red]Error:[/bold red] Cannot read designs from {path}: {e}")
        raise typer.Exit(code=EXIT_FAILURE) from e
    return designs, dimensions


def _finish(
    outcome: SessionOutcome,
    sink: RichConsoleSink,
    dimensions: CardDimensions,
    json_output: bool,
    logger: Any,
) -> None:
    if outcome.state is GenerationState.CANCELLED:
        raise typer.Exit(code=EXIT_CANCELLED)
    if outcome.state is GenerationState.FAILED:
        if outcome.suggestion:
            console.print(f"[yellow]Suggestion:[/yellow] {outcome.suggestion}")
        raise typer.Exit(code=EXIT_FAILURE)

    document = designs_document(
        outcome.designs, dimensions, outcome.title, outcome.model_name
    )
    text = json.dumps(document, indent=2, ensure_ascii=False)
    designs_path = write_text_atomic(sink.output_dir / DESIGNS_FILE, text)
    logger.info(
        "designs_written",
        output_dir=str(sink.output_dir),
        count=len(outcome.designs),
        designs_file=str(designs_path),
    )
    if json_output:
        console.out(text, highlight=False)
    else:
        console.print(f"[dim]Saved to {sink.output_dir}[/dim]")


def run_generate(
    config: Config,
    logger: Any,
    post: Path,
    width: int | None,
    height: int | None,
    count: int | None,
    guidance: str | None,
    output_dir: Path,
    json_output: bool,
    show_trace: bool,
) -> None:
    """Execute the generate operation.

    Raises:
        typer.Exit: 1 on failure, 130 when stopped with Ctrl-C
    """
    try:
        content = post.read_text(encoding="utf-8")
    except OSError as e:
        console.print(f"\n[bold red]Error:[/bold red] Cannot read {post}: {e}")
        raise typer.Exit(code=EXIT_FAILURE) from e

    try:
        dimensions = CardDimensions(
            width or config.default_width, height or config.default_height
        )
        request = GenerationRequest(
            content=content,
            dimensions=dimensions,
            design_count=count or config.number_of_designs,
            guidance=guidance,
            source_id=str(post.resolve()),
        )
    except ValueError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=EXIT_FAILURE) from e

    provider = _create_provider(config)
    session = GenerationSession(_create_generator(config))
    sink = RichConsoleSink(output_dir, show_trace=show_trace, quiet=json_output)

    logger.info(
        "generate_command_started",
        post=str(post),
        provider=provider.display_name,
        count=request.design_count,
        dimensions=dimensions.label,
    )

    async def run() -> SessionOutcome:
        candidates = await _summary_candidates(config)
        return await session.generate(request, provider, sink, candidates)

    outcome = _run_session(session, run)
    _finish(outcome, sink, dimensions, json_output, logger)


def run_modify(
    config: Config,
    logger: Any,
    designs_file: Path,
    instruction: str,
    output_dir: Path | None,
    json_output: bool,
    show_trace: bool,
) -> None:
    """Execute the modify operation.

    Raises:
        typer.Exit: 1 on failure, 130 when stopped with Ctrl-C
    """
    designs, dimensions = load_designs_document(designs_file, config.default_dimensions())
    provider = _create_provider(config)
    session = GenerationSession(_create_generator(config))
    sink = RichConsoleSink(
        output_dir or designs_file.parent, show_trace=show_trace, quiet=json_output
    )

    logger.info(
        "modify_command_started",
        designs_file=str(designs_file),
        design_count=len(designs),
        provider=provider.display_name,
    )

    outcome = _run_session(
        session,
        lambda: session.modify(
            instruction, provider, sink, designs=designs, dimensions=dimensions
        ),
    )
    _finish(outcome, sink, dimensions, json_output, logger)
