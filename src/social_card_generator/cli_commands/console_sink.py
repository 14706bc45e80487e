"""Output sink that reports to the terminal and writes design files."""

from collections.abc import Sequence
from pathlib import Path

from rich.console import Console

from social_card_generator.models import CardDesign
from social_card_generator.utils.io import write_text_atomic

from .shared import console as default_console


def design_filename(index: int) -> str:
    return f"design-{index:02d}.html"


class RichConsoleSink:
    """Prints progress with rich and writes each design as it arrives.

    Trace text (prompts and reply previews) goes to stderr, and only when
    ``show_trace`` is set.
    """

    def __init__(
        self,
        output_dir: Path,
        show_trace: bool = False,
        console: Console | None = None,
        quiet: bool = False,
    ):
        self.output_dir = output_dir
        self.show_trace = show_trace
        self.console = console or default_console
        self.err_console = Console(stderr=True, highlight=False)
        self.quiet = quiet
        self.written: list[Path] = []

    def _say(self, message: str) -> None:
        if not self.quiet:
            self.console.print(message)

    def _write(self, index: int, design: CardDesign) -> Path:
        path = write_text_atomic(self.output_dir / design_filename(index), design.html)
        if path not in self.written:
            self.written.append(path)
        return path

    def progress(
        self, status: str, current: int | None = None, total: int | None = None
    ) -> None:
        self._say(f"[cyan]{status}[/cyan]")

    def design(self, design: CardDesign, designs_so_far: Sequence[CardDesign]) -> None:
        index = len(designs_so_far)
        path = self._write(index, design)
        self._say(
            f"[green]Design {index}:[/green] {design.title} "
            f"[dim]({design.generation_time_ms} ms, {path.name})[/dim]"
        )

    def debug(self, text: str) -> None:
        if self.show_trace:
            self.err_console.out(text, end="")

    def completed(self, designs: Sequence[CardDesign]) -> None:
        for index, design in enumerate(designs, start=1):
            self._write(index, design)
        self._say(f"\n[bold green]Generated {len(designs)} design(s)[/bold green]")

    def error(self, message: str) -> None:
        self.console.print(f"\n[bold red]Error:[/bold red] {message}")

    def stopped(self) -> None:
        self.console.print("\n[yellow]Generation stopped[/yellow]")
