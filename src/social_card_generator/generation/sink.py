"""Receivers for progress, streamed designs and trace output."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from social_card_generator.models import CardDesign


@runtime_checkable
class OutputSink(Protocol):
    """Where a generation run reports to.

    Implementations decide how to display things; the generator only calls
    these methods, in order, from the running task.
    """

    def progress(
        self, status: str, current: int | None = None, total: int | None = None
    ) -> None: ...

    def design(self, design: CardDesign, designs_so_far: Sequence[CardDesign]) -> None: ...

    def debug(self, text: str) -> None: ...

    def completed(self, designs: Sequence[CardDesign]) -> None: ...

    def error(self, message: str) -> None: ...

    def stopped(self) -> None: ...


class NullSink:
    """Discards everything."""

    def progress(
        self, status: str, current: int | None = None, total: int | None = None
    ) -> None:
        pass

    def design(self, design: CardDesign, designs_so_far: Sequence[CardDesign]) -> None:
        pass

    def debug(self, text: str) -> None:
        pass

    def completed(self, designs: Sequence[CardDesign]) -> None:
        pass

    def error(self, message: str) -> None:
        pass

    def stopped(self) -> None:
        pass


@dataclass
class CollectingSink:
    """Records every notification; used by tests and the CLI's JSON output."""

    progress_events: list[tuple[str, int | None, int | None]] = field(default_factory=list)
    streamed: list[CardDesign] = field(default_factory=list)
    debug_lines: list[str] = field(default_factory=list)
    final_designs: list[CardDesign] | None = None
    errors: list[str] = field(default_factory=list)
    stop_count: int = 0

    def progress(
        self, status: str, current: int | None = None, total: int | None = None
    ) -> None:
        self.progress_events.append((status, current, total))

    def design(self, design: CardDesign, designs_so_far: Sequence[CardDesign]) -> None:
        self.streamed.append(design)

    def debug(self, text: str) -> None:
        self.debug_lines.append(text)

    def completed(self, designs: Sequence[CardDesign]) -> None:
        self.final_designs = list(designs)

    def error(self, message: str) -> None:
        self.errors.append(message)

    def stopped(self) -> None:
        self.stop_count += 1

    @property
    def trace(self) -> str:
        return "".join(self.debug_lines)
