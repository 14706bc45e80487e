"""Value types passed through the generation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

MIN_DESIGNS = 1
MAX_DESIGNS = 10


class ProviderKind(str, Enum):
    """Closed set of text-generation backends."""

    HOSTED = "hosted"
    CLI = "cli"
    OPENAI_COMPATIBLE = "openai_compatible"


@dataclass(frozen=True)
class CardDimensions:
    """Target pixel size of a social card."""

    width: int
    height: int

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"Card dimensions must be positive, got {self.width}x{self.height}"
            )

    @property
    def label(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass(frozen=True)
class ProviderHandle:
    """Identifies the backend selected for a request.

    ``identifier`` is the model id for hosted models, the shell command for
    CLI providers and the model name for OpenAI-compatible endpoints.
    """

    kind: ProviderKind
    identifier: str
    display_name: str = ""
    vendor: str = ""

    def __post_init__(self) -> None:
        if not self.identifier:
            raise ValueError("Provider identifier cannot be empty")

    @property
    def is_cli(self) -> bool:
        return self.kind is ProviderKind.CLI

    @property
    def label(self) -> str:
        return self.display_name or self.identifier


@dataclass(frozen=True)
class BlogSummary:
    """Title and summary extracted from a blog post."""

    title: str
    summary: str
    model_name: str = ""

    def __post_init__(self) -> None:
        if not self.title.strip():
            raise ValueError("Summary title cannot be empty")
        if not self.summary.strip():
            raise ValueError("Summary text cannot be empty")


@dataclass(frozen=True)
class CardDesign:
    """One generated card: a title and a self-contained HTML fragment."""

    title: str
    html: str
    generation_time_ms: int = 0

    def __post_init__(self) -> None:
        if self.generation_time_ms < 0:
            raise ValueError("Generation time cannot be negative")

    def with_generation_time(self, milliseconds: int) -> CardDesign:
        """Return a copy annotated with how long its call took."""
        return replace(self, generation_time_ms=max(0, int(milliseconds)))

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "html": self.html,
            "generationTimeMs": self.generation_time_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CardDesign:
        return cls(
            title=str(data.get("title", "")),
            html=str(data.get("html", "")),
            generation_time_ms=int(data.get("generationTimeMs", 0) or 0),
        )


@dataclass(frozen=True)
class GenerationResult:
    """Parsed design response: free-form analysis plus ordered designs."""

    analysis: str
    designs: tuple[CardDesign, ...] = ()

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> GenerationResult:
        """Build a result from a normalized JSON object.

        Entries that are not objects are skipped; titles and html are coerced
        to strings so a sloppy model cannot crash the pipeline here.
        """
        raw_designs = payload.get("designs")
        designs: list[CardDesign] = []
        if isinstance(raw_designs, list):
            for entry in raw_designs:
                if not isinstance(entry, dict):
                    continue
                title = entry.get("title")
                html = entry.get("html")
                designs.append(
                    CardDesign(
                        title="" if title is None else str(title),
                        html="" if html is None else str(html),
                    )
                )
        analysis = payload.get("analysis")
        return cls(
            analysis="" if analysis is None else str(analysis),
            designs=tuple(designs),
        )


@dataclass(frozen=True)
class GenerationRequest:
    """Immutable parameters of one generation run.

    The provider and cancellation token travel next to the request; they are
    live objects rather than request data.
    """

    content: str
    dimensions: CardDimensions
    design_count: int = 5
    guidance: str | None = None
    existing_designs: tuple[CardDesign, ...] = field(default_factory=tuple)
    source_id: str | None = None
    summary: BlogSummary | None = None

    def __post_init__(self) -> None:
        if not MIN_DESIGNS <= self.design_count <= MAX_DESIGNS:
            raise ValueError(
                f"Design count must be between {MIN_DESIGNS} and {MAX_DESIGNS}, "
                f"got {self.design_count}"
            )
        if not self.content.strip() and self.summary is None:
            raise ValueError("Source content cannot be empty")
