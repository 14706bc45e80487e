"""One interactive generation session: state, supersession and caching."""

import asyncio
import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from social_card_generator.cancellation import CancellationToken
from social_card_generator.error_codes import (
    ErrorCode,
    get_error_severity,
    is_retriable,
    lookup_error_code,
)
from social_card_generator.exceptions import (
    CancellationError,
    SocialCardError,
    ValidationError,
)
from social_card_generator.models import (
    BlogSummary,
    CardDesign,
    CardDimensions,
    GenerationRequest,
)
from social_card_generator.providers.base import BaseProvider
from social_card_generator.providers.hosted import ChatModel
from social_card_generator.utils.logging import get_logger

from .card_generator import STEP_PREFIX, CardGenerator
from .sink import NullSink, OutputSink

logger = get_logger(__name__)

SKIPPED_SUMMARY_MODEL = "N/A (skip summary)"
DEFAULT_TITLE = "Blog Post"
MAX_TITLE_LENGTH = 100
_HEADING_RE = re.compile(r"^#+\s*")


class GenerationState(str, Enum):
    IDLE = "idle"
    SUMMARIZING = "summarizing"
    DESIGNING = "designing"
    MODIFYING = "modifying"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class SessionOutcome:
    """How a run ended."""

    state: GenerationState
    designs: tuple[CardDesign, ...] = ()
    error: str | None = None
    error_code: str | None = None
    suggestion: str | None = None
    title: str = ""
    model_name: str = ""
    superseded: bool = False

    @property
    def succeeded(self) -> bool:
        return self.state is GenerationState.COMPLETED


def title_from_content(content: str) -> str:
    """Title used when summarization is skipped: the post's first line."""
    first_line = content.split("\n", 1)[0].strip()
    if 0 < len(first_line) < MAX_TITLE_LENGTH:
        return _HEADING_RE.sub("", first_line) or DEFAULT_TITLE
    return DEFAULT_TITLE


class _RunSink:
    """Forwards to the real sink only while its run is the current one."""

    def __init__(self, session: "GenerationSession", run_id: int, sink: OutputSink):
        self._session = session
        self._run_id = run_id
        self._sink = sink

    @property
    def active(self) -> bool:
        return self._session.run_id == self._run_id

    def progress(
        self, status: str, current: int | None = None, total: int | None = None
    ) -> None:
        if self.active:
            self._sink.progress(status, current, total)

    def design(self, design: CardDesign, designs_so_far: Sequence[CardDesign]) -> None:
        if self.active:
            self._sink.design(design, designs_so_far)

    def debug(self, text: str) -> None:
        if self.active:
            self._sink.debug(text)

    def completed(self, designs: Sequence[CardDesign]) -> None:
        if self.active:
            self._sink.completed(designs)

    def error(self, message: str) -> None:
        if self.active:
            self._sink.error(message)

    def stopped(self) -> None:
        if self.active:
            self._sink.stopped()


class GenerationSession:
    """Runs generations and modifications one at a time.

    Starting a run cancels the one in flight; notifications from the older
    run are dropped. Designs from the last successful run are kept until a
    later run succeeds. Errors are reported through the sink and the returned
    outcome rather than raised.
    """

    def __init__(self, generator: CardGenerator):
        self.generator = generator
        self.state = GenerationState.IDLE
        self.current_designs: tuple[CardDesign, ...] = ()
        self.current_dimensions: CardDimensions | None = None
        self.run_id = 0
        self._token: CancellationToken | None = None
        self._summaries: dict[str, BlogSummary] = {}

    def _begin(self, sink: OutputSink | None) -> tuple[int, CancellationToken, _RunSink]:
        if self._token is not None and not self._token.is_cancellation_requested:
            logger.info("generation_superseded", run_id=self.run_id)
            self._token.cancel()
        self.run_id += 1
        token = CancellationToken()
        self._token = token
        return self.run_id, token, _RunSink(self, self.run_id, sink or NullSink())

    def _set_state(self, run_id: int, state: GenerationState) -> None:
        if run_id == self.run_id:
            self.state = state

    def cancel(self) -> None:
        """Stop the run in flight, if any."""
        if self._token is not None:
            self._token.cancel()

    @property
    def is_running(self) -> bool:
        return self.state in (
            GenerationState.SUMMARIZING,
            GenerationState.DESIGNING,
            GenerationState.MODIFYING,
        )

    def cached_summary(self, source_id: str) -> BlogSummary | None:
        return self._summaries.get(source_id)

    def clear_summary_cache(self) -> None:
        self._summaries.clear()

    async def _resolve_summary(
        self,
        request: GenerationRequest,
        provider: BaseProvider,
        token: CancellationToken,
        sink: _RunSink,
        candidates: Sequence[ChatModel],
    ) -> BlogSummary:
        if request.summary is not None:
            return request.summary
        if request.source_id and request.source_id in self._summaries:
            logger.info("summary_cache_hit", source_id=request.source_id)
            return self._summaries[request.source_id]

        summary = await self.generator.summarize(
            request.content, provider, token, sink, candidates
        )
        if request.source_id:
            self._summaries[request.source_id] = summary
        return summary

    def _finish_error(
        self, run_id: int, sink: _RunSink, error: SocialCardError, **fields: str
    ) -> SessionOutcome:
        self._set_state(run_id, GenerationState.FAILED)
        code = lookup_error_code(error.error_code)
        logger.error(
            "generation_failed",
            run_id=run_id,
            severity=get_error_severity(code) if code else "error",
            retriable=is_retriable(code) if code else False,
            **error.to_dict(),
        )
        sink.error(error.message)
        return SessionOutcome(
            GenerationState.FAILED,
            error=error.message,
            error_code=error.error_code,
            suggestion=error.suggestion,
            superseded=run_id != self.run_id,
            **fields,
        )

    def _finish_cancelled(self, run_id: int, sink: _RunSink) -> SessionOutcome:
        superseded = run_id != self.run_id
        self._set_state(run_id, GenerationState.CANCELLED)
        logger.info("generation_cancelled", run_id=run_id, superseded=superseded)
        sink.stopped()
        return SessionOutcome(GenerationState.CANCELLED, superseded=superseded)

    async def generate(
        self,
        request: GenerationRequest,
        provider: BaseProvider,
        sink: OutputSink | None = None,
        candidates: Sequence[ChatModel] = (),
    ) -> SessionOutcome:
        """Summarize (unless skipped or cached) and generate designs."""
        run_id, token, run_sink = self._begin(sink)
        usage = self.generator.usage
        logger.info(
            "generation_started",
            run_id=run_id,
            provider=provider.display_name,
            count=request.design_count,
            dimensions=request.dimensions.label,
            skip_summary=usage.skip_summary_step,
        )

        title = ""
        model_name = ""
        try:
            if usage.skip_summary_step:
                title = title_from_content(request.content)
                model_name = SKIPPED_SUMMARY_MODEL
                summary_text = ""
                full_content: str | None = request.content
                step_prefix = ""
            else:
                self._set_state(run_id, GenerationState.SUMMARIZING)
                summary = await self._resolve_summary(
                    request, provider, token, run_sink, candidates
                )
                title, summary_text, model_name = (
                    summary.title,
                    summary.summary,
                    summary.model_name,
                )
                full_content = None
                step_prefix = STEP_PREFIX

            self._set_state(run_id, GenerationState.DESIGNING)
            designs = await self.generator.generate_designs(
                title,
                summary_text,
                request.dimensions,
                request.design_count,
                provider,
                token,
                run_sink,
                guidance=request.guidance,
                full_content=full_content,
                step_prefix=step_prefix,
            )
        except CancellationError:
            return self._finish_cancelled(run_id, run_sink)
        except SocialCardError as e:
            return self._finish_error(run_id, run_sink, e, title=title, model_name=model_name)
        except asyncio.CancelledError:
            self._set_state(run_id, GenerationState.CANCELLED)
            run_sink.stopped()
            raise

        if run_id != self.run_id:
            logger.info("generation_result_discarded", run_id=run_id)
            return SessionOutcome(GenerationState.CANCELLED, superseded=True)

        self.current_designs = tuple(designs)
        self.current_dimensions = request.dimensions
        self.state = GenerationState.COMPLETED
        logger.info(
            "generation_completed",
            run_id=run_id,
            count=len(designs),
            title=title,
        )
        run_sink.completed(self.current_designs)
        return SessionOutcome(
            GenerationState.COMPLETED,
            designs=self.current_designs,
            title=title,
            model_name=model_name,
        )

    async def modify(
        self,
        instruction: str,
        provider: BaseProvider,
        sink: OutputSink | None = None,
        designs: Sequence[CardDesign] | None = None,
        dimensions: CardDimensions | None = None,
    ) -> SessionOutcome:
        """Apply ``instruction`` to the stored designs (or to ``designs``)."""
        run_id, token, run_sink = self._begin(sink)
        source = tuple(designs) if designs is not None else self.current_designs
        target_dimensions = dimensions or self.current_dimensions

        try:
            if not source or target_dimensions is None:
                raise ValidationError(
                    "No designs to modify. Generate designs first.",
                    error_code=ErrorCode.GEN_NOTHING_TO_MODIFY.value,
                )
            self._set_state(run_id, GenerationState.MODIFYING)
            modified = await self.generator.modify_designs(
                source, instruction, target_dimensions, provider, token, run_sink
            )
        except CancellationError:
            return self._finish_cancelled(run_id, run_sink)
        except SocialCardError as e:
            return self._finish_error(run_id, run_sink, e)
        except asyncio.CancelledError:
            self._set_state(run_id, GenerationState.CANCELLED)
            run_sink.stopped()
            raise

        if run_id != self.run_id:
            logger.info("modification_result_discarded", run_id=run_id)
            return SessionOutcome(GenerationState.CANCELLED, superseded=True)

        self.current_designs = tuple(modified)
        self.current_dimensions = target_dimensions
        self.state = GenerationState.COMPLETED
        logger.info("modification_completed", run_id=run_id, count=len(modified))
        run_sink.completed(self.current_designs)
        return SessionOutcome(GenerationState.COMPLETED, designs=self.current_designs)
