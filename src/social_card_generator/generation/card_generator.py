"""Drives the LLM steps: summarize a post, generate designs, modify designs."""

import time
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from social_card_generator.cancellation import CancellationToken, raise_if_cancelled
from social_card_generator.config_settings import TokenUsageSettings
from social_card_generator.error_codes import ErrorCode
from social_card_generator.exceptions import (
    CancellationError,
    GenerationError,
    SocialCardError,
    ValidationError,
)
from social_card_generator.models import (
    BlogSummary,
    CardDesign,
    CardDimensions,
    GenerationResult,
)
from social_card_generator.providers.base import BaseProvider, ChunkCallback
from social_card_generator.providers.hosted import ChatModel, HostedModelProvider
from social_card_generator.utils.logging import get_logger
from social_card_generator.utils.retry import SleepFunc, retry_async

from .model_selection import select_summary_model, should_use_separate_requests
from .prompt_builder import (
    PromptSettings,
    build_design_prompt,
    build_modification_prompt,
    build_summary_prompt,
)
from .response_parser import parse_llm_json
from .sink import NullSink, OutputSink

logger = get_logger(__name__)

PREVIEW_LENGTH = 100
STEP_PREFIX = "Step 2/2: "


def _elapsed_ms(start: float) -> int:
    return round((time.perf_counter() - start) * 1000)


class _TraceMirror:
    """Mirrors the start of a reply to the trace sink.

    Streamed fragments are copied until the first ``{`` shows up; a reply
    that arrived in one piece gets a short preview instead.
    """

    def __init__(self, sink: OutputSink, marker: str):
        self.sink = sink
        self.marker = marker
        self.text = ""
        self.streamed = False
        self.done = False

    def on_chunk(self, fragment: str) -> None:
        self.streamed = True
        self.text += fragment
        if self.done:
            return
        self.sink.debug(fragment)
        if "{" in self.text:
            self.sink.debug(f"... [JSON response received, {self.marker}]\n")
            self.done = True

    def finish(self, response: str) -> None:
        if self.streamed:
            return
        self.sink.debug(response[:PREVIEW_LENGTH])
        if "{" in response:
            self.sink.debug(f"... [JSON response received, {self.marker}]\n")


@contextmanager
def _step(step: str, cancellation: CancellationToken | None) -> Iterator[None]:
    """Qualify failures with the step that produced them.

    An error raised after the token fired is reported as a cancellation.
    """
    try:
        yield
    except CancellationError:
        logger.info("generation_step_cancelled", step=step)
        raise
    except SocialCardError as e:
        if cancellation is not None and cancellation.is_cancellation_requested:
            raise CancellationError() from e
        logger.error("generation_step_failed", step=step, **e.to_dict())
        raise e.with_message(f"{step}: {e.message}", step=step) from e
    except Exception as e:
        if cancellation is not None and cancellation.is_cancellation_requested:
            raise CancellationError() from e
        logger.exception("generation_step_crashed", step=step, error=str(e))
        raise GenerationError(
            f"{step}: {e}",
            error_code=ErrorCode.GEN_STEP_FAILED.value,
            context={"step": step, "error_type": type(e).__name__},
        ) from e


class CardGenerator:
    """Runs individual pipeline steps against a provider.

    Each provider call goes through the retry controller. Parsing and
    validation happen after the retries, so malformed output fails the step
    straight away.
    """

    def __init__(
        self,
        prompt_settings: PromptSettings | None = None,
        usage: TokenUsageSettings | None = None,
        free_tier_vendors: Sequence[str] = ("copilot",),
        max_attempts: int = 3,
        retry_delay: float = 1.0,
        sleep: SleepFunc | None = None,
    ):
        self.prompt_settings = prompt_settings or PromptSettings()
        self.usage = usage or TokenUsageSettings(
            use_separate_requests_for_premium_models=False,
            always_use_mini_for_summary=True,
            skip_summary_step=False,
        )
        self.free_tier_vendors = tuple(free_tier_vendors)
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._sleep = sleep

    @classmethod
    def from_config(cls, config: Any, sleep: SleepFunc | None = None) -> "CardGenerator":
        return cls(
            prompt_settings=PromptSettings.from_config(config),
            usage=config.token_usage(),
            free_tier_vendors=config.free_tier_vendors,
            max_attempts=config.max_attempts,
            sleep=sleep,
        )

    async def _call(
        self,
        provider: BaseProvider,
        prompt: str,
        cancellation: CancellationToken | None,
        operation_name: str,
        on_chunk: ChunkCallback | None = None,
    ) -> str:
        logger.debug(
            "llm_prompt",
            operation=operation_name,
            provider=provider.display_name,
            prompt_length=len(prompt),
            prompt_preview=prompt[:200],
        )
        response = await retry_async(
            lambda: provider.execute(prompt, cancellation, on_chunk),
            self.max_attempts,
            cancellation,
            initial_delay=self.retry_delay,
            sleep=self._sleep,
            operation_name=operation_name,
        )
        logger.debug(
            "llm_response",
            operation=operation_name,
            response_length=len(response),
            response_preview=response[:200],
        )
        return response

    async def summarize(
        self,
        content: str,
        provider: BaseProvider,
        cancellation: CancellationToken | None = None,
        sink: OutputSink | None = None,
        candidates: Sequence[ChatModel] = (),
    ) -> BlogSummary:
        """Extract a title and a short summary from the post.

        Uses an economical hosted model from ``candidates`` when mini models
        are preferred; otherwise, or with no candidates, the active provider.

        Raises:
            CancellationError: If the run was stopped
            ValidationError: If the reply lacks a title or summary
            SocialCardError: Any other step failure, prefixed "Summarization: "
        """
        sink = sink or NullSink()
        summary_provider = provider
        if self.usage.always_use_mini_for_summary:
            chosen = select_summary_model(list(candidates))
            if chosen is not None:
                summary_provider = HostedModelProvider(chosen)
        model_name = summary_provider.display_name

        prompt = build_summary_prompt(content)
        sink.progress("Step 1/2: Summarizing blog post...")
        sink.debug(
            "\n=== Step 1: Summarization ===\n"
            f"Model: {model_name}\n\n--- Prompt ---\n{prompt}\n\n--- Response ---\n"
        )
        logger.info("summarization_started", model=model_name, content_length=len(content))

        with _step("Summarization", cancellation):
            mirror = _TraceMirror(sink, "rendering designs")

            async def attempt() -> str:
                nonlocal mirror
                mirror = _TraceMirror(sink, "rendering designs")
                return await summary_provider.execute(prompt, cancellation, mirror.on_chunk)

            response = await retry_async(
                attempt,
                self.max_attempts,
                cancellation,
                initial_delay=self.retry_delay,
                sleep=self._sleep,
                operation_name="summarize",
            )
            mirror.finish(response)
            logger.debug("llm_response", operation="summarize", response_preview=response[:200])

            payload = parse_llm_json(response)
            title = payload.get("title")
            summary = payload.get("summary")
            if not (isinstance(title, str) and title.strip()) or not (
                isinstance(summary, str) and summary.strip()
            ):
                raise ValidationError(
                    "Summarization did not return title and summary",
                    error_code=ErrorCode.GEN_SUMMARY_INCOMPLETE.value,
                    context={"keys": sorted(payload)},
                )

        result = BlogSummary(title=title.strip(), summary=summary.strip(), model_name=model_name)
        logger.info("summarization_completed", model=model_name, title=result.title)
        return result

    def _uses_separate_requests(self, provider: BaseProvider, count: int) -> bool:
        if count <= 1:
            return False
        return should_use_separate_requests(
            provider.handle, self.usage, self.free_tier_vendors
        )

    async def generate_designs(
        self,
        title: str,
        summary: str,
        dimensions: CardDimensions,
        count: int,
        provider: BaseProvider,
        cancellation: CancellationToken | None = None,
        sink: OutputSink | None = None,
        guidance: str | None = None,
        full_content: str | None = None,
        step_prefix: str = STEP_PREFIX,
    ) -> list[CardDesign]:
        """Generate ``count`` designs, per-design or in one batched request.

        Per-design results are pushed to ``sink.design`` as soon as each one
        is parsed.

        Args:
            title: Post title
            summary: Post summary
            dimensions: Target card size
            count: Number of designs requested
            provider: Backend that generates the designs
            cancellation: Token checked before each call
            sink: Receiver for progress, streamed designs and trace text
            guidance: One-off instructions from the user for this run
            full_content: Whole post text when summarization was skipped
            step_prefix: Prefix for progress messages ("" without a summary step)
        """
        sink = sink or NullSink()
        separate = self._uses_separate_requests(provider, count)
        logger.info(
            "design_generation_started",
            provider=provider.display_name,
            count=count,
            mode="separate" if separate else "batch",
        )
        if separate:
            designs = await self._generate_separately(
                title, summary, dimensions, count, provider, cancellation, sink,
                guidance, full_content, step_prefix,
            )
        else:
            designs = await self._generate_batch(
                title, summary, dimensions, count, provider, cancellation, sink,
                guidance, full_content, step_prefix,
            )
        logger.info("design_generation_completed", count=len(designs))
        return designs

    async def _generate_separately(
        self,
        title: str,
        summary: str,
        dimensions: CardDimensions,
        count: int,
        provider: BaseProvider,
        cancellation: CancellationToken | None,
        sink: OutputSink,
        guidance: str | None,
        full_content: str | None,
        step_prefix: str,
    ) -> list[CardDesign]:
        designs: list[CardDesign] = []
        sink.debug(
            "\n=== Step 2: Design Generation (Separate Requests) ===\n"
            f"Model: {provider.display_name}\n"
            f"Generating {count} designs with separate API calls\n"
        )

        for number in range(1, count + 1):
            raise_if_cancelled(cancellation)
            sink.progress(f"{step_prefix}Generating design {number} of {count}...", number, count)
            start = time.perf_counter()

            with _step(f"Design {number} of {count}", cancellation):
                prompt = build_design_prompt(
                    title,
                    summary,
                    dimensions,
                    number,
                    count,
                    settings=self.prompt_settings,
                    guidance=guidance,
                    full_content=full_content,
                )
                sink.debug(f"\n--- Request {number}/{count} ---\n{prompt}\n")
                if guidance:
                    sink.debug(f"\n=== ADDITIONAL USER GUIDANCE ===\n{guidance}\n")
                sink.debug(f"\n--- Response {number}/{count} ---\n")

                response = await self._call(
                    provider, prompt, cancellation, f"generate_design_{number}"
                )
                _TraceMirror(sink, "rendering design").finish(response)

                result = GenerationResult.from_payload(parse_llm_json(response))
                if not result.designs:
                    raise ValidationError(
                        f"No design generated for design {number}",
                        error_code=ErrorCode.GEN_NO_DESIGNS.value,
                        context={"design_number": number},
                    )

            design = result.designs[0].with_generation_time(_elapsed_ms(start))
            designs.append(design)
            logger.info(
                "design_generated",
                design_number=number,
                total=count,
                title=design.title,
                html_length=len(design.html),
                generation_time_ms=design.generation_time_ms,
            )
            sink.design(design, tuple(designs))

        return designs

    async def _generate_batch(
        self,
        title: str,
        summary: str,
        dimensions: CardDimensions,
        count: int,
        provider: BaseProvider,
        cancellation: CancellationToken | None,
        sink: OutputSink,
        guidance: str | None,
        full_content: str | None,
        step_prefix: str,
    ) -> list[CardDesign]:
        sink.progress(f"{step_prefix}Generating designs...")
        prompt = build_design_prompt(
            title,
            summary,
            dimensions,
            1,
            count,
            batch_mode=True,
            settings=self.prompt_settings,
            guidance=guidance,
            full_content=full_content,
        )
        sink.debug(
            "\n=== Step 2: Design Generation (Batch Mode) ===\n"
            f"Model: {provider.display_name}\n"
            f"Generating {count} designs in one request\n"
        )
        sink.debug(f"\n--- Prompt ---\n{prompt}\n")
        if guidance:
            sink.debug(f"\n=== ADDITIONAL USER GUIDANCE ===\n{guidance}\n")

        start = time.perf_counter()
        with _step("Design generation", cancellation):
            response = await self._call(provider, prompt, cancellation, "generate_designs")
            _TraceMirror(sink, "rendering designs").finish(response)

            result = GenerationResult.from_payload(parse_llm_json(response))
            if not result.designs:
                raise ValidationError(
                    "No designs generated by the LLM",
                    error_code=ErrorCode.GEN_NO_DESIGNS.value,
                )

        elapsed = _elapsed_ms(start)
        received = list(result.designs)
        if len(received) != count:
            logger.warning("design_batch_count_mismatch", requested=count, received=len(received))
            received = received[:count]

        designs = [design.with_generation_time(elapsed) for design in received]
        logger.info(
            "designs_generated",
            count=len(designs),
            generation_time_ms=elapsed,
            analysis_preview=result.analysis[:200],
        )
        return designs

    async def modify_designs(
        self,
        designs: Sequence[CardDesign],
        instruction: str,
        dimensions: CardDimensions,
        provider: BaseProvider,
        cancellation: CancellationToken | None = None,
        sink: OutputSink | None = None,
    ) -> list[CardDesign]:
        """Ask the model for the complete design set with the requested changes.

        Raises:
            ValidationError: If there is nothing to modify or the reply holds
                no designs
        """
        sink = sink or NullSink()
        if not designs:
            raise ValidationError(
                "No designs to modify. Generate designs first.",
                error_code=ErrorCode.GEN_NOTHING_TO_MODIFY.value,
            )

        prompt = build_modification_prompt(designs, instruction, dimensions)
        sink.progress("Modifying designs...")
        sink.debug(f"\n=== Design Modification ===\nModel: {provider.display_name}\n")
        sink.debug(f"\n=== USER REDESIGN REQUEST ===\n{instruction}\n")
        sink.debug(f"\n--- Prompt ---\n{prompt}\n")
        sink.debug("\n--- Response ---\n")
        logger.info("modification_started", design_count=len(designs))

        start = time.perf_counter()
        with _step("Design modification", cancellation):
            response = await self._call(provider, prompt, cancellation, "modify_designs")
            _TraceMirror(sink, "rendering designs").finish(response)

            result = GenerationResult.from_payload(parse_llm_json(response))
            if not result.designs:
                raise ValidationError(
                    "No designs generated by the LLM",
                    error_code=ErrorCode.GEN_NO_DESIGNS.value,
                )

        elapsed = _elapsed_ms(start)
        modified = [design.with_generation_time(elapsed) for design in result.designs]
        logger.info("modification_designs_received", count=len(modified), generation_time_ms=elapsed)
        return modified
