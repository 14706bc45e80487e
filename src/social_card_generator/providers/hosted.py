"""Provider backed by a hosted chat model that streams its reply."""

from collections.abc import AsyncIterator
from typing import Protocol, runtime_checkable

from social_card_generator.cancellation import (
    CancellationToken,
    is_cancellation_error,
    raise_if_cancelled,
    run_cancellable,
)
from social_card_generator.error_codes import ErrorCode
from social_card_generator.exceptions import CancellationError, ProviderError
from social_card_generator.models import ProviderHandle, ProviderKind
from social_card_generator.utils.logging import get_logger

from .base import BaseProvider, ChunkCallback

logger = get_logger(__name__)


@runtime_checkable
class ChatModel(Protocol):
    """A hosted chat model as exposed by a model catalog."""

    id: str
    name: str
    vendor: str
    family: str
    version: str

    def stream(
        self, prompt: str, cancellation: CancellationToken | None = None
    ) -> AsyncIterator[str]:
        """Send ``prompt`` as one user message and yield reply fragments."""
        ...


def handle_for_model(model: ChatModel) -> ProviderHandle:
    return ProviderHandle(
        kind=ProviderKind.HOSTED,
        identifier=model.id,
        display_name=model.name or model.id or model.family,
        vendor=model.vendor,
    )


class HostedModelProvider(BaseProvider):
    """Accumulates a hosted model's streamed reply into one string.

    Every fragment is forwarded to ``on_chunk`` as it arrives. Waiting for a
    fragment is abortable through the cancellation token.
    """

    def __init__(self, model: ChatModel, handle: ProviderHandle | None = None):
        self.model = model
        super().__init__(handle or handle_for_model(model), model=model.id)

    async def execute(
        self,
        prompt: str,
        cancellation: CancellationToken | None = None,
        on_chunk: ChunkCallback | None = None,
    ) -> str:
        raise_if_cancelled(cancellation)

        parts: list[str] = []
        stream = self.model.stream(prompt, cancellation)
        try:
            while True:
                try:
                    fragment = await run_cancellable(stream.__anext__(), cancellation)
                except StopAsyncIteration:
                    break
                parts.append(fragment)
                logger.debug(
                    "stream_chunk_received",
                    model=self.model.id,
                    chunk_length=len(fragment),
                )
                if on_chunk is not None:
                    on_chunk(fragment)
                raise_if_cancelled(cancellation)
        except CancellationError:
            logger.info("hosted_model_cancelled", model=self.model.id)
            raise
        except ProviderError as e:
            if is_cancellation_error(e, cancellation):
                raise CancellationError() from e
            raise
        except Exception as e:
            if is_cancellation_error(e, cancellation):
                raise CancellationError() from e
            logger.error(
                "hosted_model_error",
                model=self.model.id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ProviderError(
                f"Language model error: {e}",
                error_code=ErrorCode.PRV_HOSTED_MODEL.value,
                context={"model": self.model.id},
            ) from e
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

        text = "".join(parts)
        logger.debug(
            "hosted_model_completed",
            model=self.model.id,
            response_length=len(text),
            chunks=len(parts),
        )
        return text
