"""Scripted provider for orchestrator tests."""

from collections.abc import Callable
from typing import Any

from social_card_generator.cancellation import CancellationToken, raise_if_cancelled
from social_card_generator.models import ProviderHandle, ProviderKind
from social_card_generator.providers.base import BaseProvider, ChunkCallback

Step = str | BaseException | Callable[[str], str]


class ScriptedProvider(BaseProvider):
    """Returns scripted replies in order.

    Each script entry is a reply string, an exception to raise, or a callable
    receiving the prompt. ``before_call`` runs before each call with its
    1-based index, which lets a test cancel a token at a precise point.
    """

    def __init__(
        self,
        script: list[Step],
        kind: ProviderKind = ProviderKind.HOSTED,
        identifier: str = "gpt-4o",
        vendor: str = "openai",
        stream_chunks: int = 0,
        before_call: Callable[[int], Any] | None = None,
    ):
        super().__init__(
            ProviderHandle(
                kind=kind,
                identifier=identifier,
                display_name=identifier,
                vendor=vendor,
            )
        )
        self.script = list(script)
        self.prompts: list[str] = []
        self.stream_chunks = stream_chunks
        self.before_call = before_call

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def execute(
        self,
        prompt: str,
        cancellation: CancellationToken | None = None,
        on_chunk: ChunkCallback | None = None,
    ) -> str:
        raise_if_cancelled(cancellation)
        self.prompts.append(prompt)
        if self.before_call is not None:
            self.before_call(len(self.prompts))
        raise_if_cancelled(cancellation)

        if not self.script:
            raise AssertionError(f"Unexpected call #{len(self.prompts)}")
        step = self.script.pop(0)
        if isinstance(step, BaseException):
            raise step
        text = step(prompt) if callable(step) else step

        if on_chunk is not None and self.stream_chunks:
            size = max(1, len(text) // self.stream_chunks)
            for start in range(0, len(text), size):
                on_chunk(text[start : start + size])
        return text


def cli_provider(script: list[Step], **kwargs: Any) -> ScriptedProvider:
    return ScriptedProvider(
        script, kind=ProviderKind.CLI, identifier="claude -p", vendor="", **kwargs
    )


def hosted_provider(script: list[Step], vendor: str = "openai", **kwargs: Any) -> ScriptedProvider:
    return ScriptedProvider(script, kind=ProviderKind.HOSTED, vendor=vendor, **kwargs)
