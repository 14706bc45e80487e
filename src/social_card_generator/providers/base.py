"""Base text-generation provider interface."""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from social_card_generator.cancellation import CancellationToken
from social_card_generator.models import ProviderHandle
from social_card_generator.utils.logging import get_logger

logger = get_logger(__name__)

ChunkCallback = Callable[[str], None]


class BaseProvider(ABC):
    """Abstract base class for text-generation backends.

    A provider turns one prompt into one block of text. Hosted models,
    CLI-spawned programs and OpenAI-compatible endpoints all implement the
    same ``execute`` capability, so the generator never branches on backend
    type except to read ``handle.is_cli``.
    """

    def __init__(self, handle: ProviderHandle, **kwargs: Any):
        """Initialize the provider.

        Args:
            handle: Description of the selected backend
            **kwargs: Provider-specific configuration options
        """
        self.handle = handle
        self.config = kwargs
        logger.debug(
            "provider_initialized",
            provider=self.__class__.__name__,
            handle=handle.label,
            config=self._safe_config_for_logging(),
        )

    def _safe_config_for_logging(self) -> dict[str, Any]:
        """Return config with secrets redacted."""
        safe_config = self.config.copy()
        for key in ["api_key", "token", "password"]:
            if safe_config.get(key):
                safe_config[key] = "***REDACTED***"
        return safe_config

    @abstractmethod
    async def execute(
        self,
        prompt: str,
        cancellation: CancellationToken | None = None,
        on_chunk: ChunkCallback | None = None,
    ) -> str:
        """Send a prompt and return the complete response text.

        Args:
            prompt: Prompt sent as a single user message
            cancellation: Token that aborts the call when cancelled
            on_chunk: Receives text fragments as they arrive, where the
                backend streams

        Raises:
            CancellationError: If cancelled before or during the call
            ProviderError: On any backend failure
        """

    async def list_models(self) -> list[str]:
        """List model identifiers this backend can serve (may be empty)."""
        return []

    @property
    def display_name(self) -> str:
        return self.handle.label

    def get_provider_name(self) -> str:
        """Human-readable provider type, e.g. "Cli" or "OpenAICompatible"."""
        return self.__class__.__name__.replace("Provider", "")

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(handle={self.handle.label!r}, "
            f"config={self._safe_config_for_logging()})"
        )
