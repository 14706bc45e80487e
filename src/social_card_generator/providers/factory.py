"""Provider factory for creating text-generation providers from configuration."""

from dataclasses import replace
from typing import Any

from social_card_generator.exceptions import ConfigurationError
from social_card_generator.models import ProviderHandle, ProviderKind
from social_card_generator.utils.logging import get_logger

from .base import BaseProvider
from .cli_provider import CliProvider
from .hosted import ChatModel, HostedModelProvider
from .ollama import OllamaModelResolver
from .openai_compatible import OpenAICompatibleProvider
from .state_store import JsonFileStateStore, KeyValueStore
from .streaming_chat import HostedModelCatalog

logger = get_logger(__name__)


class ProviderFactory:
    """Factory for creating provider instances.

    The configured ``provider`` setting selects the backend: a hosted chat
    model, a local CLI program, or an OpenAI-compatible HTTP server.
    """

    PROVIDER_MAP: dict[str, ProviderKind] = {
        "hosted": ProviderKind.HOSTED,
        "cli": ProviderKind.CLI,
        "openai_compatible": ProviderKind.OPENAI_COMPATIBLE,
    }

    @staticmethod
    def catalog_from_config(config: Any) -> HostedModelCatalog:
        return HostedModelCatalog(
            base_url=config.hosted_base_url,
            api_key=config.hosted_api_key,
            vendor=config.hosted_vendor,
            timeout=config.llm_timeout,
        )

    @classmethod
    def create_hosted(cls, model: ChatModel) -> HostedModelProvider:
        return HostedModelProvider(model)

    @classmethod
    def create_for_handle(
        cls,
        handle: ProviderHandle,
        config: Any,
        state_store: KeyValueStore | None = None,
        model: ChatModel | None = None,
    ) -> BaseProvider:
        """Create the provider described by ``handle``.

        Args:
            handle: Selected backend
            config: Configuration object supplying connection settings
            state_store: Persistence for the last used local model; defaults
                to the configured state file
            model: Chat model to use for a hosted handle instead of looking
                one up in the configured catalog

        Raises:
            ConfigurationError: If required settings for the backend are missing
        """
        logger.debug("creating_provider", kind=handle.kind.value, identifier=handle.identifier)

        if handle.kind is ProviderKind.CLI:
            store = state_store or JsonFileStateStore(config.state_file)
            resolver = OllamaModelResolver(store, configured_model=config.ollama_model)
            return CliProvider(
                handle,
                working_dir=config.cli_working_dir,
                timeout=config.cli_timeout,
                ollama=resolver,
            )

        if handle.kind is ProviderKind.OPENAI_COMPATIBLE:
            return OpenAICompatibleProvider(
                base_url=config.openai_compatible_base_url,
                model_name=config.openai_compatible_model_name,
                api_key=config.openai_compatible_api_key,
                timeout=config.llm_timeout,
            )

        if model is not None:
            return HostedModelProvider(model)
        chat_model = cls.catalog_from_config(config).model(
            handle.identifier, vendor=handle.vendor or None
        )
        return HostedModelProvider(
            chat_model, handle=replace(handle, vendor=handle.vendor or chat_model.vendor)
        )

    @classmethod
    def create_from_config(
        cls,
        config: Any,
        model: ChatModel | None = None,
        state_store: KeyValueStore | None = None,
    ) -> BaseProvider:
        """Create the provider selected by ``config.provider``.

        Raises:
            ConfigurationError: If the provider type is unknown or misconfigured
        """
        provider_type = str(config.provider).lower()
        if provider_type not in cls.PROVIDER_MAP:
            available = ", ".join(cls.list_supported_providers())
            raise ConfigurationError(
                f"Unsupported provider type: {config.provider}. "
                f"Available providers: {available}"
            )

        handle = config.provider_handle()
        provider = cls.create_for_handle(
            handle, config, state_store=state_store, model=model
        )
        logger.info(
            "provider_created",
            provider=provider.get_provider_name(),
            handle=provider.display_name,
        )
        return provider

    @classmethod
    def list_supported_providers(cls) -> list[str]:
        return sorted(set(cls.PROVIDER_MAP.keys()))
