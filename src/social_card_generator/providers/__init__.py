"""Text-generation provider abstractions and implementations."""

from .base import BaseProvider, ChunkCallback
from .cli_provider import CliProvider, CommandResult, run_shell_command
from .factory import ProviderFactory
from .hosted import ChatModel, HostedModelProvider
from .ollama import OllamaModelResolver
from .openai_compatible import OpenAICompatibleProvider
from .state_store import InMemoryStateStore, JsonFileStateStore, KeyValueStore
from .streaming_chat import HostedModelCatalog, StreamingChatModel

__all__ = [
    "BaseProvider",
    "ChatModel",
    "ChunkCallback",
    "CliProvider",
    "CommandResult",
    "HostedModelCatalog",
    "HostedModelProvider",
    "InMemoryStateStore",
    "JsonFileStateStore",
    "KeyValueStore",
    "OllamaModelResolver",
    "OpenAICompatibleProvider",
    "ProviderFactory",
    "StreamingChatModel",
    "run_shell_command",
]
