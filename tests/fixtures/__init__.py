"""Test fixtures package."""

from .fake_chat_model import FakeChatModel
from .responses import CONTROL_CHAR_REPLY, designs_reply, fenced, summary_reply
from .scripted_provider import ScriptedProvider, cli_provider, hosted_provider

__all__ = [
    "CONTROL_CHAR_REPLY",
    "FakeChatModel",
    "ScriptedProvider",
    "cli_provider",
    "designs_reply",
    "fenced",
    "hosted_provider",
    "summary_reply",
]
