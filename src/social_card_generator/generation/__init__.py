"""Prompt building, response parsing and the generation pipeline."""

from .card_generator import CardGenerator
from .prompt_builder import PromptMode, PromptSettings
from .response_parser import parse_llm_json
from .session import GenerationSession, GenerationState, SessionOutcome
from .sink import CollectingSink, NullSink, OutputSink

__all__ = [
    "CardGenerator",
    "CollectingSink",
    "GenerationSession",
    "GenerationState",
    "NullSink",
    "OutputSink",
    "PromptMode",
    "PromptSettings",
    "SessionOutcome",
    "parse_llm_json",
]
