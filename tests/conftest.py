"""Pytest configuration and fixtures for the test suite."""

import pytest

from social_card_generator.config_loader import reset_config
from social_card_generator.config_settings import TokenUsageSettings
from social_card_generator.generation import CardGenerator, CollectingSink
from social_card_generator.models import CardDesign, CardDimensions


class SleepRecorder:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    """Keep the config singleton and SOCIAL_CARD_* variables out of tests."""
    import os

    for key in list(os.environ):
        if key.startswith("SOCIAL_CARD_"):
            monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def dimensions():
    """Standard Open Graph card size."""
    return CardDimensions(1200, 630)


@pytest.fixture
def sleep_recorder():
    """Provide a sleep function that returns immediately."""
    return SleepRecorder()


@pytest.fixture
def sink():
    """Provide a sink that records every notification."""
    return CollectingSink()


@pytest.fixture
def balanced_usage():
    """Batch premium models, summarize with a mini model."""
    return TokenUsageSettings(
        use_separate_requests_for_premium_models=False,
        always_use_mini_for_summary=True,
        skip_summary_step=False,
    )


@pytest.fixture
def generator(sleep_recorder, balanced_usage):
    """Provide a generator whose retries never actually wait."""
    return CardGenerator(usage=balanced_usage, sleep=sleep_recorder)


@pytest.fixture
def sample_designs():
    """Two previously generated designs."""
    return [
        CardDesign(title="Bold Gradient", html="<div>Bold</div>", generation_time_ms=1200),
        CardDesign(title="Minimal", html="<div>Minimal</div>", generation_time_ms=900),
    ]
