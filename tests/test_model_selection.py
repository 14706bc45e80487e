"""Tests for summary model choice, batching decision and catalog cleanup."""

import pytest

from social_card_generator.config_settings import TOKEN_USAGE_LEVELS, TokenUsageSettings
from social_card_generator.generation.model_selection import (
    deduplicate_models,
    filter_supported_models,
    is_free_tier,
    model_display_name,
    most_recent,
    select_summary_model,
    should_use_separate_requests,
)
from social_card_generator.models import ProviderHandle, ProviderKind
from tests.fixtures import FakeChatModel

BALANCED = TOKEN_USAGE_LEVELS[1]
QUALITY = TOKEN_USAGE_LEVELS[2]


def ids(models):
    return [m.id for m in models]


class TestSelectSummaryModel:
    """Test picking an economical summarization model."""

    def test_empty(self):
        assert select_summary_model([]) is None

    def test_prefers_gpt5_mini(self):
        models = [
            FakeChatModel("gpt-4o-mini"),
            FakeChatModel("gpt-5-mini"),
            FakeChatModel("gpt-4o"),
        ]

        assert select_summary_model(models).id == "gpt-5-mini"

    def test_gpt4o_mini_before_other_minis(self):
        models = [FakeChatModel("o3-mini"), FakeChatModel("gpt-4o-mini")]

        assert select_summary_model(models).id == "gpt-4o-mini"

    def test_newest_dated_mini(self):
        models = [
            FakeChatModel("gpt-4o-mini-2024-07-18", family="gpt-4o-mini"),
            FakeChatModel("gpt-4o-mini-2025-01-31", family="gpt-4o-mini"),
            FakeChatModel("gpt-4o-mini", family="gpt-4o-mini"),
        ]

        assert select_summary_model(models).id == "gpt-4o-mini-2025-01-31"

    def test_small_models_count_as_mini(self):
        models = [FakeChatModel("mistral-large"), FakeChatModel("mistral-small")]

        assert select_summary_model(models).id == "mistral-small"

    def test_falls_back_to_first(self):
        models = [FakeChatModel("claude-3-5-sonnet"), FakeChatModel("gpt-4o")]

        assert select_summary_model(models).id == "claude-3-5-sonnet"

    def test_most_recent_without_dates_uses_id(self):
        assert most_recent([FakeChatModel("a-1"), FakeChatModel("a-2")]).id == "a-2"


class TestBatchingDecision:
    """Test when each design gets its own request."""

    def handle(self, kind=ProviderKind.HOSTED, vendor="openai"):
        return ProviderHandle(kind, "model", vendor=vendor)

    def test_cli_always_separate(self):
        assert should_use_separate_requests(self.handle(ProviderKind.CLI, ""), BALANCED)

    def test_free_tier_vendor_separate(self):
        assert should_use_separate_requests(self.handle(vendor="copilot"), BALANCED)

    def test_premium_batches_by_default(self):
        assert not should_use_separate_requests(self.handle(), BALANCED)

    def test_quality_mode_separate(self):
        assert should_use_separate_requests(self.handle(), QUALITY)

    def test_openai_compatible_batches(self):
        handle = self.handle(ProviderKind.OPENAI_COMPATIBLE, "")

        assert not should_use_separate_requests(handle, BALANCED)

    def test_custom_free_tier_vendors(self):
        handle = self.handle(vendor="GitHub")

        assert is_free_tier(handle, ["github"])
        assert should_use_separate_requests(handle, BALANCED, ("github",))
        assert not is_free_tier(self.handle(vendor=""), [""])


class TestCatalogCleanup:
    """Test filtering, naming and deduplicating hosted models."""

    def test_filter_supported_models(self):
        models = [
            FakeChatModel("gpt-4o", vendor="openai"),
            FakeChatModel("grok-2", vendor="xai"),
            FakeChatModel("gemini-2.0-flash", vendor="google"),
            FakeChatModel("claude-3-5-sonnet", vendor="anthropic"),
            FakeChatModel("claude-3-7-sonnet", vendor="anthropic"),
        ]

        assert ids(filter_supported_models(models)) == ["gpt-4o", "claude-3-5-sonnet"]

    @pytest.mark.parametrize(
        ("family", "version", "expected"),
        [
            ("gpt-4o", "", "GPT-4o"),
            ("gpt-4o-mini", "", "GPT-4o-mini"),
            ("gpt-4o", "gpt-4o-2024-11-20", "GPT-4o"),
            ("o3-mini", "", "o3-mini"),
            ("claude-3.5-sonnet", "", "Claude 3.5 Sonnet"),
            ("gemini-pro", "", "Gemini Pro"),
            ("gpt-4-turbo", "", "GPT-4-Turbo"),
            ("", "", "Unknown Model"),
        ],
    )
    def test_display_name(self, family, version, expected):
        model = FakeChatModel("id", family=family or "x", version=version)
        if not family:
            model.family = ""

        assert model_display_name(model) == expected

    def test_deduplicate_keeps_newest(self):
        models = [
            FakeChatModel("gpt-4o-2024-08-06", family="gpt-4o"),
            FakeChatModel("gpt-4o-2024-11-20", family="gpt-4o"),
            FakeChatModel("gpt-4o-mini", family="gpt-4o-mini"),
        ]

        assert ids(deduplicate_models(models)) == ["gpt-4o-2024-11-20", "gpt-4o-mini"]


class TestTokenUsagePresets:
    """Test the four usage levels."""

    def test_levels(self):
        assert TOKEN_USAGE_LEVELS[0] == TokenUsageSettings(False, True, False)
        assert TOKEN_USAGE_LEVELS[2].use_separate_requests_for_premium_models
        assert TOKEN_USAGE_LEVELS[3].skip_summary_step
