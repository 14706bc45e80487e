"""Choosing between hosted models: summary model, batching, catalog cleanup."""

import re
from collections.abc import Iterable, Sequence

from social_card_generator.config_settings import TokenUsageSettings
from social_card_generator.models import ProviderHandle
from social_card_generator.providers.hosted import ChatModel
from social_card_generator.utils.logging import get_logger

logger = get_logger(__name__)

_DATE_RE = re.compile(r"(\d{4}-\d{2}-\d{2})")
_O_SERIES_RE = re.compile(r"^o\d+$")
_VERSION_RE = re.compile(r"^[\d.]+[a-z]*$")
_TITLE_CASE_SEGMENTS = {"turbo", "flash", "pro", "codex", "instruct"}


def _date_of(model: ChatModel) -> str | None:
    match = _DATE_RE.search(model.id)
    return match.group(1) if match else None


def _haystacks(model: ChatModel) -> tuple[str, str]:
    return (model.family or "").lower(), (model.id or "").lower()


def _mentions(model: ChatModel, *needles: str) -> bool:
    family, model_id = _haystacks(model)
    return any(n in family or n in model_id for n in needles)


def most_recent(models: Sequence[ChatModel]) -> ChatModel:
    """Newest model by the ISO date in its id, else the highest id."""

    def key(model: ChatModel) -> tuple[int, str, str]:
        date = _date_of(model)
        return (1 if date else 0, date or "", model.id)

    return max(models, key=key)


def select_summary_model(candidates: Sequence[ChatModel]) -> ChatModel | None:
    """Pick an economical model for summarization.

    Priority: GPT-5 mini, GPT-4o mini, any mini/small model, first model.
    Returns None when there are no candidates.
    """
    if not candidates:
        return None

    tiers = (
        ("gpt-5 mini", lambda m: _mentions(m, "gpt-5", "gpt5") and _mentions(m, "mini")),
        ("gpt-4o mini", lambda m: _mentions(m, "gpt-4o") and _mentions(m, "mini")),
        ("mini", lambda m: _mentions(m, "mini", "small")),
    )
    for tier, predicate in tiers:
        matches = [m for m in candidates if predicate(m)]
        if matches:
            chosen = most_recent(matches)
            logger.debug("summary_model_selected", model=chosen.id, tier=tier)
            return chosen

    fallback = candidates[0]
    logger.warning("summary_model_fallback", model=fallback.id)
    return fallback


def is_free_tier(handle: ProviderHandle, free_tier_vendors: Iterable[str]) -> bool:
    vendor = handle.vendor.lower()
    return bool(vendor) and vendor in {v.lower() for v in free_tier_vendors}


def should_use_separate_requests(
    handle: ProviderHandle,
    usage: TokenUsageSettings,
    free_tier_vendors: Iterable[str] = ("copilot",),
) -> bool:
    """Whether each design gets its own request.

    True for CLI providers, for hosted models on a free/standard vendor tier
    and when quality mode is enabled for premium models.
    """
    return (
        handle.is_cli
        or is_free_tier(handle, free_tier_vendors)
        or usage.use_separate_requests_for_premium_models
    )


def is_supported_model(model: ChatModel) -> bool:
    """Drop model families that do not serve third-party chat requests."""
    vendor = (model.vendor or "").lower()
    family, model_id = _haystacks(model)
    if vendor == "xai" or "grok" in family:
        return False
    if vendor == "google" or "gemini" in family:
        return False
    if "claude" in family:
        return any(
            tag in family or tag in model_id for tag in ("3-5-sonnet", "3.5-sonnet")
        )
    return True


def filter_supported_models(models: Iterable[ChatModel]) -> list[ChatModel]:
    return [m for m in models if is_supported_model(m)]


def _capitalize_segment(segment: str) -> str:
    lower = segment.lower()
    if lower == "mini":
        return lower
    if lower == "gpt":
        return "GPT"
    if _O_SERIES_RE.match(lower):
        return lower
    if lower in _TITLE_CASE_SEGMENTS:
        return lower.capitalize()
    if _VERSION_RE.match(lower):
        return lower
    return segment[:1].upper() + segment[1:].lower()


def _capitalize_word(word: str) -> str:
    if _O_SERIES_RE.match(word.lower()):
        return word.lower()
    return "-".join(_capitalize_segment(seg) for seg in word.split("-"))


def model_display_name(model: ChatModel) -> str:
    """Friendly product name, e.g. ``gpt-4o-mini`` -> ``GPT-4o-mini``."""
    family = model.family or ""
    version = model.version or ""
    lower = family.lower()

    if "gpt" in lower:
        name = family.upper()
    elif "claude" in lower:
        name = "Claude"
        variant = re.sub(r"claude-?", "", family, flags=re.IGNORECASE).strip()
        if variant:
            name += " " + " ".join(w[:1].upper() + w[1:] for w in variant.split("-"))
    elif "gemini" in lower:
        name = "Gemini"
        variant = re.sub(r"gemini-?", "", family, flags=re.IGNORECASE).strip()
        if variant:
            name += f" {variant.upper()}"
    else:
        name = family[:1].upper() + family[1:]
    if version:
        name += f" {version}"

    # "GPT-4o gpt-4o-2024-11-20" -> "GPT-4o"
    parts = name.split(" ")
    if len(parts) > 1 and "-" in parts[-1]:
        parts.pop()

    name = " ".join(_capitalize_word(word) for word in parts if word)
    return name or "Unknown Model"


def deduplicate_models(models: Iterable[ChatModel]) -> list[ChatModel]:
    """Keep one model per display name, preferring the newest dated id."""
    groups: dict[str, list[ChatModel]] = {}
    for model in models:
        groups.setdefault(model_display_name(model), []).append(model)
    return [most_recent(group) for group in groups.values()]
