"""Build the prompts sent to the model for each pipeline step.

Every builder is a pure function of its arguments. The technical JSON
contract is appended to every design prompt whatever the prompt mode.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from social_card_generator.models import CardDesign, CardDimensions
from social_card_generator.utils.logging import get_logger

from .prompt_template import (
    parse_template_file,
    substitute_variables,
    validate_template,
)
from .prompts import (
    MODIFICATION_ANALYSIS_HINT,
    MODIFICATION_RULES,
    PNG_EXPORT_AVOID,
    SUMMARY_PROMPT,
    design_requirements,
    technical_requirements,
)

logger = get_logger(__name__)


class PromptMode(str, Enum):
    """How custom instructions combine with the built-in design prompt."""

    DEFAULT = "default"
    APPEND = "append"
    CUSTOM = "custom"


@dataclass(frozen=True)
class PromptSettings:
    mode: PromptMode = PromptMode.DEFAULT
    custom_instructions: str = ""

    @classmethod
    def from_config(cls, config) -> PromptSettings:
        """Read prompt settings, letting a prompt file override inline text."""
        mode = PromptMode(config.prompt_mode)
        instructions = config.custom_prompt_instructions
        prompt_file: Path | None = getattr(config, "custom_prompt_file", None)
        if prompt_file is not None:
            template = parse_template_file(prompt_file)
            for problem in validate_template(template):
                logger.warning(
                    "config_warning", prompt_file=str(prompt_file), problem=problem
                )
            instructions = template.prompt_body
            if template.mode:
                mode = PromptMode(template.mode)
        return cls(mode=mode, custom_instructions=instructions)


def build_summary_prompt(content: str) -> str:
    return SUMMARY_PROMPT.format(content=content)


def _default_design_prompt(
    title: str,
    summary: str,
    dimensions: CardDimensions,
    design_number: int,
    number_of_designs: int,
    batch_mode: bool,
    full_content: str | None,
) -> str:
    if batch_mode:
        design_instruction = (
            "You are a social media card designer. Create EXACTLY "
            f"{number_of_designs} design variations for a social media card "
            "based on this blog post."
        )
        uniqueness_instruction = (
            f"IMPORTANT: You MUST create EXACTLY {number_of_designs} different "
            "designs. Do not create more or fewer."
        )
        color_line = "Each design should have a distinct color scheme"
        composition_line = (
            f"Create visual variety across all {number_of_designs} designs "
            "(different layouts, not just color swaps)"
        )
        extra_avoid: tuple[str, ...] = (
            PNG_EXPORT_AVOID,
            "Making all designs look too similar",
        )
    else:
        design_instruction = (
            "You are a social media card designer. Create a single unique "
            f"design variation (design #{design_number} of {number_of_designs}) "
            "for a social media card based on this blog post."
        )
        uniqueness_instruction = (
            "IMPORTANT: Create ONE unique design. Make it distinctly different "
            "from typical social media cards. Be creative with the layout, "
            "color scheme, and visual approach."
        )
        color_line = "Use a distinct color scheme"
        composition_line = (
            "Create a unique layout (try different approaches like split "
            "screen, centered, asymmetric, etc.)"
        )
        extra_avoid = (PNG_EXPORT_AVOID,)

    if full_content is not None:
        source = f"Blog post title: {title}\n\nBlog post content:\n{full_content}"
    else:
        source = f"Blog post title: {title}\n\nBlog post summary: {summary}"

    requirements = design_requirements(
        dimensions,
        color_line=color_line,
        composition_line=composition_line,
        extra_avoid=extra_avoid,
    )
    return (
        f"{design_instruction}\n\n"
        f"{source}\n\n"
        f"Card dimensions: {dimensions.width}x{dimensions.height}px\n\n"
        f"{uniqueness_instruction}\n\n"
        f"{requirements}"
    )


def build_design_prompt(
    title: str,
    summary: str,
    dimensions: CardDimensions,
    design_number: int,
    number_of_designs: int,
    *,
    batch_mode: bool = False,
    settings: PromptSettings | None = None,
    guidance: str | None = None,
    full_content: str | None = None,
) -> str:
    """Build a design-generation prompt.

    Args:
        title: Post title
        summary: Post summary (ignored when ``full_content`` is given)
        dimensions: Target card size
        design_number: 1-based index of the requested design
        number_of_designs: Total designs in this run
        batch_mode: Ask for all designs in one response
        settings: Configured prompt mode and custom instructions
        guidance: One-off user guidance; forces append mode for this call
        full_content: Whole post text, used when summarization is skipped
    """
    settings = settings or PromptSettings()
    if guidance:
        mode = PromptMode.APPEND
        instructions = guidance
    else:
        mode = settings.mode
        instructions = settings.custom_instructions

    variables = {
        "title": title,
        "summary": summary,
        "width": dimensions.width,
        "height": dimensions.height,
        "designNumber": design_number,
        "numberOfDesigns": number_of_designs,
    }
    technical = technical_requirements(dimensions)

    if mode is PromptMode.CUSTOM and instructions.strip():
        return f"{substitute_variables(instructions, variables)}\n\n{technical}"

    default_prompt = _default_design_prompt(
        title,
        summary,
        dimensions,
        design_number,
        number_of_designs,
        batch_mode,
        full_content,
    )
    if mode is PromptMode.APPEND and instructions.strip():
        return (
            f"{default_prompt}\n\n"
            "ADDITIONAL INSTRUCTIONS:\n"
            f"{substitute_variables(instructions, variables)}\n\n"
            f"{technical}"
        )
    return f"{default_prompt}\n\n{technical}"


def format_designs_context(designs: Sequence[CardDesign]) -> str:
    return "\n\n---\n\n".join(
        f"Design {index}: {design.title}\nHTML:\n{design.html}"
        for index, design in enumerate(designs, start=1)
    )


def build_modification_prompt(
    designs: Sequence[CardDesign],
    instruction: str,
    dimensions: CardDimensions,
) -> str:
    """Build a prompt asking for the complete, modified design set."""
    requirements = design_requirements(
        dimensions,
        color_line="Each design should have a distinct color scheme",
        heading="Requirements for modified designs:",
    )
    return (
        "You are a social media card designer. The user has requested "
        "modifications to existing designs.\n\n"
        f"Current designs:\n{format_designs_context(designs)}\n\n"
        f"Card dimensions: {dimensions.width}x{dimensions.height}px\n\n"
        f"User's modification request:\n{instruction}\n\n"
        f"{MODIFICATION_RULES}\n\n"
        f"{requirements}\n\n"
        f"{technical_requirements(dimensions, MODIFICATION_ANALYSIS_HINT)}"
    )
