"""Tests for prompt construction and custom prompt files."""

from pathlib import Path

import pytest

from social_card_generator.config_settings import Config
from social_card_generator.exceptions import ConfigurationError
from social_card_generator.generation.prompt_builder import (
    PromptMode,
    PromptSettings,
    build_design_prompt,
    build_modification_prompt,
    build_summary_prompt,
)
from social_card_generator.generation.prompt_template import (
    PromptTemplate,
    parse_template_file,
    substitute_variables,
    validate_template,
)
from social_card_generator.models import CardDimensions

SQUARE = CardDimensions(1080, 1080)
CONTRACT = "CRITICAL JSON FORMATTING:"


def design_prompt(**kwargs):
    defaults = {
        "title": "5 Cooking Mistakes",
        "summary": "New cooks rush.",
        "dimensions": SQUARE,
        "design_number": 2,
        "number_of_designs": 4,
    }
    defaults.update(kwargs)
    return build_design_prompt(
        defaults.pop("title"),
        defaults.pop("summary"),
        defaults.pop("dimensions"),
        defaults.pop("design_number"),
        defaults.pop("number_of_designs"),
        **defaults,
    )


class TestSummaryPrompt:
    """Test the summarization prompt."""

    def test_embeds_content(self):
        prompt = build_summary_prompt("Some {braces} in the post")

        assert "Some {braces} in the post" in prompt
        assert '"title": "The extracted or refined title"' in prompt


class TestDesignPrompt:
    """Test the design prompt in each mode."""

    def test_default_single_design(self):
        prompt = design_prompt()

        assert "design #2 of 4" in prompt
        assert "Blog post title: 5 Cooking Mistakes" in prompt
        assert "Blog post summary: New cooks rush." in prompt
        assert "Card dimensions: 1080x1080px" in prompt
        assert "Use the exact dimensions provided (1080x1080px)" in prompt
        assert prompt.rstrip().endswith("displays properly when rendered.")

    def test_batch_mode(self):
        prompt = design_prompt(batch_mode=True)

        assert "Create EXACTLY 4 design variations" in prompt
        assert "Making all designs look too similar" in prompt

    def test_full_content_replaces_summary(self):
        prompt = design_prompt(full_content="The whole post.")

        assert "Blog post content:\nThe whole post." in prompt
        assert "Blog post summary" not in prompt

    def test_append_mode(self):
        settings = PromptSettings(PromptMode.APPEND, "Use {{width}}px wide serif type for {{title}}")

        prompt = design_prompt(settings=settings)

        assert "design #2 of 4" in prompt
        assert "ADDITIONAL INSTRUCTIONS:\nUse 1080px wide serif type for 5 Cooking Mistakes" in prompt
        assert CONTRACT in prompt

    def test_custom_mode_replaces_default(self):
        settings = PromptSettings(
            PromptMode.CUSTOM,
            "Design {{designNumber}}/{{numberOfDesigns}}: {{summary}} {{unknown}}",
        )

        prompt = design_prompt(settings=settings)

        assert prompt.startswith("Design 2/4: New cooks rush. {{unknown}}")
        assert "design #2 of 4" not in prompt
        assert CONTRACT in prompt

    def test_empty_custom_instructions_use_default(self):
        prompt = design_prompt(settings=PromptSettings(PromptMode.CUSTOM, "   "))

        assert "design #2 of 4" in prompt

    def test_guidance_forces_append(self):
        settings = PromptSettings(PromptMode.CUSTOM, "Ignored custom text")

        prompt = design_prompt(settings=settings, guidance="Dark theme for {{title}}")

        assert "Ignored custom text" not in prompt
        assert "design #2 of 4" in prompt
        assert "ADDITIONAL INSTRUCTIONS:\nDark theme for 5 Cooking Mistakes" in prompt

    @pytest.mark.parametrize("mode", list(PromptMode))
    def test_contract_always_present(self, mode):
        prompt = design_prompt(settings=PromptSettings(mode, "Anything"))

        assert CONTRACT in prompt
        assert '"designs": [' in prompt


class TestModificationPrompt:
    """Test the modification prompt."""

    def test_lists_designs_and_request(self, sample_designs):
        prompt = build_modification_prompt(sample_designs, "Make design 2 blue", SQUARE)

        assert "Design 1: Bold Gradient\nHTML:\n<div>Bold</div>" in prompt
        assert "Design 2: Minimal" in prompt
        assert "User's modification request:\nMake design 2 blue" in prompt
        assert "Return the COMPLETE set of designs" in prompt
        assert "what changes you made and to which design(s)" in prompt


class TestPromptFiles:
    """Test custom prompt files with frontmatter."""

    def test_frontmatter_mode(self, tmp_path: Path):
        path = tmp_path / "prompt.md"
        path.write_text("---\nmode: custom\n---\nDesign for {{title}}\n", encoding="utf-8")

        template = parse_template_file(path)

        assert template.mode == "custom"
        assert template.prompt_body == "Design for {{title}}"
        assert template.substitute(title="Tacos") == "Design for Tacos"

    def test_plain_file(self, tmp_path: Path):
        path = tmp_path / "prompt.txt"
        path.write_text("Just text", encoding="utf-8")

        template = parse_template_file(path)

        assert template.mode is None
        assert template.prompt_body == "Just text"

    def test_invalid_mode(self, tmp_path: Path):
        path = tmp_path / "prompt.md"
        path.write_text("---\nmode: replace\n---\nBody\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="Invalid prompt mode"):
            parse_template_file(path)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigurationError, match="Prompt file not found"):
            parse_template_file(tmp_path / "nope.md")

    def test_validate_template(self):
        assert validate_template(PromptTemplate(prompt_body="{{title}} {{width}}")) == []
        assert validate_template(PromptTemplate(prompt_body="")) == ["Prompt body is empty"]
        assert validate_template(PromptTemplate(prompt_body="{{colour}}")) == [
            "Unknown placeholders: colour"
        ]

    def test_substitute_leaves_unknown(self):
        assert substitute_variables("{{a}} {{b}}", {"a": 1}) == "1 {{b}}"

    def test_settings_from_config_file(self, tmp_path: Path):
        path = tmp_path / "prompt.md"
        path.write_text("---\nmode: append\n---\nAlways use emoji\n", encoding="utf-8")
        config = Config(custom_prompt_instructions="inline", custom_prompt_file=str(path))

        settings = PromptSettings.from_config(config)

        assert settings == PromptSettings(PromptMode.APPEND, "Always use emoji")

    def test_settings_from_inline_config(self):
        config = Config(prompt_mode="custom", custom_prompt_instructions="Inline {{title}}")

        assert PromptSettings.from_config(config) == PromptSettings(
            PromptMode.CUSTOM, "Inline {{title}}"
        )
