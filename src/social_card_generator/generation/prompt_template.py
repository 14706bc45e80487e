"""Parse custom design prompt files with YAML frontmatter."""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from ..exceptions import ConfigurationError
from ..utils.logging import get_logger

logger = get_logger(__name__)

TEMPLATE_VARIABLES = (
    "title",
    "summary",
    "width",
    "height",
    "designNumber",
    "numberOfDesigns",
)

_PLACEHOLDER_RE = re.compile(r"\{\{(\w+)\}\}")


@dataclass
class PromptTemplate:
    """Custom design instructions, optionally carrying their own prompt mode."""

    mode: str | None = None
    prompt_body: str = ""

    def substitute(self, **kwargs: Any) -> str:
        """Replace ``{{name}}`` placeholders with the given values."""
        return substitute_variables(self.prompt_body, kwargs)


def substitute_variables(text: str, variables: dict[str, Any]) -> str:
    """Replace ``{{name}}`` placeholders; unknown placeholders stay as typed."""
    result = text
    for key, value in variables.items():
        result = result.replace(f"{{{{{key}}}}}", str(value))
    return result


def parse_template_file(template_path: Path) -> PromptTemplate:
    """
    Parse a prompt file. Frontmatter may set ``mode: append`` or ``mode: custom``.

    Raises:
        ConfigurationError: If the file is missing or the frontmatter is invalid
    """
    if not template_path.exists():
        raise ConfigurationError(f"Prompt file not found: {template_path}")

    content = template_path.read_text(encoding="utf-8")
    frontmatter_match = re.match(r"^---\s*\n(.*?)\n---\s*\n(.*)$", content, re.DOTALL)
    if frontmatter_match:
        frontmatter_text = frontmatter_match.group(1)
        prompt_body = frontmatter_match.group(2)
    else:
        frontmatter_text = ""
        prompt_body = content

    config: dict[str, Any] = {}
    if frontmatter_text:
        try:
            config = yaml.safe_load(frontmatter_text) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML frontmatter: {e}") from e

    mode = config.get("mode") or config.get("promptMode")
    if mode is not None and mode not in ("default", "append", "custom"):
        raise ConfigurationError(
            f"Invalid prompt mode in {template_path}: {mode}",
            suggestion="Use one of: default, append, custom",
        )

    template = PromptTemplate(mode=mode, prompt_body=prompt_body.strip())
    logger.debug(
        "template_parsed",
        template_path=str(template_path),
        mode=template.mode,
        body_length=len(template.prompt_body),
    )
    return template


def validate_template(template: PromptTemplate) -> list[str]:
    """Return problems with a template (empty list if valid)."""
    errors = []
    if not template.prompt_body:
        errors.append("Prompt body is empty")

    unknown = sorted(
        set(_PLACEHOLDER_RE.findall(template.prompt_body)) - set(TEMPLATE_VARIABLES)
    )
    if unknown:
        errors.append(f"Unknown placeholders: {', '.join(unknown)}")
    return errors
