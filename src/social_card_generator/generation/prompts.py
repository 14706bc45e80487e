"""Prompt text for summarization, design generation and modification."""

from social_card_generator.models import CardDimensions

SUMMARY_PROMPT = """Analyze this blog post and extract:
1. A clear, compelling title (5-10 words max)
2. A concise summary that captures the main points (2-3 sentences)

Blog post content:
{content}

Return ONLY valid JSON in this exact format:
{{
  "title": "The extracted or refined title",
  "summary": "A 2-3 sentence summary of the key points"
}}"""

DESIGN_ANALYSIS_HINT = "Brief analysis of your design approach for this variation"
MODIFICATION_ANALYSIS_HINT = (
    "Brief explanation of what changes you made and to which design(s)"
)

_TECHNICAL_REQUIREMENTS = r"""Return ONLY valid JSON in this exact format:
{
  "analysis": "<<analysis_hint>>",
  "designs": [
    {
      "title": "Design concept name",
      "html": "Complete HTML with inline CSS for the card"
    }
  ]
}

CRITICAL JSON FORMATTING:
- The HTML string MUST be properly escaped for JSON
- Escape all backslashes: \ becomes \\
- Escape all double quotes: " becomes \"
- Escape all newlines: actual newlines become \n
- Escape all tabs: actual tabs become \t
- Do NOT use backticks (`) in the HTML - they break JSON parsing
- Use regular quotes for HTML attributes

The HTML should be self-contained with all CSS inline or in <style> tags. Use the exact dimensions provided (<<width>>x<<height>>px). Ensure the HTML is valid and displays properly when rendered."""


def technical_requirements(
    dimensions: CardDimensions, analysis_hint: str = DESIGN_ANALYSIS_HINT
) -> str:
    """Output-contract instructions appended to every design prompt."""
    return (
        _TECHNICAL_REQUIREMENTS.replace("<<analysis_hint>>", analysis_hint)
        .replace("<<width>>", str(dimensions.width))
        .replace("<<height>>", str(dimensions.height))
    )


def design_requirements(
    dimensions: CardDimensions,
    *,
    color_line: str,
    composition_line: str | None = None,
    extra_avoid: tuple[str, ...] = (),
    heading: str = "Requirements:",
) -> str:
    """Built-in design guidance shared by generation and modification."""
    size = f"{dimensions.width}x{dimensions.height}px"
    composition = [
        "- Leave generous breathing room - don't cram elements",
        "- Keep critical elements at least 50px from edges (safe zones for platform cropping)",
        "- Balance text and visual elements - neither should overwhelm",
    ]
    if composition_line:
        composition.append(f"- {composition_line}")

    avoid = [
        "- More than 10 words of text",
        "- Thin/light fonts",
        "- Low contrast text",
        "- Placing text near edges",
        "- Generic stock imagery",
        *(f"- {item}" for item in extra_avoid),
    ]

    sections = [
        heading,
        "",
        "CONTENT & HIERARCHY:",
        "- Use the title and summary to craft the most compelling message - what would make someone stop scrolling?",
        "- Use MAXIMUM 10 words total (preferably 5-7) - be ruthlessly concise",
        "- Put the most important message first and largest",
        '- Be specific, not generic (e.g., "5 Python Mistakes" not "Python Tips")',
        "- Use size and weight to establish hierarchy: larger/bolder = more important",
        "",
        "TYPOGRAPHY (CRITICAL):",
        "- Minimum 60-80px font size for headlines on 1200x630px canvas (scale proportionally for other sizes)",
        "- Use bold/heavy font weights - avoid thin fonts that disappear at thumbnail size",
        "- Limit to 2-3 font weights maximum",
        "- High contrast text: minimum 4.5:1 ratio for body text, 3:1 for large text (WCAG AA)",
        "- Use system fonts or Google Fonts only",
        "",
        "COLOR & CONTRAST:",
        "- Design will be viewed at thumbnail size on mobile - high contrast is essential",
        '- Avoid low-contrast "aesthetic" choices that fail accessibility',
        "- Be careful with gradients - they can look muddy when compressed",
        f"- {color_line}",
        "",
        "COMPOSITION:",
        *composition,
        "",
        "TECHNICAL:",
        f"- Use exact dimensions: {size}",
        "- Self-contained HTML with all CSS inline or in <style> tags",
        "- Ensure designs look good when compressed (avoid fine details that blur)",
        "",
        "AVOID:",
        *avoid,
    ]
    return "\n".join(sections)


PNG_EXPORT_AVOID = (
    "Using background-clip: text or -webkit-background-clip: text "
    "(not supported in PNG export - use solid colors instead)"
)

MODIFICATION_RULES = """IMPORTANT:
1. Parse the user's request carefully to understand which design(s) they want to modify and what changes they want
2. If they mention a specific design number (e.g., "design 3" or "the third one"), modify ONLY that design
3. If they say "all designs" or don't specify, apply the changes to ALL designs
4. Keep all other design properties intact unless specifically asked to change them
5. Return the COMPLETE set of designs (modified ones in their new form, unchanged ones as-is)"""
