"""Instruction template sent alongside the exported image."""

REVIEW_PROMPT = (
    "Please review the following UI design. Provide feedback on its usability, "
    "visual appeal, and any potential areas for improvement. Consider aspects "
    "like layout, color scheme, typography, and overall user experience. "
    "Structure the feedback with short headings and bullet points."
)

PROMPT_SEPARATOR = "\n\n"


def build_prompt(extra_instruction: str | None, template: str = REVIEW_PROMPT) -> str:
    """Append the user's optional instruction to the fixed template."""
    suffix = (extra_instruction or "").strip()
    if not suffix:
        return template
    return f"{template}{PROMPT_SEPARATOR}{suffix}"
