"""Placeholder substitution for prompt templates."""

import re
from dataclasses import dataclass

HISTORY = "HISTORY"
SUBJECT_INSTRUCTION = "SUBJECT_INSTRUCTION"
LAST_ANALYSIS = "LAST_ANALYSIS"
USER_MESSAGE = "USER_MESSAGE"

NO_ANALYSIS_TEXT = "No recent analysis available."

PLACEHOLDER_PATTERN = re.compile(
    r"\{("
    + "|".join((HISTORY, SUBJECT_INSTRUCTION, LAST_ANALYSIS, USER_MESSAGE))
    + r")\}"
)


@dataclass(frozen=True)
class TemplateVariables:
    """Values substituted into a template.

    Attributes:
        history: Formatted recent conversation.
        subject_instruction: Instruction text for the active subject.
        last_analysis: Most recent analysis answer.
        user_message: Current user message. None leaves {USER_MESSAGE} in place.
    """

    history: str | None = None
    subject_instruction: str | None = None
    last_analysis: str | None = None
    user_message: str | None = None


def render_template(template: str, variables: TemplateVariables) -> str:
    """Substitute the recognized placeholders in a single pass.

    Replaced text is never scanned again, so a variable containing
    "{HISTORY}" stays literal. Unrecognized placeholders are left untouched
    and variables without a placeholder in the template are ignored.

    Defaults for absent or empty variables:
        {HISTORY}, {SUBJECT_INSTRUCTION}: empty string
        {LAST_ANALYSIS}: NO_ANALYSIS_TEXT
        {USER_MESSAGE}: not defaulted, the placeholder is kept

    Args:
        template: Template text.
        variables: Values to substitute.

    Returns:
        Rendered prompt.
    """

    def replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name == HISTORY:
            return variables.history or ""
        if name == SUBJECT_INSTRUCTION:
            return variables.subject_instruction or ""
        if name == LAST_ANALYSIS:
            return variables.last_analysis or NO_ANALYSIS_TEXT
        if variables.user_message is None:
            return match.group(0)
        return variables.user_message

    return PLACEHOLDER_PATTERN.sub(replace, template)
