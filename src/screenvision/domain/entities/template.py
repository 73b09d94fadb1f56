"""Prompt template entity."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class PromptKind(Enum):
    """Which template of a pair a call uses."""

    ANALYZE = "analyze"
    CHAT = "chat"


@dataclass(frozen=True)
class PromptTemplate:
    """A named pair of prompt templates.

    Templates may contain the placeholders {HISTORY}, {SUBJECT_INSTRUCTION},
    {LAST_ANALYSIS} and {USER_MESSAGE}.

    Attributes:
        id: Unique template ID.
        name: Display name.
        analyze_template: Template used for screen analysis.
        chat_template: Template used for chat turns.
        description: Short description.
        icon: Display icon.
        builtin: Built-in templates cannot be edited or removed.
        created_at: When a custom template was created.
    """

    id: str
    name: str
    analyze_template: str
    chat_template: str
    description: str = ""
    icon: str = ""
    builtin: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def template_for(self, kind: PromptKind) -> str:
        """Return the template text for a call kind."""
        if kind is PromptKind.ANALYZE:
            return self.analyze_template
        return self.chat_template
