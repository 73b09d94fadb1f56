"""Conversation turn entity."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class Role(Enum):
    """Author of a conversation turn.

    System turns are UI-only notices and never reach upstream prompts.
    """

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"

    @property
    def label(self) -> str:
        """Label used when the turn is rendered into a prompt."""
        return self.value.capitalize()


@dataclass(frozen=True)
class ConversationTurn:
    """A single message in the conversation log.

    Attributes:
        role: Who produced the turn.
        content: Text typed by the user or returned by the model.
        created_at: Creation time, used for display only.
    """

    role: Role
    content: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def user(cls, content: str) -> "ConversationTurn":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "ConversationTurn":
        return cls(role=Role.ASSISTANT, content=content)

    @classmethod
    def system(cls, content: str) -> "ConversationTurn":
        return cls(role=Role.SYSTEM, content=content)

    def format_for_prompt(self) -> str:
        """Format as "<Role>: <content>".

        Returns:
            Formatted line, e.g. "User: what is 2+2?"
        """
        return f"{self.role.label}: {self.content}"

    def to_dict(self) -> dict[str, str]:
        """Serialize to the {role, content} shape used on the proxy wire."""
        return {"role": self.role.value, "content": self.content}
