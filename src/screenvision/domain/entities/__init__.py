"""Domain entities."""

from screenvision.domain.entities.request import (
    GENERATION_PARAMETERS,
    SAFETY_SETTINGS,
    CallContext,
    ImagePayload,
    RequestEnvelope,
)
from screenvision.domain.entities.subject import SubjectMode
from screenvision.domain.entities.template import PromptKind, PromptTemplate
from screenvision.domain.entities.turn import ConversationTurn, Role

__all__ = [
    "GENERATION_PARAMETERS",
    "SAFETY_SETTINGS",
    "CallContext",
    "ConversationTurn",
    "ImagePayload",
    "PromptKind",
    "PromptTemplate",
    "RequestEnvelope",
    "Role",
    "SubjectMode",
]
