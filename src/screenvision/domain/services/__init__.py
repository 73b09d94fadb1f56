"""Domain services."""

from screenvision.domain.services.conversation_store import (
    ConversationStore,
    HistoryListener,
    format_history,
)
from screenvision.domain.services.frame_deduplicator import (
    FrameDeduplicator,
    fingerprint,
)
from screenvision.domain.services.prompt_renderer import (
    NO_ANALYSIS_TEXT,
    TemplateVariables,
    render_template,
)
from screenvision.domain.services.protocols import (
    FrameSource,
    ModelGateway,
    PromptTemplateRepository,
)

__all__ = [
    "NO_ANALYSIS_TEXT",
    "ConversationStore",
    "FrameDeduplicator",
    "FrameSource",
    "HistoryListener",
    "ModelGateway",
    "PromptTemplateRepository",
    "TemplateVariables",
    "fingerprint",
    "format_history",
    "render_template",
]
