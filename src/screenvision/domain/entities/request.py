"""Per-call request entities."""

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from screenvision.domain.entities.template import PromptKind
from screenvision.domain.entities.turn import ConversationTurn

DEFAULT_IMAGE_MIME_TYPE = "image/jpeg"

# data:<mime>;base64,<data>
DATA_URI_PATTERN = re.compile(r"^data:([^;,]+);base64,(.*)$", re.DOTALL)

GENERATION_PARAMETERS: Mapping[str, Any] = MappingProxyType(
    {
        "temperature": 0.15,
        "topK": 5,
        "topP": 0.85,
        "maxOutputTokens": 4096,
    }
)

SAFETY_SETTINGS: tuple[Mapping[str, str], ...] = tuple(
    MappingProxyType({"category": category, "threshold": "BLOCK_NONE"})
    for category in (
        "HARM_CATEGORY_HARASSMENT",
        "HARM_CATEGORY_HATE_SPEECH",
        "HARM_CATEGORY_SEXUALLY_EXPLICIT",
        "HARM_CATEGORY_DANGEROUS_CONTENT",
    )
)


@dataclass(frozen=True)
class ImagePayload:
    """Inline image sent along with a prompt.

    Attributes:
        mime_type: Image MIME type.
        data: Base64-encoded image bytes, without any data URI prefix.
    """

    mime_type: str
    data: str

    @classmethod
    def from_frame(
        cls, frame: str, default_mime_type: str = DEFAULT_IMAGE_MIME_TYPE
    ) -> "ImagePayload":
        """Normalize a frame given as raw base64 or as a data URI.

        Args:
            frame: "abc123" or "data:image/jpeg;base64,abc123".
            default_mime_type: MIME type assumed for raw base64.

        Returns:
            ImagePayload instance.

        Raises:
            ValueError: The frame is empty.
        """
        frame = frame.strip()
        match = DATA_URI_PATTERN.match(frame)
        if match:
            mime_type, data = match.group(1), match.group(2)
        else:
            mime_type, data = default_mime_type, frame
        if not data:
            raise ValueError("Frame contains no image data")
        return cls(mime_type=mime_type, data=data)

    def to_part(self) -> dict[str, Any]:
        """Provider wire representation."""
        return {"inline_data": {"mime_type": self.mime_type, "data": self.data}}


@dataclass(frozen=True)
class CallContext:
    """Conversational context of a call.

    Only the proxy backend forwards it; the direct backend sends the rendered
    prompt alone.
    """

    kind: PromptKind = PromptKind.CHAT
    subject: str = "auto"
    user_message: str | None = None
    last_analysis: str = ""
    history: tuple[ConversationTurn, ...] = ()


@dataclass(frozen=True)
class RequestEnvelope:
    """Everything a backend needs to perform one model call."""

    prompt_text: str
    image: ImagePayload | None = None
    context: CallContext = field(default_factory=CallContext)
    generation_parameters: Mapping[str, Any] = field(
        default_factory=lambda: GENERATION_PARAMETERS
    )

    def contents(self) -> list[dict[str, Any]]:
        """Build the single "contents" block, image part first."""
        parts: list[dict[str, Any]] = []
        if self.image is not None:
            parts.append(self.image.to_part())
        parts.append({"text": self.prompt_text})
        return [{"parts": parts}]

    def provider_body(self) -> dict[str, Any]:
        """Full generateContent request body."""
        return {
            "contents": self.contents(),
            "generationConfig": dict(self.generation_parameters),
            "safetySettings": [dict(setting) for setting in SAFETY_SETTINGS],
        }
