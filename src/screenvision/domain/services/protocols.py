"""Domain service protocols."""

from typing import Protocol

from screenvision.domain.entities import CallContext, ImagePayload, PromptTemplate


class ModelGateway(Protocol):
    """Model call abstraction.

    Implementations build the wire request, apply the retry policy and
    classify failures into GatewayError subclasses.
    """

    async def call(
        self,
        prompt_text: str,
        image: ImagePayload | str | None = None,
        *,
        context: CallContext | None = None,
        silent: bool = False,
        retry_count: int = 0,
    ) -> str | None:
        """Perform one logical model call.

        Args:
            prompt_text: Fully rendered prompt.
            image: Frame as ImagePayload, raw base64 or data URI.
            context: Conversational fields forwarded by the proxy backend.
            silent: Suppress failure logging. Retry and error semantics are
                unchanged.
            retry_count: Attempts already spent on this call.

        Returns:
            Answer text, or None when the model returned nothing usable.

        Raises:
            GatewayError: Unrecoverable failure.
        """
        ...


class FrameSource(Protocol):
    """Supplier of still screen frames (external collaborator)."""

    async def capture(self) -> str | None:
        """Capture the current frame.

        Returns:
            Raw base64 JPEG data or a data URI, None when no frame is
            available yet.
        """
        ...


class PromptTemplateRepository(Protocol):
    """Storage for user-defined prompt templates."""

    async def save(self, template: PromptTemplate) -> None:
        """Insert or update a template."""
        ...

    async def find_by_id(self, template_id: str) -> PromptTemplate | None:
        """Find a template by ID."""
        ...

    async def find_all(self) -> list[PromptTemplate]:
        """Return all templates, oldest first."""
        ...

    async def delete(self, template_id: str) -> bool:
        """Delete a template.

        Returns:
            True when a template was deleted.
        """
        ...
