"""Screen analysis and chat orchestration."""

import logging
from collections.abc import Callable
from enum import Enum

from screenvision.config import SessionConfig
from screenvision.domain.entities import (
    CallContext,
    ConversationTurn,
    ImagePayload,
    PromptKind,
    PromptTemplate,
    SubjectMode,
)
from screenvision.domain.exceptions import BusyError, GatewayError
from screenvision.domain.services import (
    ConversationStore,
    FrameDeduplicator,
    HistoryListener,
    ModelGateway,
    TemplateVariables,
    format_history,
    render_template,
)
from screenvision.domain.templates import STUDY_DEFAULT

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Orchestrator state. At most one model call is in flight."""

    IDLE = "idle"
    ANALYZING = "analyzing"
    CHATTING = "chatting"


class AnalysisOrchestrator:
    """Coordinates templates, history, frame deduplication and the gateway.

    One instance is one session. Calls arriving while another call is in
    flight fail fast with BusyError instead of queueing.

    The busy check and the state change happen without an await in between,
    so they cannot interleave on the event loop.
    """

    def __init__(
        self,
        gateway: ModelGateway,
        store: ConversationStore | None = None,
        deduplicator: FrameDeduplicator | None = None,
        template: PromptTemplate = STUDY_DEFAULT,
        subject: SubjectMode = SubjectMode.AUTO,
        config: SessionConfig | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            gateway: Model gateway used for every call.
            store: Conversation store. A new one is created when omitted.
            deduplicator: Frame deduplicator for automatic analysis.
            template: Template used when a call passes no custom template.
            subject: Initial subject mode.
            config: Session settings (history windows, skip marker).
        """
        self._config = config or SessionConfig()
        self._gateway = gateway
        self._store = store or ConversationStore()
        self._deduplicator = deduplicator or FrameDeduplicator(
            self._config.dedup_prefix_length
        )
        self._template = template
        self._subject = subject
        self._state = SessionState.IDLE

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def history(self) -> tuple[ConversationTurn, ...]:
        return self._store.history

    @property
    def last_analysis(self) -> str:
        return self._store.get_last_analysis()

    @property
    def active_subject(self) -> SubjectMode:
        return self._subject

    @property
    def template(self) -> PromptTemplate:
        return self._template

    def set_subject(self, subject: SubjectMode | str) -> None:
        self._subject = SubjectMode.parse(subject)

    def set_template(self, template: PromptTemplate) -> None:
        self._template = template

    def subscribe(self, listener: HistoryListener) -> Callable[[], None]:
        """Register a history listener.

        The listener receives the full history after every append or clear.

        Returns:
            Function that unregisters the listener.
        """
        self._store.add_listener(listener)
        return lambda: self._store.remove_listener(listener)

    async def analyze_frame(
        self,
        frame: str,
        subject: SubjectMode | str | None = None,
        custom_template: PromptTemplate | None = None,
        *,
        automatic: bool = False,
    ) -> str | None:
        """Analyze a screen frame.

        Processing flow:
        1. Reject with BusyError unless idle
        2. Automatic calls only: skip frames equal to the last accepted one
        3. Render the analyze template with recent history
        4. Call the gateway with the frame
        5. Store a meaningful answer as last analysis and assistant turn

        Args:
            frame: Raw base64 JPEG or data URI.
            subject: Subject mode for this call. Defaults to the active one.
            custom_template: Template overriding the session template.
            automatic: True for the periodic path. Enables deduplication and
                silences gateway failure logging.

        Returns:
            The answer, or None for a duplicate frame, an empty answer or the
            skip marker.

        Raises:
            BusyError: Another call is in flight.
            GatewayError: The model call failed.
        """
        self._ensure_idle()
        image = ImagePayload.from_frame(frame)

        if automatic and not self._deduplicator.should_analyze(image.data):
            logger.debug("Frame unchanged, skipping automatic analysis")
            return None

        mode = self._resolve_subject(subject)
        template = custom_template or self._template

        self._state = SessionState.ANALYZING
        try:
            turns = self._store.recent_turns(self._config.analysis_history_turns)
            prompt = render_template(
                template.analyze_template,
                TemplateVariables(
                    history=format_history(turns),
                    subject_instruction=mode.instruction,
                ),
            )
            try:
                answer = await self._gateway.call(
                    prompt,
                    image,
                    context=CallContext(
                        kind=PromptKind.ANALYZE,
                        subject=mode.value,
                        history=tuple(turns),
                    ),
                    silent=automatic,
                )
            except GatewayError:
                # Failed frames stay eligible for the next automatic pass
                if automatic:
                    self._deduplicator.reset()
                raise

            answer = self._meaningful_answer(answer)
            if answer is None:
                logger.debug("Analysis produced nothing new")
                return None

            self._store.set_last_analysis(answer)
            self._store.append(ConversationTurn.assistant(answer))
            return answer
        finally:
            self._state = SessionState.IDLE

    async def send_chat_message(
        self,
        user_text: str,
        frame: str | None = None,
        subject: SubjectMode | str | None = None,
        custom_template: PromptTemplate | None = None,
    ) -> str | None:
        """Send a chat message with the last analysis as context.

        The user turn is appended before the call and stays in the history
        even when the call fails or returns nothing.

        Args:
            user_text: Message typed by the user.
            frame: Optional current frame attached to the message.
            subject: Subject mode for this call. Defaults to the active one.
            custom_template: Template overriding the session template.

        Returns:
            The answer, or None when the model returned nothing.

        Raises:
            BusyError: Another call is in flight.
            GatewayError: The model call failed.
        """
        self._ensure_idle()
        image = ImagePayload.from_frame(frame) if frame else None
        mode = self._resolve_subject(subject)
        template = custom_template or self._template

        self._store.append(ConversationTurn.user(user_text))

        self._state = SessionState.CHATTING
        try:
            turns = self._store.recent_turns(self._config.chat_history_turns)
            last_analysis = self._store.get_last_analysis()
            prompt = render_template(
                template.chat_template,
                TemplateVariables(
                    history=format_history(turns),
                    subject_instruction=mode.instruction,
                    last_analysis=last_analysis,
                    user_message=user_text,
                ),
            )
            answer = await self._gateway.call(
                prompt,
                image,
                context=CallContext(
                    kind=PromptKind.CHAT,
                    subject=mode.value,
                    user_message=user_text,
                    last_analysis=last_analysis,
                    history=tuple(turns),
                ),
            )

            if answer is not None:
                self._store.append(ConversationTurn.assistant(answer))
            return answer
        finally:
            self._state = SessionState.IDLE

    def clear_conversation(self) -> None:
        """Reset history, last analysis and the frame fingerprint.

        Raises:
            BusyError: A call is in flight.
        """
        self._ensure_idle()
        self._store.clear()
        self._deduplicator.reset()

    def reset_analysis(self) -> None:
        """Forget the frame fingerprint so the next automatic frame is analyzed."""
        self._deduplicator.reset()

    def add_notice(self, text: str) -> None:
        """Append a system notice. Notices are never sent to the model."""
        self._store.append(ConversationTurn.system(text))

    def _ensure_idle(self) -> None:
        if self._state is not SessionState.IDLE:
            raise BusyError(self._state.value)

    def _resolve_subject(self, subject: SubjectMode | str | None) -> SubjectMode:
        if subject is None:
            return self._subject
        return SubjectMode.parse(subject)

    def _meaningful_answer(self, answer: str | None) -> str | None:
        if answer is None:
            return None
        stripped = answer.strip()
        if not stripped or stripped == self._config.skip_marker:
            return None
        return answer
