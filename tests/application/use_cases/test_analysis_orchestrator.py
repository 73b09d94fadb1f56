"""Tests for AnalysisOrchestrator."""

import asyncio
import json
from typing import Any

import httpx
import pytest

from screenvision.application.use_cases import AnalysisOrchestrator, SessionState
from screenvision.config import SessionConfig
from screenvision.domain.entities import (
    CallContext,
    ConversationTurn,
    ImagePayload,
    PromptKind,
    PromptTemplate,
    Role,
    SubjectMode,
)
from screenvision.domain.exceptions import BusyError, ProviderError, RateLimitedError
from screenvision.domain.services import NO_ANALYSIS_TEXT
from screenvision.infrastructure.gemini import DirectBackend, GeminiGateway

TEMPLATE = PromptTemplate(
    id="test",
    name="Test",
    analyze_template="ANALYZE|{HISTORY}|{SUBJECT_INSTRUCTION}",
    chat_template="CHAT|{HISTORY}|{LAST_ANALYSIS}|{USER_MESSAGE}",
)


class FakeGateway:
    """ModelGateway double that records calls and returns queued answers."""

    def __init__(self, *answers: str | None | Exception) -> None:
        self._answers = list(answers) or ["answer"]
        self.calls: list[dict[str, Any]] = []
        self.release: asyncio.Event | None = None
        self.entered = asyncio.Event()

    async def call(
        self,
        prompt_text: str,
        image: ImagePayload | str | None = None,
        *,
        context: CallContext | None = None,
        silent: bool = False,
        retry_count: int = 0,
    ) -> str | None:
        self.calls.append(
            {
                "prompt": prompt_text,
                "image": image,
                "context": context,
                "silent": silent,
            }
        )
        self.entered.set()
        if self.release is not None:
            await self.release.wait()
        index = min(len(self.calls), len(self._answers)) - 1
        answer = self._answers[index]
        if isinstance(answer, Exception):
            raise answer
        return answer


def make_orchestrator(
    gateway: FakeGateway, config: SessionConfig | None = None
) -> AnalysisOrchestrator:
    return AnalysisOrchestrator(gateway, template=TEMPLATE, config=config)


class TestAnalyzeFrame:
    """analyze_frame tests."""

    async def test_meaningful_answer_recorded(self) -> None:
        gateway = FakeGateway("Correct answer: B")
        orchestrator = make_orchestrator(gateway)

        answer = await orchestrator.analyze_frame("abc123")

        assert answer == "Correct answer: B"
        assert orchestrator.last_analysis == "Correct answer: B"
        assert [(t.role, t.content) for t in orchestrator.history] == [
            (Role.ASSISTANT, "Correct answer: B")
        ]
        assert orchestrator.state is SessionState.IDLE

    async def test_sends_normalized_image(self) -> None:
        gateway = FakeGateway()
        orchestrator = make_orchestrator(gateway)

        await orchestrator.analyze_frame("data:image/png;base64,iVBOR")

        image = gateway.calls[0]["image"]
        assert image == ImagePayload(mime_type="image/png", data="iVBOR")
        assert gateway.calls[0]["context"].kind is PromptKind.ANALYZE

    async def test_prompt_uses_last_five_turns(self) -> None:
        gateway = FakeGateway()
        orchestrator = make_orchestrator(gateway)
        for i in range(7):
            orchestrator.add_notice("notice")
            await orchestrator.send_chat_message(f"q{i}")

        await orchestrator.analyze_frame("abc")

        prompt = gateway.calls[-1]["prompt"]
        history = prompt.split("|")[1]
        assert history.splitlines() == [
            "Assistant: answer",
            "User: q5",
            "Assistant: answer",
            "User: q6",
            "Assistant: answer",
        ]
        assert "notice" not in prompt

    async def test_subject_instruction(self) -> None:
        gateway = FakeGateway()
        orchestrator = make_orchestrator(gateway)

        await orchestrator.analyze_frame("abc", subject="math")

        assert SubjectMode.MATH.instruction in gateway.calls[0]["prompt"]
        assert gateway.calls[0]["context"].subject == "math"

    async def test_active_subject_used_by_default(self) -> None:
        gateway = FakeGateway()
        orchestrator = make_orchestrator(gateway)
        orchestrator.set_subject("logic")

        await orchestrator.analyze_frame("abc")

        assert orchestrator.active_subject is SubjectMode.LOGIC
        assert gateway.calls[0]["context"].subject == "logic"

    async def test_unknown_subject_rejected(self) -> None:
        orchestrator = make_orchestrator(FakeGateway())

        with pytest.raises(ValueError):
            orchestrator.set_subject("chemistry")

    async def test_custom_template_overrides(self) -> None:
        gateway = FakeGateway()
        orchestrator = make_orchestrator(gateway)
        custom = PromptTemplate(
            id="c", name="C", analyze_template="CUSTOM", chat_template="X"
        )

        await orchestrator.analyze_frame("abc", custom_template=custom)

        assert gateway.calls[0]["prompt"] == "CUSTOM"
        assert orchestrator.template is TEMPLATE

    @pytest.mark.parametrize("answer", ["[SKIP]", "  [SKIP]\n", "", "   ", None])
    async def test_non_meaningful_answer_ignored(self, answer: str | None) -> None:
        orchestrator = make_orchestrator(FakeGateway(answer))

        result = await orchestrator.analyze_frame("abc")

        assert result is None
        assert orchestrator.history == ()
        assert orchestrator.last_analysis == ""

    async def test_custom_skip_marker(self) -> None:
        orchestrator = make_orchestrator(
            FakeGateway("NOTHING"), SessionConfig(skip_marker="NOTHING")
        )

        assert await orchestrator.analyze_frame("abc") is None

    async def test_gateway_error_propagates_and_returns_to_idle(self) -> None:
        orchestrator = make_orchestrator(FakeGateway(ProviderError("boom", 500)))

        with pytest.raises(ProviderError):
            await orchestrator.analyze_frame("abc")

        assert orchestrator.state is SessionState.IDLE
        assert orchestrator.history == ()

    async def test_empty_frame_rejected(self) -> None:
        gateway = FakeGateway()
        orchestrator = make_orchestrator(gateway)

        with pytest.raises(ValueError):
            await orchestrator.analyze_frame("")

        assert gateway.calls == []
        assert orchestrator.state is SessionState.IDLE


class TestAutomaticAnalysis:
    """Deduplicated automatic path."""

    async def test_unchanged_frame_skipped(self) -> None:
        gateway = FakeGateway()
        orchestrator = make_orchestrator(gateway)

        first = await orchestrator.analyze_frame("abc123", automatic=True)
        second = await orchestrator.analyze_frame("abc123", automatic=True)

        assert first == "answer"
        assert second is None
        assert len(gateway.calls) == 1

    async def test_automatic_calls_are_silent(self) -> None:
        gateway = FakeGateway()
        orchestrator = make_orchestrator(gateway)

        await orchestrator.analyze_frame("abc123", automatic=True)

        assert gateway.calls[0]["silent"] is True

    async def test_manual_path_not_deduplicated(self) -> None:
        gateway = FakeGateway()
        orchestrator = make_orchestrator(gateway)

        await orchestrator.analyze_frame("abc123")
        await orchestrator.analyze_frame("abc123")

        assert len(gateway.calls) == 2
        assert gateway.calls[0]["silent"] is False

    async def test_data_uri_and_raw_frames_are_same(self) -> None:
        gateway = FakeGateway()
        orchestrator = make_orchestrator(gateway)

        await orchestrator.analyze_frame("abc123", automatic=True)
        result = await orchestrator.analyze_frame(
            "data:image/jpeg;base64,abc123", automatic=True
        )

        assert result is None
        assert len(gateway.calls) == 1

    async def test_reset_analysis_allows_same_frame(self) -> None:
        gateway = FakeGateway()
        orchestrator = make_orchestrator(gateway)
        await orchestrator.analyze_frame("abc123", automatic=True)

        orchestrator.reset_analysis()

        assert await orchestrator.analyze_frame("abc123", automatic=True) == "answer"
        assert len(gateway.calls) == 2

    async def test_failed_call_keeps_frame_eligible(self) -> None:
        gateway = FakeGateway(RateLimitedError("limit"), "answer")
        orchestrator = make_orchestrator(gateway)

        with pytest.raises(RateLimitedError):
            await orchestrator.analyze_frame("abc123", automatic=True)
        result = await orchestrator.analyze_frame("abc123", automatic=True)

        assert result == "answer"
        assert len(gateway.calls) == 2
        assert orchestrator.state is SessionState.IDLE

    async def test_skip_marker_still_suppresses_same_frame(self) -> None:
        gateway = FakeGateway("[SKIP]")
        orchestrator = make_orchestrator(gateway)

        await orchestrator.analyze_frame("abc123", automatic=True)
        result = await orchestrator.analyze_frame("abc123", automatic=True)

        assert result is None
        assert len(gateway.calls) == 1


class TestSendChatMessage:
    """send_chat_message tests."""

    async def test_user_then_assistant_turn(self) -> None:
        orchestrator = make_orchestrator(FakeGateway("It is B because..."))

        answer = await orchestrator.send_chat_message("why B?")

        assert answer == "It is B because..."
        assert [(t.role, t.content) for t in orchestrator.history] == [
            (Role.USER, "why B?"),
            (Role.ASSISTANT, "It is B because..."),
        ]

    async def test_prompt_includes_context(self) -> None:
        gateway = FakeGateway("B", "explanation")
        orchestrator = make_orchestrator(gateway)
        await orchestrator.analyze_frame("abc")

        await orchestrator.send_chat_message("why?")

        prompt = gateway.calls[1]["prompt"]
        assert prompt == "CHAT|Assistant: B\nUser: why?|B|why?"
        context = gateway.calls[1]["context"]
        assert context.kind is PromptKind.CHAT
        assert context.user_message == "why?"
        assert context.last_analysis == "B"
        assert gateway.calls[1]["image"] is None

    async def test_without_analysis_uses_default_text(self) -> None:
        gateway = FakeGateway()
        orchestrator = make_orchestrator(gateway)

        await orchestrator.send_chat_message("hello")

        assert NO_ANALYSIS_TEXT in gateway.calls[0]["prompt"]

    async def test_chat_window_is_eight_turns(self) -> None:
        gateway = FakeGateway()
        orchestrator = make_orchestrator(gateway)
        for i in range(6):
            await orchestrator.send_chat_message(f"q{i}")

        await orchestrator.send_chat_message("last")

        context = gateway.calls[-1]["context"]
        assert len(context.history) == 8
        assert context.history[-1] == orchestrator.history[-2]
        assert context.history[-1].content == "last"

    async def test_frame_attached(self) -> None:
        gateway = FakeGateway()
        orchestrator = make_orchestrator(gateway)

        await orchestrator.send_chat_message("what is this?", frame="abc123")

        assert gateway.calls[0]["image"] == ImagePayload("image/jpeg", "abc123")

    async def test_user_turn_kept_on_failure(self) -> None:
        orchestrator = make_orchestrator(FakeGateway(ProviderError("boom", 500)))

        with pytest.raises(ProviderError):
            await orchestrator.send_chat_message("hello")

        assert [t.role for t in orchestrator.history] == [Role.USER]
        assert orchestrator.state is SessionState.IDLE

    async def test_none_answer_keeps_only_user_turn(self) -> None:
        orchestrator = make_orchestrator(FakeGateway(None))

        assert await orchestrator.send_chat_message("hello") is None
        assert len(orchestrator.history) == 1

    async def test_chat_does_not_touch_last_analysis(self) -> None:
        orchestrator = make_orchestrator(FakeGateway("analysis", "reply"))
        await orchestrator.analyze_frame("abc")

        await orchestrator.send_chat_message("q")

        assert orchestrator.last_analysis == "analysis"


class TestBusy:
    """Single-flight behavior."""

    async def test_calls_rejected_while_in_flight(self) -> None:
        gateway = FakeGateway("done")
        gateway.release = asyncio.Event()
        orchestrator = make_orchestrator(gateway)

        task = asyncio.create_task(orchestrator.analyze_frame("abc"))
        await gateway.entered.wait()

        assert orchestrator.state is SessionState.ANALYZING
        with pytest.raises(BusyError):
            await orchestrator.analyze_frame("other")
        with pytest.raises(BusyError):
            await orchestrator.send_chat_message("hi")
        with pytest.raises(BusyError):
            orchestrator.clear_conversation()

        gateway.release.set()
        assert await task == "done"
        assert orchestrator.state is SessionState.IDLE
        assert len(gateway.calls) == 1

    async def test_rejected_chat_adds_no_turn(self) -> None:
        gateway = FakeGateway("done")
        gateway.release = asyncio.Event()
        orchestrator = make_orchestrator(gateway)

        task = asyncio.create_task(orchestrator.send_chat_message("first"))
        await gateway.entered.wait()

        assert orchestrator.state is SessionState.CHATTING
        with pytest.raises(BusyError) as exc_info:
            await orchestrator.send_chat_message("second")
        assert exc_info.value.state == "chatting"

        gateway.release.set()
        await task
        assert [t.content for t in orchestrator.history] == ["first", "done"]

    async def test_concurrent_automatic_calls_single_flight(self) -> None:
        gateway = FakeGateway("done")
        gateway.release = asyncio.Event()
        orchestrator = make_orchestrator(gateway)

        first = asyncio.create_task(orchestrator.analyze_frame("a", automatic=True))
        await gateway.entered.wait()
        second = asyncio.create_task(orchestrator.analyze_frame("b", automatic=True))
        await asyncio.sleep(0)
        gateway.release.set()

        results = await asyncio.gather(first, second, return_exceptions=True)

        assert results[0] == "done"
        assert isinstance(results[1], BusyError)
        assert len(gateway.calls) == 1


class TestClearAndListeners:
    """clear_conversation and subscriptions."""

    async def test_clear_resets_history_analysis_and_dedup(self) -> None:
        gateway = FakeGateway()
        orchestrator = make_orchestrator(gateway)
        await orchestrator.analyze_frame("abc123", automatic=True)

        orchestrator.clear_conversation()

        assert orchestrator.history == ()
        assert orchestrator.last_analysis == ""
        assert await orchestrator.analyze_frame("abc123", automatic=True) == "answer"

    async def test_subscribe_and_unsubscribe(self) -> None:
        seen: list[tuple[ConversationTurn, ...]] = []
        orchestrator = make_orchestrator(FakeGateway())
        unsubscribe = orchestrator.subscribe(seen.append)

        await orchestrator.send_chat_message("hi")
        unsubscribe()
        await orchestrator.send_chat_message("again")

        assert [len(history) for history in seen] == [1, 2]

    async def test_notice_is_system_turn(self) -> None:
        orchestrator = make_orchestrator(FakeGateway())

        orchestrator.add_notice("Subject changed")

        assert orchestrator.history[0].role is Role.SYSTEM


class TestDirectModeEndToEnd:
    """Orchestrator wired to a real gateway over a mock transport."""

    async def test_analysis_round_trip(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(
                200,
                json={
                    "candidates": [
                        {"content": {"parts": [{"text": "🎯 TIPO: Math"}]}}
                    ]
                },
            )

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        backend = DirectBackend(
            client,
            api_key="test-key",
            model="gemini-2.0-flash-exp",
            api_base="https://generativelanguage.googleapis.com/v1beta/models",
        )
        orchestrator = AnalysisOrchestrator(GeminiGateway(backend))

        answer = await orchestrator.analyze_frame("abc123")
        await client.aclose()

        assert answer == "🎯 TIPO: Math"
        assert orchestrator.last_analysis == "🎯 TIPO: Math"
        assert len(orchestrator.history) == 1
        body = json.loads(requests[0].content)
        parts = body["contents"][0]["parts"]
        assert parts[0] == {
            "inline_data": {"mime_type": "image/jpeg", "data": "abc123"}
        }
        assert "text" in parts[1]
