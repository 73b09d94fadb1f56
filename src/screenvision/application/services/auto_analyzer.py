"""Periodic automatic analysis of captured frames."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from screenvision.application.use_cases.analysis_orchestrator import (
    AnalysisOrchestrator,
)
from screenvision.config import CaptureConfig
from screenvision.domain.entities import PromptTemplate
from screenvision.domain.exceptions import BusyError, GatewayError
from screenvision.domain.services import FrameSource

logger = logging.getLogger(__name__)

AnswerCallback = Callable[[str], Awaitable[None] | None]


class AutoAnalyzer:
    """Captures a frame every interval and runs an automatic analysis.

    Duplicate frames and skip answers produce no callback. Busy sessions and
    gateway failures are logged and the loop keeps going.
    """

    def __init__(
        self,
        orchestrator: AnalysisOrchestrator,
        frame_source: FrameSource,
        config: CaptureConfig,
        template: PromptTemplate | None = None,
        on_answer: AnswerCallback | None = None,
    ) -> None:
        """Initialize AutoAnalyzer.

        Args:
            orchestrator: Session orchestrator.
            frame_source: Supplier of screen frames.
            config: Capture configuration with the interval.
            template: Template for automatic analysis. Session template
                when omitted.
            on_answer: Called with every new answer.
        """
        self._orchestrator = orchestrator
        self._frame_source = frame_source
        self._config = config
        self._template = template
        self._on_answer = on_answer
        self._frame_count = 0
        # set() means "stop signal active" (not running). Initially stopped.
        self._stop_event = asyncio.Event()
        self._stop_event.set()

    @property
    def is_running(self) -> bool:
        return not self._stop_event.is_set()

    @property
    def frame_count(self) -> int:
        """Number of frames captured since creation."""
        return self._frame_count

    async def start(self) -> None:
        """Run the loop until stop() is called.

        Returns immediately with a warning if already running.
        """
        if not self._stop_event.is_set():
            logger.warning(
                "AutoAnalyzer.start() called while already running; ignoring."
            )
            return
        self._stop_event.clear()
        logger.info(
            "Automatic analysis started (interval: %.1fs)",
            self._config.interval_seconds,
        )

        while not self._stop_event.is_set():
            await self.tick()

            try:
                await asyncio.wait_for(
                    self._stop_event.wait(),
                    timeout=self._config.interval_seconds,
                )
                break
            except asyncio.TimeoutError:
                pass

        logger.info("Automatic analysis stopped")

    async def stop(self) -> None:
        """Signal the loop to stop after the current tick."""
        self._stop_event.set()

    async def tick(self) -> str | None:
        """Capture one frame and analyze it.

        Returns:
            The new answer, or None when nothing new was produced.
        """
        frame = await self._frame_source.capture()
        if not frame:
            logger.debug("No frame available yet")
            return None
        self._frame_count += 1

        try:
            answer = await self._orchestrator.analyze_frame(
                frame,
                custom_template=self._template,
                automatic=True,
            )
        except BusyError:
            logger.debug("Session busy, skipping frame %d", self._frame_count)
            return None
        except GatewayError as e:
            logger.error("Automatic analysis failed: %s", e)
            return None

        if answer is not None and self._on_answer is not None:
            result = self._on_answer(answer)
            if asyncio.iscoroutine(result):
                await result
        return answer
