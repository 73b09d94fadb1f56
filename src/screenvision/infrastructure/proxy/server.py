"""Proxy HTTP server that holds the model credential."""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any

from aiohttp import web

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
from screenvision.domain.exceptions import GatewayError
from screenvision.domain.services import (
    TemplateVariables,
    format_history,
    render_template,
)
from screenvision.domain.templates import STUDY_DEFAULT

if TYPE_CHECKING:
    from screenvision.domain.services import ModelGateway

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Max-Age": "86400",
}


class BadRequest(Exception):
    """Invalid request body."""


def _timestamp() -> int:
    return int(time.time() * 1000)


def _error(message: str, status: int) -> web.Response:
    return web.json_response({"error": message}, status=status)


@web.middleware
async def cors_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
    """Answer pre-flight requests and attach CORS headers to every response."""
    if request.method == "OPTIONS":
        response: web.StreamResponse = web.Response(status=204)
    else:
        try:
            response = await handler(request)
        except (web.HTTPNotFound, web.HTTPMethodNotAllowed):
            response = _error("Not found", 404)
        except Exception as e:
            logger.exception("Unhandled error on %s", request.path)
            response = _error(str(e) or "Internal server error", 500)
    response.headers.update(CORS_HEADERS)
    return response


def parse_history(raw: Any) -> list[ConversationTurn]:
    """Convert a JSON conversationHistory list into turns.

    Entries without a known role or a string content are dropped.
    """
    if not isinstance(raw, list):
        return []
    turns = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        content = item.get("content")
        try:
            role = Role(item.get("role"))
        except ValueError:
            continue
        if isinstance(content, str):
            turns.append(ConversationTurn(role=role, content=content))
    return turns


class ProxyServer:
    """HTTP server exposing /api/analyze, /api/chat and /api/health.

    Requests are forwarded through a direct-mode gateway. A request carrying
    customPrompt is sent as is; otherwise the server renders its own template.
    """

    def __init__(
        self,
        gateway: ModelGateway,
        host: str = "0.0.0.0",
        port: int = 8787,
        template: PromptTemplate = STUDY_DEFAULT,
        session: SessionConfig | None = None,
    ) -> None:
        """Initialize the server.

        Args:
            gateway: Gateway configured with the direct backend.
            host: Interface to bind.
            port: Port to listen on. Use 0 for any available port.
            template: Template used when a request has no customPrompt.
            session: History window sizes.
        """
        self._gateway = gateway
        self._host = host
        self._port = port
        self._actual_port = port
        self._template = template
        self._session = session or SessionConfig()
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def port(self) -> int:
        """Port the server is listening on."""
        return self._actual_port

    def create_app(self) -> web.Application:
        app = web.Application(middlewares=[cors_middleware])
        app.router.add_post("/api/analyze", self._handle_analyze)
        app.router.add_post("/api/chat", self._handle_chat)
        app.router.add_get("/api/health", self._handle_health)
        return app

    async def _read_body(self, request: web.Request) -> dict[str, Any]:
        try:
            body = await request.json()
        except json.JSONDecodeError as e:
            raise BadRequest("Invalid JSON body") from e
        if not isinstance(body, dict):
            raise BadRequest("Invalid JSON body")
        return body

    def _image(self, value: Any) -> ImagePayload:
        if not isinstance(value, str):
            raise BadRequest("imageBase64 must be a string")
        try:
            return ImagePayload.from_frame(value)
        except ValueError as e:
            raise BadRequest(str(e)) from e

    def _subject(self, body: dict[str, Any]) -> SubjectMode:
        value = body.get("subject")
        if not isinstance(value, str):
            return SubjectMode.AUTO
        try:
            return SubjectMode.parse(value)
        except ValueError:
            return SubjectMode.AUTO

    def _resolve_prompt(
        self,
        body: dict[str, Any],
        kind: PromptKind,
        variables: TemplateVariables,
    ) -> str:
        custom = body.get("customPrompt")
        if isinstance(custom, str) and custom:
            return custom
        return render_template(self._template.template_for(kind), variables)

    async def _forward(
        self,
        prompt: str,
        image: ImagePayload | None,
        context: CallContext,
    ) -> web.Response:
        try:
            answer = await self._gateway.call(prompt, image, context=context)
        except GatewayError as e:
            logger.error("Upstream call failed: %s", e)
            return _error(str(e), 502)
        return web.json_response({"response": answer, "timestamp": _timestamp()})

    async def _handle_analyze(self, request: web.Request) -> web.Response:
        try:
            body = await self._read_body(request)
        except BadRequest as e:
            return _error(str(e), 400)

        raw_image = body.get("imageBase64")
        if not raw_image:
            return _error("imageBase64 is required", 400)
        try:
            image = self._image(raw_image)
        except BadRequest as e:
            return _error(str(e), 400)

        subject = self._subject(body)
        history = parse_history(body.get("conversationHistory"))
        history = history[-self._session.analysis_history_turns :]
        prompt = self._resolve_prompt(
            body,
            PromptKind.ANALYZE,
            TemplateVariables(
                history=format_history(history),
                subject_instruction=subject.instruction,
            ),
        )
        context = CallContext(
            kind=PromptKind.ANALYZE,
            subject=subject.value,
            history=tuple(history),
        )
        return await self._forward(prompt, image, context)

    async def _handle_chat(self, request: web.Request) -> web.Response:
        try:
            body = await self._read_body(request)
        except BadRequest as e:
            return _error(str(e), 400)

        message = body.get("message")
        if not isinstance(message, str) or not message:
            return _error("message is required", 400)

        image: ImagePayload | None = None
        if body.get("imageBase64"):
            try:
                image = self._image(body["imageBase64"])
            except BadRequest as e:
                return _error(str(e), 400)
        last_analysis = body.get("lastAnalysis") or ""
        subject = self._subject(body)
        history = parse_history(body.get("conversationHistory"))
        history = history[-self._session.chat_history_turns :]
        prompt = self._resolve_prompt(
            body,
            PromptKind.CHAT,
            TemplateVariables(
                history=format_history(history),
                subject_instruction=subject.instruction,
                last_analysis=last_analysis or None,
                user_message=message,
            ),
        )
        context = CallContext(
            kind=PromptKind.CHAT,
            subject=subject.value,
            user_message=message,
            last_analysis=last_analysis,
            history=tuple(history),
        )
        return await self._forward(prompt, image, context)

    async def _handle_health(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "ok", "timestamp": _timestamp()})

    async def start(self) -> None:
        """Start the HTTP server."""
        self._runner = web.AppRunner(self.create_app())
        await self._runner.setup()

        self._site = web.TCPSite(self._runner, self._host, self._port)
        await self._site.start()

        # Resolve the real port when bound to port 0
        if self._site._server is not None:
            sockets = self._site._server.sockets  # type: ignore[union-attr]
            if sockets:
                self._actual_port = sockets[0].getsockname()[1]

        self._running = True
        logger.info("Proxy server listening on %s:%d", self._host, self.port)

    async def stop(self) -> None:
        """Stop the HTTP server."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            self._site = None

        self._running = False
        logger.info("Proxy server stopped")
