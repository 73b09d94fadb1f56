"""Interchangeable HTTP backends for model calls."""

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from screenvision.domain.entities import PromptKind, RequestEnvelope
from screenvision.domain.entities.request import DEFAULT_IMAGE_MIME_TYPE
from screenvision.infrastructure.gemini.errors import error_for_status

logger = logging.getLogger(__name__)

SAFETY_REFUSAL = (
    "Sorry, I can't answer this question because of the safety policies."
)

ANALYZE_PATH = "/api/analyze"
CHAT_PATH = "/api/chat"


@dataclass(frozen=True)
class BackendResponse:
    """Raw HTTP outcome of one attempt.

    Attributes:
        status_code: HTTP status.
        payload: Decoded JSON body, {} when the body was not a JSON object.
    """

    status_code: int
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


@dataclass(frozen=True)
class ModelInfo:
    """Model listed by the provider."""

    name: str
    supported_methods: tuple[str, ...] = ()
    input_token_limit: int | None = None

    @property
    def short_name(self) -> str:
        """Name without the "models/" prefix."""
        return self.name.split("/", 1)[-1]

    @property
    def supports_generate_content(self) -> bool:
        return "generateContent" in self.supported_methods


class ModelBackend(Protocol):
    """Transport strategy used by the gateway.

    send() raises httpx.RequestError for transport failures and returns a
    BackendResponse for every HTTP response, successful or not.
    """

    name: str

    async def send(self, envelope: RequestEnvelope) -> BackendResponse: ...

    def extract_answer(self, payload: dict[str, Any]) -> str | None: ...

    def extract_error(self, payload: dict[str, Any]) -> str | None: ...


def _decode_json(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


class DirectBackend:
    """Calls the provider's generateContent endpoint with the caller's key."""

    name = "direct"

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        model: str,
        api_base: str,
    ) -> None:
        """Initialize the backend.

        Args:
            client: Shared HTTP client (timeouts are configured on it).
            api_key: Provider credential, sent as the "key" query parameter.
            model: Model name.
            api_base: Base URL of the models collection.
        """
        self._client = client
        self._api_key = api_key
        self._model = model
        self._api_base = api_base.rstrip("/")

    @property
    def endpoint(self) -> str:
        return f"{self._api_base}/{self._model}:generateContent"

    async def send(self, envelope: RequestEnvelope) -> BackendResponse:
        logger.debug("Direct request: model=%s", self._model)
        response = await self._client.post(
            self.endpoint,
            params={"key": self._api_key},
            json=envelope.provider_body(),
        )
        return BackendResponse(response.status_code, _decode_json(response))

    def extract_answer(self, payload: dict[str, Any]) -> str | None:
        """Read the first candidate's first text part.

        Returns:
            The text, SAFETY_REFUSAL when the candidate was blocked for
            safety, otherwise None.
        """
        candidates = payload.get("candidates") or []
        if not candidates or not isinstance(candidates[0], dict):
            return None
        candidate = candidates[0]
        parts = (candidate.get("content") or {}).get("parts") or []
        if parts and isinstance(parts[0], dict):
            text = parts[0].get("text")
            if text:
                return text
        if candidate.get("finishReason") == "SAFETY":
            return SAFETY_REFUSAL
        return None

    def extract_error(self, payload: dict[str, Any]) -> str | None:
        error = payload.get("error")
        if isinstance(error, dict):
            return error.get("message")
        return None

    async def list_models(self) -> list[ModelInfo]:
        """List the models visible to the credential.

        Returns:
            Models as reported by the provider.

        Raises:
            GatewayError: Non-2xx response.
            httpx.RequestError: Transport failure.
        """
        response = await self._client.get(
            self._api_base, params={"key": self._api_key}
        )
        payload = _decode_json(response)
        if not response.is_success:
            raise error_for_status(response.status_code, self.extract_error(payload))
        return [
            ModelInfo(
                name=item.get("name", ""),
                supported_methods=tuple(item.get("supportedGenerationMethods") or ()),
                input_token_limit=item.get("inputTokenLimit"),
            )
            for item in payload.get("models") or []
        ]


class ProxyBackend:
    """Calls a trusted intermediary that holds the credential server-side."""

    name = "proxy"

    def __init__(self, client: httpx.AsyncClient, base_url: str) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")

    def build_body(self, envelope: RequestEnvelope) -> tuple[str, dict[str, Any]]:
        """Build the endpoint path and simplified JSON body.

        Returns:
            (path, body) tuple.
        """
        context = envelope.context
        body: dict[str, Any] = {
            "subject": context.subject,
            "customPrompt": envelope.prompt_text,
            "conversationHistory": [turn.to_dict() for turn in context.history],
        }
        if envelope.image is not None:
            image = envelope.image
            # Raw base64 implies JPEG on the proxy side
            if image.mime_type == DEFAULT_IMAGE_MIME_TYPE:
                body["imageBase64"] = image.data
            else:
                body["imageBase64"] = f"data:{image.mime_type};base64,{image.data}"

        if context.kind is PromptKind.ANALYZE:
            return ANALYZE_PATH, body

        body["message"] = context.user_message or ""
        body["lastAnalysis"] = context.last_analysis
        return CHAT_PATH, body

    async def send(self, envelope: RequestEnvelope) -> BackendResponse:
        path, body = self.build_body(envelope)
        logger.debug("Proxy request: %s", path)
        response = await self._client.post(f"{self._base_url}{path}", json=body)
        return BackendResponse(response.status_code, _decode_json(response))

    def extract_answer(self, payload: dict[str, Any]) -> str | None:
        answer = payload.get("response")
        if isinstance(answer, str) and answer:
            return answer
        return None

    def extract_error(self, payload: dict[str, Any]) -> str | None:
        error = payload.get("error")
        if isinstance(error, str):
            return error
        if isinstance(error, dict):
            return error.get("message")
        return None
