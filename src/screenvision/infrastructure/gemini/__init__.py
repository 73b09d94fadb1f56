"""Gemini model gateway."""

from screenvision.infrastructure.gemini.backends import (
    SAFETY_REFUSAL,
    BackendResponse,
    DirectBackend,
    ModelBackend,
    ModelInfo,
    ProxyBackend,
)
from screenvision.infrastructure.gemini.errors import error_for_status
from screenvision.infrastructure.gemini.gateway import (
    GeminiGateway,
    create_backend,
    create_http_client,
)

__all__ = [
    "SAFETY_REFUSAL",
    "BackendResponse",
    "DirectBackend",
    "GeminiGateway",
    "ModelBackend",
    "ModelInfo",
    "ProxyBackend",
    "create_backend",
    "create_http_client",
    "error_for_status",
]
