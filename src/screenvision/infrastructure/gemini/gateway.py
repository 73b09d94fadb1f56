"""Model gateway with retry and error classification."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

import httpx

from screenvision.config import Config, RetryConfig
from screenvision.domain.entities import CallContext, ImagePayload, RequestEnvelope
from screenvision.domain.exceptions import GatewayError, TransportError
from screenvision.infrastructure.gemini.backends import (
    DirectBackend,
    ModelBackend,
    ProxyBackend,
)
from screenvision.infrastructure.gemini.errors import error_for_status

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class GeminiGateway:
    """Builds requests, sends them through a backend and classifies failures.

    Rate limits (HTTP 429) and transport failures are retried with
    exponential backoff up to RetryConfig.max_attempts attempts in total.
    Every other failure is raised immediately.
    """

    def __init__(
        self,
        backend: ModelBackend,
        retry: RetryConfig | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Initialize the gateway.

        Args:
            backend: Direct or proxy backend, chosen once at configuration.
            retry: Retry policy. Defaults to 3 attempts, 1s base, x2.
            sleep: Awaitable delay function, replaceable in tests.
        """
        self._backend = backend
        self._retry = retry or RetryConfig()
        self._sleep = sleep

    @property
    def backend(self) -> ModelBackend:
        return self._backend

    def backoff_delay(self, attempt: int) -> float:
        """Delay before retrying after the given 0-based attempt."""
        return self._retry.delay_seconds * self._retry.backoff_multiplier**attempt

    async def call(
        self,
        prompt_text: str,
        image: ImagePayload | str | None = None,
        *,
        context: CallContext | None = None,
        silent: bool = False,
        retry_count: int = 0,
    ) -> str | None:
        """Perform one model call.

        Args:
            prompt_text: Fully rendered prompt.
            image: Frame as ImagePayload, raw base64 or data URI.
            context: Conversational fields forwarded by the proxy backend.
            silent: Suppress failure logging (speculative background calls).
            retry_count: Attempts already spent on this call.

        Returns:
            Answer text, a fixed refusal for safety blocks, or None when the
            response carried no text.

        Raises:
            InvalidCredentialError: HTTP 400.
            RateLimitedError: HTTP 429 on every attempt.
            ModelUnavailableError: HTTP 404.
            ProviderError: Other non-2xx responses.
            TransportError: Network failure on every attempt.
        """
        if isinstance(image, str):
            image = ImagePayload.from_frame(image)
        envelope = RequestEnvelope(
            prompt_text=prompt_text,
            image=image,
            context=context or CallContext(),
        )

        attempt = retry_count
        while True:
            can_retry = attempt + 1 < self._retry.max_attempts
            try:
                response = await self._backend.send(envelope)
            except httpx.RequestError as e:
                if can_retry:
                    await self._wait_before_retry(
                        attempt, f"transport error: {e}", silent
                    )
                    attempt += 1
                    continue
                if not silent:
                    logger.error(
                        "%s backend unreachable after %d attempts: %s",
                        self._backend.name,
                        attempt + 1,
                        e,
                    )
                raise TransportError(
                    f"Could not reach the {self._backend.name} backend: {e}"
                ) from e

            if response.is_success:
                logger.debug("Model response received (attempt %d)", attempt + 1)
                return self._backend.extract_answer(response.payload)

            if response.status_code == 429 and can_retry:
                await self._wait_before_retry(attempt, "rate limited", silent)
                attempt += 1
                continue

            error = error_for_status(
                response.status_code, self._backend.extract_error(response.payload)
            )
            if not silent:
                logger.error(
                    "%s backend error (HTTP %d): %s",
                    self._backend.name,
                    response.status_code,
                    error,
                )
            raise error

    async def test_connection(self) -> bool:
        """Check that the backend answers a trivial prompt.

        Returns:
            True when a non-empty answer came back.
        """
        try:
            answer = await self.call("Reply with just: OK", silent=True)
        except GatewayError:
            return False
        return answer is not None

    async def _wait_before_retry(self, attempt: int, reason: str, silent: bool) -> None:
        delay = self.backoff_delay(attempt)
        if not silent:
            logger.warning(
                "%s backend %s, retrying in %.1fs (attempt %d/%d)",
                self._backend.name,
                reason,
                delay,
                attempt + 1,
                self._retry.max_attempts,
            )
        await self._sleep(delay)


def create_http_client(timeout_seconds: float) -> httpx.AsyncClient:
    """Create the shared HTTP client with a bounded per-attempt timeout."""
    return httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds))


def create_backend(config: Config, client: httpx.AsyncClient) -> ModelBackend:
    """Select the backend from configuration.

    Args:
        config: Application config. proxy.base_url wins when set.
        client: Shared HTTP client.

    Returns:
        ProxyBackend or DirectBackend.

    Raises:
        ValueError: Neither a proxy URL nor an API key is configured.
    """
    if config.proxy.base_url:
        return ProxyBackend(client, config.proxy.base_url)
    if not config.gemini.api_key:
        raise ValueError("A Gemini API key or a proxy base URL is required")
    return DirectBackend(
        client,
        api_key=config.gemini.api_key,
        model=config.gemini.model,
        api_base=config.gemini.api_base,
    )
