"""HTTP status classification."""

from screenvision.domain.exceptions import (
    GatewayError,
    InvalidCredentialError,
    ModelUnavailableError,
    ProviderError,
    RateLimitedError,
)

INVALID_CREDENTIAL_MESSAGE = "API key is invalid or expired. Check your key."
RATE_LIMITED_MESSAGE = "Request limit reached. Wait a few seconds and try again."
MODEL_UNAVAILABLE_MESSAGE = "Model not available. Check your API key and model."


def error_for_status(status_code: int, message: str | None = None) -> GatewayError:
    """Map a non-2xx status to the matching GatewayError.

    Args:
        status_code: HTTP status.
        message: Error message from the response body, if any.

    Returns:
        Exception instance (not raised).
    """
    if status_code == 400:
        return InvalidCredentialError(INVALID_CREDENTIAL_MESSAGE)
    if status_code == 429:
        return RateLimitedError(RATE_LIMITED_MESSAGE)
    if status_code == 404:
        return ModelUnavailableError(MODEL_UNAVAILABLE_MESSAGE)
    return ProviderError(message or f"API error: {status_code}", status_code)
