"""Domain exceptions."""


class ScreenVisionError(Exception):
    """Base exception for screenvision."""


class BusyError(ScreenVisionError):
    """Another analysis or chat call is still in flight."""

    def __init__(self, state: str = "") -> None:
        self.state = state
        detail = f" (currently {state})" if state else ""
        super().__init__(f"Session is busy{detail}; wait for the previous call")


class GatewayError(ScreenVisionError):
    """Base exception for model gateway failures."""


class InvalidCredentialError(GatewayError):
    """The API key is invalid or expired (HTTP 400)."""


class RateLimitedError(GatewayError):
    """Rate limit still hit after all retry attempts (HTTP 429)."""


class ModelUnavailableError(GatewayError):
    """The requested model does not exist or is not accessible (HTTP 404)."""


class ProviderError(GatewayError):
    """Any other non-2xx response.

    Attributes:
        status_code: HTTP status returned by the provider or proxy.
    """

    def __init__(self, message: str, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(message)


class TransportError(GatewayError):
    """The request could not be sent or completed after all retry attempts."""


class TemplateNotFoundError(ScreenVisionError):
    """No prompt template with the given ID exists."""

    def __init__(self, template_id: str) -> None:
        self.template_id = template_id
        super().__init__(f"Prompt template '{template_id}' not found")


class TemplateNotEditableError(ScreenVisionError):
    """Built-in prompt templates cannot be changed or removed."""

    def __init__(self, template_id: str) -> None:
        self.template_id = template_id
        super().__init__(f"Prompt template '{template_id}' is built-in")
