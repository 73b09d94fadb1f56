"""Configuration dataclasses."""

from dataclasses import dataclass, field

DEFAULT_API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_MODEL = "gemini-2.0-flash-exp"


@dataclass
class GeminiConfig:
    """Direct provider settings.

    Attributes:
        api_key: Caller-held credential. None when running through a proxy.
        model: Model name appended to the API base.
        api_base: Base URL of the models collection.
        timeout_seconds: Bound on a single HTTP attempt.
    """

    api_key: str | None = None
    model: str = DEFAULT_MODEL
    api_base: str = DEFAULT_API_BASE
    timeout_seconds: float = 60.0


@dataclass
class ProxyConfig:
    """Trusted intermediary settings."""

    base_url: str | None = None


@dataclass
class RetryConfig:
    """Retry policy for rate limits and transport failures.

    Attributes:
        max_attempts: Total attempts, the first one included.
        delay_seconds: Base backoff delay.
        backoff_multiplier: Growth factor applied per attempt.
    """

    max_attempts: int = 3
    delay_seconds: float = 1.0
    backoff_multiplier: float = 2.0


@dataclass
class SessionConfig:
    """Conversation session settings."""

    analysis_history_turns: int = 5
    chat_history_turns: int = 8
    dedup_prefix_length: int = 1000
    skip_marker: str = "[SKIP]"
    default_subject: str = "auto"
    default_template: str = "study-default"


@dataclass
class CaptureConfig:
    """Automatic analysis interval."""

    interval_seconds: float = 1.5
    min_interval_seconds: float = 1.0
    max_interval_seconds: float = 5.0


@dataclass
class StorageConfig:
    """Custom template storage."""

    database_path: str = "./data/screenvision.db"


@dataclass
class ServerConfig:
    """Proxy server listener."""

    host: str = "0.0.0.0"
    port: int = 8787


@dataclass
class LoggingConfig:
    """Logging settings."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    loggers: dict[str, str] | None = None


@dataclass
class Config:
    """Application configuration."""

    gemini: GeminiConfig = field(default_factory=GeminiConfig)
    proxy: ProxyConfig = field(default_factory=ProxyConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    capture: CaptureConfig = field(default_factory=CaptureConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig | None = None

    @property
    def uses_proxy(self) -> bool:
        """Whether calls go through the trusted proxy."""
        return bool(self.proxy.base_url)
