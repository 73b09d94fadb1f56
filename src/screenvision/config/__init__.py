"""Configuration management."""

from screenvision.config.loader import (
    ConfigError,
    ConfigValidationError,
    EnvironmentVariableError,
    expand_env_vars,
    load_config,
    parse_config,
    validate_client_config,
)
from screenvision.config.models import (
    CaptureConfig,
    Config,
    GeminiConfig,
    LoggingConfig,
    ProxyConfig,
    RetryConfig,
    ServerConfig,
    SessionConfig,
    StorageConfig,
)

__all__ = [
    "CaptureConfig",
    "Config",
    "ConfigError",
    "ConfigValidationError",
    "EnvironmentVariableError",
    "GeminiConfig",
    "LoggingConfig",
    "ProxyConfig",
    "RetryConfig",
    "ServerConfig",
    "SessionConfig",
    "StorageConfig",
    "expand_env_vars",
    "load_config",
    "parse_config",
    "validate_client_config",
]
