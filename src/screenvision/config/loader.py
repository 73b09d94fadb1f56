"""YAML config loading with environment variable expansion."""

import os
import re
from pathlib import Path
from typing import Any

import yaml

from screenvision.config.models import (
    DEFAULT_API_BASE,
    DEFAULT_MODEL,
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


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigValidationError(ConfigError):
    """A configuration value is missing or invalid."""


class EnvironmentVariableError(ConfigError):
    """A referenced environment variable is not set."""


# ${VAR_NAME}
ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


def expand_env_vars(value: str) -> str:
    """Replace ${VAR_NAME} occurrences with environment values.

    Args:
        value: String to expand.

    Returns:
        Expanded string.

    Raises:
        EnvironmentVariableError: A referenced variable is not set.
    """
    if not value:
        return value

    def replace_var(match: re.Match[str]) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)
        if env_value is None:
            raise EnvironmentVariableError(
                f"Environment variable '{var_name}' is not set"
            )
        return env_value

    return ENV_VAR_PATTERN.sub(replace_var, value)


def _expand_recursive(data: Any) -> Any:
    if isinstance(data, dict):
        return {key: _expand_recursive(value) for key, value in data.items()}
    elif isinstance(data, list):
        return [_expand_recursive(item) for item in data]
    elif isinstance(data, str):
        return expand_env_vars(data)
    else:
        return data


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    """Return an optional mapping section, {} when absent.

    Raises:
        ConfigValidationError: The section is present but not a mapping.
    """
    value = data.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigValidationError(f"Section '{name}' must be a mapping")
    return value


def _positive(value: Any, path: str) -> Any:
    if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
        raise ConfigValidationError(f"'{path}' must be a positive number")
    return value


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def validate_client_config(config: Config) -> None:
    """Check that exactly one backend is configured for client use.

    Raises:
        ConfigValidationError: Neither or both of gemini.api_key and
            proxy.base_url are set.
    """
    has_key = bool(config.gemini.api_key)
    has_proxy = bool(config.proxy.base_url)
    if has_key and has_proxy:
        raise ConfigValidationError(
            "'gemini.api_key' and 'proxy.base_url' are mutually exclusive"
        )
    if not has_key and not has_proxy:
        raise ConfigValidationError(
            "Either 'gemini.api_key' or 'proxy.base_url' is required"
        )


def parse_config(data: dict[str, Any] | None) -> Config:
    """Build a Config from already-expanded raw data.

    Args:
        data: Parsed YAML mapping. None yields the defaults.

    Returns:
        Config object.

    Raises:
        ConfigValidationError: A value is invalid.
    """
    data = data or {}
    if not isinstance(data, dict):
        raise ConfigValidationError("Config root must be a mapping")

    gemini_data = _section(data, "gemini")
    gemini = GeminiConfig(
        api_key=_optional_str(gemini_data.get("api_key")),
        model=gemini_data.get("model", DEFAULT_MODEL),
        api_base=str(gemini_data.get("api_base", DEFAULT_API_BASE)).rstrip("/"),
        timeout_seconds=_positive(
            gemini_data.get("timeout_seconds", 60.0), "gemini.timeout_seconds"
        ),
    )

    proxy_data = _section(data, "proxy")
    base_url = _optional_str(proxy_data.get("base_url"))
    proxy = ProxyConfig(base_url=base_url.rstrip("/") if base_url else None)

    retry_data = _section(data, "retry")
    max_attempts = retry_data.get("max_attempts", 3)
    if not isinstance(max_attempts, int) or max_attempts < 1:
        raise ConfigValidationError("'retry.max_attempts' must be at least 1")
    retry = RetryConfig(
        max_attempts=max_attempts,
        delay_seconds=retry_data.get("delay_seconds", 1.0),
        backoff_multiplier=_positive(
            retry_data.get("backoff_multiplier", 2.0), "retry.backoff_multiplier"
        ),
    )
    if retry.delay_seconds < 0:
        raise ConfigValidationError("'retry.delay_seconds' must not be negative")

    session_data = _section(data, "session")
    session = SessionConfig(
        analysis_history_turns=session_data.get("analysis_history_turns", 5),
        chat_history_turns=session_data.get("chat_history_turns", 8),
        dedup_prefix_length=session_data.get("dedup_prefix_length", 1000),
        skip_marker=session_data.get("skip_marker", "[SKIP]"),
        default_subject=session_data.get("default_subject", "auto"),
        default_template=session_data.get("default_template", "study-default"),
    )
    _positive(session.dedup_prefix_length, "session.dedup_prefix_length")

    capture_data = _section(data, "capture")
    capture = CaptureConfig()
    interval = _positive(
        capture_data.get("interval_seconds", capture.interval_seconds),
        "capture.interval_seconds",
    )
    # Clamp into the supported range
    capture.interval_seconds = min(
        max(float(interval), capture.min_interval_seconds),
        capture.max_interval_seconds,
    )

    storage_data = _section(data, "storage")
    storage = StorageConfig(
        database_path=storage_data.get("database_path", StorageConfig.database_path)
    )

    server_data = _section(data, "server")
    server = ServerConfig(
        host=server_data.get("host", "0.0.0.0"),
        port=server_data.get("port", 8787),
    )

    logging_config: LoggingConfig | None = None
    logging_data = data.get("logging")
    if logging_data:
        logging_config = LoggingConfig(
            level=logging_data.get("level", "INFO"),
            format=logging_data.get(
                "format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            ),
            loggers=logging_data.get("loggers"),
        )

    if gemini.api_key and proxy.base_url:
        raise ConfigValidationError(
            "'gemini.api_key' and 'proxy.base_url' are mutually exclusive"
        )

    return Config(
        gemini=gemini,
        proxy=proxy,
        retry=retry,
        session=session,
        capture=capture,
        storage=storage,
        server=server,
        logging=logging_config,
    )


def load_config(path: str | Path) -> Config:
    """Load the config file.

    Args:
        path: Path to config.yaml.

    Returns:
        Config object.

    Raises:
        FileNotFoundError: The file does not exist.
        ConfigValidationError: A value is invalid.
        EnvironmentVariableError: A referenced variable is not set.
        yaml.YAMLError: YAML syntax error.
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, encoding="utf-8") as f:
        raw_data = yaml.safe_load(f)

    return parse_config(_expand_recursive(raw_data))
