"""
Process-wide settings.

Settings are immutable once built. Every field has a default and can be
overridden through a CLIPMILL_* environment variable:

    CLIPMILL_FFMPEG_PATH    explicit ffmpeg binary (else auto-discovered)
    CLIPMILL_CONCURRENCY    default queue concurrency (else cpu_count - 1)
    CLIPMILL_MAX_ATTEMPTS   attempts per task, including the first
    CLIPMILL_RETRY_DELAY    seconds between attempts
    CLIPMILL_EVENT_BUFFER   event channel capacity
    CLIPMILL_LOG_LEVEL      root log level for the CLI
"""

import logging
import os
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Mapping, Optional

from .execution.runner import RetryPolicy

logger = logging.getLogger(__name__)

ENV_FFMPEG_PATH = "CLIPMILL_FFMPEG_PATH"
ENV_CONCURRENCY = "CLIPMILL_CONCURRENCY"
ENV_MAX_ATTEMPTS = "CLIPMILL_MAX_ATTEMPTS"
ENV_RETRY_DELAY = "CLIPMILL_RETRY_DELAY"
ENV_EVENT_BUFFER = "CLIPMILL_EVENT_BUFFER"
ENV_LOG_LEVEL = "CLIPMILL_LOG_LEVEL"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(Exception):
    """Raised when a setting has an invalid value."""
    pass


def default_concurrency() -> int:
    """One less than the CPU count, never below 1."""
    return max(1, (os.cpu_count() or 2) - 1)


@dataclass(frozen=True)
class Settings:
    """
    Immutable runtime configuration.

    Build with Settings() for defaults or Settings.from_env() to apply
    environment overrides.
    """

    ffmpeg_path: Optional[str] = None
    default_concurrency: int = field(default_factory=default_concurrency)
    max_attempts: int = 2
    retry_delay_seconds: float = 0.0
    event_buffer_size: int = 1000
    log_level: str = "INFO"

    def __post_init__(self):
        if self.default_concurrency < 1:
            raise ConfigError(f"default_concurrency must be >= 1, got {self.default_concurrency}")
        if self.max_attempts < 1:
            raise ConfigError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.retry_delay_seconds < 0:
            raise ConfigError(f"retry_delay_seconds must be >= 0, got {self.retry_delay_seconds}")
        if self.event_buffer_size < 1:
            raise ConfigError(f"event_buffer_size must be >= 1, got {self.event_buffer_size}")
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ConfigError(f"Unknown log level: {self.log_level}")
        object.__setattr__(self, "log_level", self.log_level.upper())

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read instead of os.environ (tests)

        Raises:
            ConfigError: If a variable cannot be parsed or is out of range
        """
        env = os.environ if environ is None else environ
        overrides: Dict[str, Any] = {}

        if env.get(ENV_FFMPEG_PATH):
            overrides["ffmpeg_path"] = env[ENV_FFMPEG_PATH]

        _read(env, ENV_CONCURRENCY, int, "default_concurrency", overrides)
        _read(env, ENV_MAX_ATTEMPTS, int, "max_attempts", overrides)
        _read(env, ENV_RETRY_DELAY, float, "retry_delay_seconds", overrides)
        _read(env, ENV_EVENT_BUFFER, int, "event_buffer_size", overrides)

        if env.get(ENV_LOG_LEVEL):
            overrides["log_level"] = env[ENV_LOG_LEVEL].upper()

        if overrides:
            logger.debug(f"[Settings] Environment overrides: {sorted(overrides)}")
        return cls(**overrides)

    def with_overrides(self, **changes: Any) -> "Settings":
        """Copy with the non-None ``changes`` applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            delay_seconds=self.retry_delay_seconds,
        )


def _read(
    env: Mapping[str, str],
    name: str,
    parse: Callable[[str], Any],
    field_name: str,
    overrides: Dict[str, Any],
) -> None:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return
    try:
        overrides[field_name] = parse(raw.strip())
    except ValueError as e:
        raise ConfigError(f"{name}={raw!r} is not a valid {parse.__name__}") from e
