"""Configuration objects for the SentinelGuard client."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from .errors import ConfigurationError

__version__ = "0.1.0"

DEFAULT_TIMEOUT_MS = 10000
DEFAULT_MAX_CONSECUTIVE_ERRORS = 5


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    base_delay_ms: float = 1000
    backoff_multiplier: float = 2.0
    max_delay_ms: Optional[float] = 10000

    def delay_ms(self, attempt: int) -> float:
        """Delay to wait after ``attempt`` failed, before attempt ``attempt + 1``."""
        delay = self.base_delay_ms * (self.backoff_multiplier ** (attempt - 1))
        if self.max_delay_ms is not None:
            delay = min(delay, self.max_delay_ms)
        return delay


@dataclass(frozen=True)
class ClientConfig:
    base_url: str
    api_key: str
    monitor_api_key: Optional[str] = None
    timeout_ms: float = DEFAULT_TIMEOUT_MS
    retry_policy: Optional[RetryPolicy] = None
    user_agent: str = f"sentinel-guard-python/{__version__}"
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def effective_retry_policy(self) -> RetryPolicy:
        return self.retry_policy or RetryPolicy()

    @classmethod
    def from_env(cls) -> "ClientConfig":
        base_url = os.environ.get("SENTINEL_API_URL", "")
        api_key = os.environ.get("SENTINEL_API_KEY", "")
        monitor_api_key = os.environ.get("SENTINEL_MONITOR_API_KEY") or None
        timeout_ms = _env_number("SENTINEL_TIMEOUT_MS", float, DEFAULT_TIMEOUT_MS)

        retry_policy: Optional[RetryPolicy] = None
        retry_names = ("SENTINEL_MAX_RETRIES", "SENTINEL_RETRY_BASE_DELAY_MS", "SENTINEL_RETRY_BACKOFF_MULTIPLIER")
        if any(os.environ.get(name) is not None for name in retry_names):
            defaults = RetryPolicy()
            retry_policy = RetryPolicy(
                max_retries=_env_number("SENTINEL_MAX_RETRIES", int, defaults.max_retries),
                base_delay_ms=_env_number("SENTINEL_RETRY_BASE_DELAY_MS", float, defaults.base_delay_ms),
                backoff_multiplier=_env_number("SENTINEL_RETRY_BACKOFF_MULTIPLIER", float, defaults.backoff_multiplier),
            )

        return cls(
            base_url=base_url,
            api_key=api_key,
            monitor_api_key=monitor_api_key,
            timeout_ms=timeout_ms,
            retry_policy=retry_policy,
        )


@dataclass(frozen=True)
class HeartbeatConfig:
    interval_ms: float
    max_consecutive_errors: int = DEFAULT_MAX_CONSECUTIVE_ERRORS

    def __post_init__(self) -> None:
        if not _is_number(self.interval_ms) or self.interval_ms <= 0:
            raise ConfigurationError("interval_ms must be a positive number")
        if isinstance(self.max_consecutive_errors, bool) or not isinstance(self.max_consecutive_errors, int):
            raise ConfigurationError("max_consecutive_errors must be an integer")
        if self.max_consecutive_errors < 1:
            raise ConfigurationError("max_consecutive_errors must be at least 1")

    @property
    def interval_seconds(self) -> float:
        return self.interval_ms / 1000.0


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _env_number(name: str, cast: Callable[[str], Any], default: Any) -> Any:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


def validate_config(config: ClientConfig) -> ClientConfig:
    """Check a client configuration before any network I/O happens.

    Raises ``ConfigurationError`` naming the first offending field.
    """
    if not config.base_url or not isinstance(config.base_url, str):
        raise ConfigurationError("base_url is required and must be a string")
    if not config.api_key or not isinstance(config.api_key, str):
        raise ConfigurationError("api_key is required and must be a string")
    if config.monitor_api_key is not None and not isinstance(config.monitor_api_key, str):
        raise ConfigurationError("monitor_api_key must be a string")
    if not _is_number(config.timeout_ms) or config.timeout_ms <= 0:
        raise ConfigurationError("timeout_ms must be a positive number")

    policy = config.retry_policy
    if policy is not None:
        if isinstance(policy.max_retries, bool) or not isinstance(policy.max_retries, int) or policy.max_retries < 0:
            raise ConfigurationError("retry_policy.max_retries must be a non-negative integer")
        if not _is_number(policy.base_delay_ms) or policy.base_delay_ms <= 0:
            raise ConfigurationError("retry_policy.base_delay_ms must be a positive number")
        if not _is_number(policy.backoff_multiplier) or policy.backoff_multiplier <= 0:
            raise ConfigurationError("retry_policy.backoff_multiplier must be a positive number")
        if policy.max_delay_ms is not None and (not _is_number(policy.max_delay_ms) or policy.max_delay_ms <= 0):
            raise ConfigurationError("retry_policy.max_delay_ms must be a positive number")
    return config


__all__ = [
    "ClientConfig",
    "RetryPolicy",
    "HeartbeatConfig",
    "validate_config",
    "DEFAULT_TIMEOUT_MS",
    "DEFAULT_MAX_CONSECUTIVE_ERRORS",
]
