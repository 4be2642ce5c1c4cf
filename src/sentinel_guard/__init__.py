"""SentinelGuard Python client."""

from .client import SentinelGuard
from .config import ClientConfig, HeartbeatConfig, RetryPolicy, validate_config
from .errors import (
    AuthenticationError,
    ConfigurationError,
    ErrorKind,
    NetworkError,
    RateLimitError,
    SentinelGuardError,
)
from .models import CreateMonitorRequest, HeartbeatPayload, Monitor, PerformanceSample, ResultEnvelope, UpdateMonitorRequest

__all__ = [
    "SentinelGuard",
    "ClientConfig",
    "HeartbeatConfig",
    "RetryPolicy",
    "validate_config",
    "ErrorKind",
    "SentinelGuardError",
    "ConfigurationError",
    "AuthenticationError",
    "RateLimitError",
    "NetworkError",
    "ResultEnvelope",
    "HeartbeatPayload",
    "PerformanceSample",
    "Monitor",
    "CreateMonitorRequest",
    "UpdateMonitorRequest",
]
