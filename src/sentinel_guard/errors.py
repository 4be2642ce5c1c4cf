"""Exception taxonomy for the SentinelGuard client."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rate_limit"
    SERVER = "server"
    NETWORK = "network"
    IN_PROGRESS = "in_progress"
    HEARTBEAT = "heartbeat"


class SentinelGuardError(Exception):
    kind = ErrorKind.SERVER

    def __init__(self, message: str, status_code: Optional[int] = None, response: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response


class ConfigurationError(SentinelGuardError):
    """Raised at setup time when a configuration value is missing or malformed."""

    kind = ErrorKind.VALIDATION


class AuthenticationError(SentinelGuardError):
    kind = ErrorKind.AUTHENTICATION

    def __init__(self, message: str = "Authentication failed", response: Optional[str] = None) -> None:
        super().__init__(message, status_code=401, response=response)


class RateLimitError(SentinelGuardError):
    kind = ErrorKind.RATE_LIMIT

    def __init__(self, message: str = "Rate limit exceeded", response: Optional[str] = None) -> None:
        super().__init__(message, status_code=429, response=response)


class NetworkError(SentinelGuardError):
    kind = ErrorKind.NETWORK

    def __init__(self, message: str, original_error: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.original_error = original_error


class HeartbeatError(SentinelGuardError):
    kind = ErrorKind.HEARTBEAT

    def __init__(self, message: str, original_error: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.original_error = original_error


class ProbeError(SentinelGuardError):
    """A dependency latency probe failed; reported in logs only."""

    kind = ErrorKind.HEARTBEAT

    def __init__(self, message: str, component: str, original_error: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.component = component
        self.original_error = original_error


__all__ = [
    "ErrorKind",
    "SentinelGuardError",
    "ConfigurationError",
    "AuthenticationError",
    "RateLimitError",
    "NetworkError",
    "HeartbeatError",
    "ProbeError",
]
