"""Pydantic models and result types shared across the client."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Annotated, Any, Awaitable, Dict, Generic, Literal, Optional, Protocol, TypeVar, Union, runtime_checkable

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, conint, constr

from .errors import ErrorKind

T = TypeVar("T")

NonEmptyStr = constr(min_length=1)
PositiveInt = conint(gt=0)
NonNegativeInt = conint(ge=0)

HeartbeatStatus = Literal["ONLINE", "OFFLINE", "ERROR", "HIGH_LATENCY"]
MonitorStatus = Literal["active", "paused"]


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def round_ms(value: Any) -> Any:
    """Round a millisecond figure half-up to an integer; other values pass through."""
    if isinstance(value, float):
        return int(value + 0.5) if value >= 0 else value
    return value


LatencyMs = Annotated[NonNegativeInt, BeforeValidator(round_ms)]


@dataclass(frozen=True)
class ResultEnvelope(Generic[T]):
    """Uniform outcome of every network-facing operation.

    Failures are carried in ``error``/``error_kind`` instead of being raised.
    """

    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    status_code: Optional[int] = None
    responded_at: str = field(default_factory=utc_now_iso)

    @classmethod
    def success(cls, value: Optional[T] = None, *, status_code: Optional[int] = None) -> "ResultEnvelope[T]":
        return cls(ok=True, value=value, status_code=status_code)

    @classmethod
    def failure(
        cls,
        error: str,
        kind: ErrorKind = ErrorKind.NETWORK,
        *,
        status_code: Optional[int] = None,
    ) -> "ResultEnvelope[T]":
        return cls(ok=False, error=error, error_kind=kind, status_code=status_code)


class PerformanceSample(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    service_latency_ms: LatencyMs = Field(..., alias="serviceLatency")
    sql_latency_ms: Optional[LatencyMs] = Field(default=None, alias="prismaLatency")
    cache_latency_ms: Optional[LatencyMs] = Field(default=None, alias="redisLatency")
    measured_at: str = Field(default_factory=utc_now_iso, alias="timestamp")


class HeartbeatPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    kind: Literal["CUSTOM"] = Field(default="CUSTOM", alias="type")
    status: HeartbeatStatus = "ONLINE"
    latency_ms: Optional[LatencyMs] = Field(default=None, alias="latencyMs")
    performance: Optional[PerformanceSample] = None
    metadata: Optional[Dict[str, Any]] = None

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class CreateMonitorRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: NonEmptyStr
    url: NonEmptyStr
    interval: Optional[PositiveInt] = None
    timeout: Optional[PositiveInt] = None
    method: Optional[str] = None


class UpdateMonitorRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[NonEmptyStr] = None
    url: Optional[NonEmptyStr] = None
    interval: Optional[PositiveInt] = None
    timeout: Optional[PositiveInt] = None
    method: Optional[str] = None
    status: Optional[MonitorStatus] = None


class Monitor(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    name: Optional[str] = None
    url: Optional[str] = None
    interval: Optional[int] = None
    timeout: Optional[int] = None
    status: Optional[str] = None


@runtime_checkable
class SqlProbeClient(Protocol):
    """Anything that can run a raw query, e.g. an ORM or DB-API wrapper."""

    def query_raw(self, query: str) -> Union[Awaitable[Any], Any]: ...


@runtime_checkable
class CacheProbeClient(Protocol):
    """Anything exposing ``ping()``, e.g. a redis client."""

    def ping(self) -> Union[Awaitable[Any], Any]: ...


__all__ = [
    "ResultEnvelope",
    "PerformanceSample",
    "HeartbeatPayload",
    "HeartbeatStatus",
    "CreateMonitorRequest",
    "UpdateMonitorRequest",
    "Monitor",
    "MonitorStatus",
    "SqlProbeClient",
    "CacheProbeClient",
    "utc_now_iso",
    "round_ms",
]
