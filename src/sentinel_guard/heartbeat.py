"""Self-driving heartbeat scheduler with dependency latency probes."""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import replace
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Set

from .config import HeartbeatConfig
from .errors import ConfigurationError, ErrorKind, HeartbeatError, ProbeError
from .metrics import HEARTBEAT_COUNTER, HEARTBEAT_LATENCY, MONITORING_ACTIVE
from .models import (
    CacheProbeClient,
    HeartbeatPayload,
    HeartbeatStatus,
    PerformanceSample,
    ResultEnvelope,
    SqlProbeClient,
    utc_now_iso,
)
from .transport import Transport

logger = logging.getLogger("sentinel_guard.heartbeat")

HEARTBEAT_PATH = "/heartbeat"
SQL_PROBE_QUERY = "SELECT 1"

_FIELD_ALIASES = {
    info.alias: name for name, info in HeartbeatPayload.model_fields.items() if info.alias
}


class SchedulerState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"


async def probe_latency(component: str, call: Callable[[], Any]) -> float:
    """Time one dependency round-trip in seconds, raising ``ProbeError`` on failure."""
    started = time.perf_counter()
    try:
        result = call()
        if inspect.isawaitable(result):
            await result
    except Exception as exc:
        raise ProbeError(f"{component} latency probe failed: {exc}", component=component, original_error=exc) from exc
    return time.perf_counter() - started


async def _optional_latency(component: str, call: Callable[[], Any]) -> Optional[float]:
    try:
        return await probe_latency(component, call)
    except ProbeError as exc:
        logger.warning("Dependency probe failed component=%s error=%s", exc.component, exc.original_error)
        return None


async def measure_performance(
    sql_client: Optional[SqlProbeClient] = None,
    cache_client: Optional[CacheProbeClient] = None,
) -> PerformanceSample:
    """Measure event-loop latency plus the round-trip of any attached dependency.

    A failing probe is logged and leaves its latency field unset.
    """
    started = time.perf_counter()
    await asyncio.sleep(0)
    service_latency = time.perf_counter() - started

    sql_latency: Optional[float] = None
    if sql_client is not None:
        sql_latency = await _optional_latency("sql", lambda: sql_client.query_raw(SQL_PROBE_QUERY))

    cache_latency: Optional[float] = None
    if cache_client is not None:
        cache_latency = await _optional_latency("cache", cache_client.ping)

    return PerformanceSample(
        service_latency_ms=service_latency * 1000,
        sql_latency_ms=sql_latency * 1000 if sql_latency is not None else None,
        cache_latency_ms=cache_latency * 1000 if cache_latency is not None else None,
        measured_at=utc_now_iso(),
    )


def _normalize(data: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    if not data:
        return {}
    return {_FIELD_ALIASES.get(key, key): value for key, value in data.items()}


class HeartbeatScheduler:
    """Sends heartbeats on a fixed cadence through a shared ``Transport``.

    ``start``/``stop`` must be called from a running event loop. Stopping only
    cancels future timer firings: a send that is already awaiting the network
    completes and still updates the error counter, but never restarts the timer.
    """

    def __init__(self, transport: Transport, config: HeartbeatConfig) -> None:
        self._transport = transport
        self._config = config
        self._state = SchedulerState.STOPPED
        self._sending = False
        self._consecutive_errors = 0
        self._timer: Optional[asyncio.Task] = None
        self._pending: Set[asyncio.Task] = set()
        self._sql_client: Optional[SqlProbeClient] = None
        self._cache_client: Optional[CacheProbeClient] = None
        self._default_data: Dict[str, Any] = {}

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def consecutive_errors(self) -> int:
        return self._consecutive_errors

    @property
    def is_sending(self) -> bool:
        return self._sending

    def is_active(self) -> bool:
        return self._state is SchedulerState.RUNNING

    def get_config(self) -> HeartbeatConfig:
        return self._config

    def reset_error_count(self) -> None:
        self._consecutive_errors = 0

    def start(self) -> None:
        if self._state is SchedulerState.RUNNING:
            return
        loop = asyncio.get_running_loop()
        self._state = SchedulerState.RUNNING
        self._consecutive_errors = 0
        MONITORING_ACTIVE.inc()
        logger.info("Heartbeats started interval_ms=%s", self._config.interval_ms)

        self._spawn_send()
        self._timer = loop.create_task(self._run_timer(self._config.interval_seconds))

    def stop(self) -> None:
        if self._state is SchedulerState.STOPPED:
            return
        self._state = SchedulerState.STOPPED
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        MONITORING_ACTIVE.dec()
        logger.info("Heartbeats stopped")

    def destroy(self) -> None:
        self.stop()
        self._sql_client = None
        self._cache_client = None

    def set_interval(self, interval_ms: float) -> None:
        new_config = replace(self._config, interval_ms=interval_ms)
        was_running = self.is_active()
        if was_running:
            self.stop()
        self._config = new_config
        if was_running:
            self.start()

    def set_sql_client(self, client: SqlProbeClient) -> None:
        if not isinstance(client, SqlProbeClient):
            raise ConfigurationError("sql_client must provide a query_raw(query) method")
        self._sql_client = client

    def set_cache_client(self, client: CacheProbeClient) -> None:
        if not isinstance(client, CacheProbeClient):
            raise ConfigurationError("cache_client must provide a ping() method")
        self._cache_client = client

    def attach_clients(
        self,
        sql_client: Optional[SqlProbeClient] = None,
        cache_client: Optional[CacheProbeClient] = None,
    ) -> None:
        if sql_client is not None:
            self.set_sql_client(sql_client)
        if cache_client is not None:
            self.set_cache_client(cache_client)

    def set_default_data(self, data: Mapping[str, Any]) -> None:
        self._default_data = _normalize(data)

    def update_default_data(self, data: Mapping[str, Any]) -> None:
        incoming = _normalize(data)
        merged = {**self._default_data, **incoming}
        if "metadata" in self._default_data and "metadata" in incoming:
            merged["metadata"] = {**(self._default_data["metadata"] or {}), **(incoming["metadata"] or {})}
        self._default_data = merged

    def get_default_data(self) -> Dict[str, Any]:
        return dict(self._default_data)

    async def measure_performance(self) -> PerformanceSample:
        return await measure_performance(self._sql_client, self._cache_client)

    async def send_status(
        self,
        status: HeartbeatStatus,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ResultEnvelope[Any]:
        data: Dict[str, Any] = {"status": status}
        if metadata:
            data["metadata"] = metadata
        return await self.send_heartbeat(data)

    async def send_heartbeat(self, custom_data: Optional[Mapping[str, Any]] = None) -> ResultEnvelope[Any]:
        if self._sending:
            HEARTBEAT_COUNTER.labels(outcome="skipped").inc()
            return ResultEnvelope.failure("Heartbeat already in progress", ErrorKind.IN_PROGRESS)

        self._sending = True
        try:
            payload = await self._build_payload(custom_data)
            started = time.perf_counter()
            result = await self._transport.execute(HEARTBEAT_PATH, "POST", payload.to_wire())
            HEARTBEAT_LATENCY.observe(time.perf_counter() - started)

            if result.ok:
                self._consecutive_errors = 0
                HEARTBEAT_COUNTER.labels(outcome="success").inc()
                logger.debug("Heartbeat delivered status=%s", payload.status)
            else:
                self._record_failure(f"API error: {result.error}")
            return result
        except Exception as exc:
            error = HeartbeatError(f"Heartbeat failed: {exc}", original_error=exc)
            self._record_failure(error.message)
            return ResultEnvelope.failure(error.message, error.kind)
        finally:
            self._sending = False

    async def wait_for_pending(self) -> None:
        """Wait for automatic sends that were already dispatched."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _build_payload(self, custom_data: Optional[Mapping[str, Any]]) -> HeartbeatPayload:
        sample = await self.measure_performance()
        overrides = _normalize(custom_data)

        metadata: Dict[str, Any] = {"timestamp": utc_now_iso()}
        metadata.update(self._default_data.get("metadata") or {})
        metadata.update(overrides.get("metadata") or {})

        data: Dict[str, Any] = {
            "kind": "CUSTOM",
            "status": "ONLINE",
            "latency_ms": sample.service_latency_ms,
            "performance": sample,
        }
        data.update(self._default_data)
        data.update(overrides)
        data["metadata"] = metadata
        return HeartbeatPayload.model_validate(data)

    def _record_failure(self, message: str) -> None:
        self._consecutive_errors += 1
        HEARTBEAT_COUNTER.labels(outcome="failure").inc()
        threshold = self._config.max_consecutive_errors
        logger.warning("Heartbeat error (%s/%s): %s", self._consecutive_errors, threshold, message)
        if self._consecutive_errors >= threshold and self.is_active():
            logger.error("Too many consecutive heartbeat errors, stopping automatic heartbeats")
            self.stop()

    def _spawn_send(self, tick: bool = False) -> None:
        task = asyncio.get_running_loop().create_task(self._automatic_send(tick))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _automatic_send(self, tick: bool = False) -> None:
        # A tick dispatched just before stop() must not send.
        if tick and self._state is not SchedulerState.RUNNING:
            return
        result = await self.send_heartbeat()
        if not result.ok and result.error_kind is ErrorKind.IN_PROGRESS:
            logger.debug("Skipped timer heartbeat, previous send still in flight")

    async def _run_timer(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            if self._state is not SchedulerState.RUNNING:
                return
            self._spawn_send(tick=True)


__all__ = ["HeartbeatScheduler", "SchedulerState", "measure_performance", "probe_latency", "HEARTBEAT_PATH", "SQL_PROBE_QUERY"]
