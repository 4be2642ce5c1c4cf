"""Python client for the SentinelGuard monitoring API."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from .config import ClientConfig, HeartbeatConfig, validate_config
from .errors import SentinelGuardError
from .heartbeat import HeartbeatScheduler, measure_performance
from .models import (
    CacheProbeClient,
    HeartbeatStatus,
    PerformanceSample,
    ResultEnvelope,
    SqlProbeClient,
)
from .monitors import MonitorBody, MonitorManager
from .transport import SleepFunc, Transport

logger = logging.getLogger("sentinel_guard.client")

_NOT_STARTED = "Monitoring not started. Call start_monitoring() first."


class SentinelGuard:
    """Single entry point for monitor management and heartbeats.

    Owns one ``Transport`` and at most one active ``HeartbeatScheduler``.
    Configuration problems raise ``ConfigurationError`` immediately; every
    network-facing call returns a ``ResultEnvelope`` instead of raising.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[SleepFunc] = None,
    ) -> None:
        self._config = validate_config(config)
        self._transport = Transport(config, transport=transport, sleep=sleep)
        self._monitors = MonitorManager(self._transport)
        self._scheduler: Optional[HeartbeatScheduler] = None

    @staticmethod
    def validate_config(config: ClientConfig) -> bool:
        validate_config(config)
        return True

    @classmethod
    def from_env(cls, **kwargs: Any) -> "SentinelGuard":
        return cls(ClientConfig.from_env(), **kwargs)

    async def __aenter__(self) -> "SentinelGuard":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def scheduler(self) -> Optional[HeartbeatScheduler]:
        return self._scheduler

    def _require_scheduler(self) -> HeartbeatScheduler:
        if self._scheduler is None:
            raise SentinelGuardError(_NOT_STARTED)
        return self._scheduler

    # Monitor management

    async def create_monitor(self, request: MonitorBody) -> ResultEnvelope[Any]:
        return await self._monitors.create_monitor(request)

    async def list_monitors(self) -> ResultEnvelope[Any]:
        return await self._monitors.list_monitors()

    async def get_monitor(self, monitor_id: str) -> ResultEnvelope[Any]:
        return await self._monitors.get_monitor(monitor_id)

    async def update_monitor(self, monitor_id: str, request: MonitorBody) -> ResultEnvelope[Any]:
        return await self._monitors.update_monitor(monitor_id, request)

    async def delete_monitor(self, monitor_id: str) -> ResultEnvelope[Any]:
        return await self._monitors.delete_monitor(monitor_id)

    async def pause_monitor(self, monitor_id: str) -> ResultEnvelope[Any]:
        return await self._monitors.pause_monitor(monitor_id)

    async def resume_monitor(self, monitor_id: str) -> ResultEnvelope[Any]:
        return await self._monitors.resume_monitor(monitor_id)

    async def get_monitor_history(self, monitor_id: str, limit: Optional[int] = None) -> ResultEnvelope[Any]:
        return await self._monitors.get_monitor_history(monitor_id, limit)

    async def get_monitor_stats(self, monitor_id: str) -> ResultEnvelope[Any]:
        return await self._monitors.get_monitor_stats(monitor_id)

    # Heartbeats

    def start_monitoring(self, heartbeat_config: HeartbeatConfig) -> HeartbeatScheduler:
        # Fail before tearing anything down when no event loop is running.
        asyncio.get_running_loop()
        if self._scheduler is not None:
            self._scheduler.destroy()
            self._scheduler = None
        scheduler = HeartbeatScheduler(self._transport, heartbeat_config)
        self._scheduler = scheduler
        scheduler.start()
        return scheduler

    def stop_monitoring(self) -> None:
        if self._scheduler is not None:
            self._scheduler.stop()

    def is_monitoring_active(self) -> bool:
        return self._scheduler is not None and self._scheduler.is_active()

    def attach_dependency_clients(
        self,
        sql_client: Optional[SqlProbeClient] = None,
        cache_client: Optional[CacheProbeClient] = None,
    ) -> None:
        self._require_scheduler().attach_clients(sql_client=sql_client, cache_client=cache_client)

    async def send_heartbeat(self, data: Optional[Mapping[str, Any]] = None) -> ResultEnvelope[Any]:
        return await self._require_scheduler().send_heartbeat(data)

    async def send_status(
        self,
        status: HeartbeatStatus,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ResultEnvelope[Any]:
        return await self._require_scheduler().send_status(status, metadata)

    def set_heartbeat_interval(self, interval_ms: float) -> None:
        self._require_scheduler().set_interval(interval_ms)

    def get_heartbeat_config(self) -> Optional[HeartbeatConfig]:
        return self._scheduler.get_config() if self._scheduler is not None else None

    def heartbeat_error_count(self) -> int:
        return self._scheduler.consecutive_errors if self._scheduler is not None else 0

    def reset_heartbeat_error_count(self) -> None:
        if self._scheduler is not None:
            self._scheduler.reset_error_count()

    def set_default_heartbeat_data(self, data: Mapping[str, Any]) -> None:
        self._require_scheduler().set_default_data(data)

    def update_default_heartbeat_data(self, data: Mapping[str, Any]) -> None:
        self._require_scheduler().update_default_data(data)

    def get_default_heartbeat_data(self) -> Optional[Dict[str, Any]]:
        return self._scheduler.get_default_data() if self._scheduler is not None else None

    async def get_performance_metrics(self) -> PerformanceSample:
        if self._scheduler is not None:
            return await self._scheduler.measure_performance()
        return await measure_performance()

    # Lifecycle

    def destroy(self) -> None:
        if self._scheduler is not None:
            self._scheduler.destroy()
            self._scheduler = None

    async def aclose(self) -> None:
        scheduler = self._scheduler
        self.destroy()
        if scheduler is not None:
            await scheduler.wait_for_pending()
        await self._transport.close()
        logger.debug("SentinelGuard client closed")


__all__ = ["SentinelGuard"]
