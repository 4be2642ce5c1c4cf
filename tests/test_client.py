from __future__ import annotations

import json
from typing import Any, Dict, List

import httpx
import pytest

from sentinel_guard import CreateMonitorRequest, HeartbeatConfig, Monitor, SentinelGuard, SentinelGuardError
from sentinel_guard.heartbeat import SchedulerState

from conftest import make_config, wait_until


class Backend:
    def __init__(self) -> None:
        self.requests: List[Dict[str, Any]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.requests.append(
            {
                "method": request.method,
                "path": request.url.path,
                "query": dict(request.url.params),
                "body": body,
            }
        )
        if request.method == "DELETE":
            return httpx.Response(204)
        if request.url.path == "/monitors" and request.method == "GET":
            return httpx.Response(200, json=[{"id": "m1", "name": "api", "url": "https://example.com"}])
        if request.url.path == "/heartbeat":
            return httpx.Response(200, json={"success": True})
        return httpx.Response(200, json={"id": "m1", **(body or {})})


@pytest.fixture()
def backend() -> Backend:
    return Backend()


@pytest.fixture()
def client(backend: Backend) -> SentinelGuard:
    return SentinelGuard(make_config(), transport=httpx.MockTransport(backend))


@pytest.mark.asyncio
async def test_monitor_crud_paths(client: SentinelGuard, backend: Backend) -> None:
    created = await client.create_monitor(CreateMonitorRequest(name="api", url="https://example.com", interval=60))
    assert created.ok
    assert Monitor.model_validate(created.value).id == "m1"

    listed = await client.list_monitors()
    assert [Monitor.model_validate(item).name for item in listed.value] == ["api"]

    await client.get_monitor("m1")
    await client.update_monitor("m1", {"name": "renamed"})
    await client.pause_monitor("m1")
    await client.resume_monitor("m1")
    deleted = await client.delete_monitor("m1")
    await client.get_monitor_history("m1", limit=5)
    await client.get_monitor_history("m1")
    await client.get_monitor_stats("m1")

    assert deleted.ok and deleted.value is None
    calls = [(r["method"], r["path"], r["query"], r["body"]) for r in backend.requests]
    assert calls == [
        ("POST", "/monitors", {}, {"name": "api", "url": "https://example.com", "interval": 60}),
        ("GET", "/monitors", {}, None),
        ("GET", "/monitors/m1", {}, None),
        ("PUT", "/monitors/m1", {}, {"name": "renamed"}),
        ("PUT", "/monitors/m1", {}, {"status": "paused"}),
        ("PUT", "/monitors/m1", {}, {"status": "active"}),
        ("DELETE", "/monitors/m1", {}, None),
        ("GET", "/monitors/m1/history", {"limit": "5"}, None),
        ("GET", "/monitors/m1/history", {}, None),
        ("GET", "/monitors/m1/stats", {}, None),
    ]
    await client.aclose()


@pytest.mark.asyncio
async def test_start_monitoring_replaces_existing_scheduler(client: SentinelGuard, backend: Backend) -> None:
    assert not client.is_monitoring_active()

    first = client.start_monitoring(HeartbeatConfig(interval_ms=60000))
    second = client.start_monitoring(HeartbeatConfig(interval_ms=60000))

    assert first is not second
    assert first.state is SchedulerState.STOPPED
    assert second.is_active()
    assert client.scheduler is second
    assert client.is_monitoring_active()

    client.stop_monitoring()
    assert not client.is_monitoring_active()
    await first.wait_for_pending()
    await client.aclose()


@pytest.mark.asyncio
async def test_heartbeat_operations_require_monitoring(client: SentinelGuard) -> None:
    with pytest.raises(SentinelGuardError, match="Monitoring not started"):
        client.attach_dependency_clients()
    with pytest.raises(SentinelGuardError, match="Monitoring not started"):
        await client.send_heartbeat()
    with pytest.raises(SentinelGuardError, match="Monitoring not started"):
        client.set_heartbeat_interval(1000)

    assert client.get_heartbeat_config() is None
    assert client.get_default_heartbeat_data() is None
    assert client.heartbeat_error_count() == 0


@pytest.mark.asyncio
async def test_manual_heartbeat_through_facade(client: SentinelGuard, backend: Backend) -> None:
    class Cache:
        async def ping(self) -> str:
            return "PONG"

    client.start_monitoring(HeartbeatConfig(interval_ms=60000, max_consecutive_errors=2))
    client.attach_dependency_clients(cache_client=Cache())
    client.set_default_heartbeat_data({"metadata": {"service": "checkout"}})
    await wait_until(lambda: len(backend.requests) == 1 and not client.scheduler.is_sending)

    result = await client.send_status("ONLINE", {"build": "42"})

    assert result.ok
    body = backend.requests[-1]["body"]
    assert body["metadata"]["service"] == "checkout"
    assert body["metadata"]["build"] == "42"
    assert "redisLatency" in body["performance"]
    assert client.heartbeat_error_count() == 0
    assert client.get_heartbeat_config().max_consecutive_errors == 2
    await client.aclose()


@pytest.mark.asyncio
async def test_destroy_is_idempotent(client: SentinelGuard) -> None:
    scheduler = client.start_monitoring(HeartbeatConfig(interval_ms=60000))

    client.destroy()
    client.destroy()

    assert client.scheduler is None
    assert not scheduler.is_active()
    assert not client.is_monitoring_active()
    await scheduler.wait_for_pending()
    await client.aclose()


@pytest.mark.asyncio
async def test_performance_metrics_without_monitoring(client: SentinelGuard) -> None:
    sample = await client.get_performance_metrics()

    assert sample.service_latency_ms >= 0
    assert sample.sql_latency_ms is None
    assert sample.measured_at


@pytest.mark.asyncio
async def test_async_context_manager_closes_transport(backend: Backend) -> None:
    async with SentinelGuard(make_config(), transport=httpx.MockTransport(backend)) as client:
        client.start_monitoring(HeartbeatConfig(interval_ms=60000))
    assert not client.is_monitoring_active()
    assert backend.requests and backend.requests[0]["path"] == "/heartbeat"


def test_start_monitoring_without_event_loop_leaves_client_untouched(client: SentinelGuard) -> None:
    with pytest.raises(RuntimeError):
        client.start_monitoring(HeartbeatConfig(interval_ms=60000))

    assert client.scheduler is None
    assert not client.is_monitoring_active()
