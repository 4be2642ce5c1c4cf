"""Monitor CRUD calls mapped onto the shared transport."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Union
from urllib.parse import quote

from .models import CreateMonitorRequest, ResultEnvelope, UpdateMonitorRequest
from .transport import Transport

MonitorBody = Union[CreateMonitorRequest, UpdateMonitorRequest, Mapping[str, Any]]


def _body(request: MonitorBody) -> Dict[str, Any]:
    if isinstance(request, (CreateMonitorRequest, UpdateMonitorRequest)):
        return request.model_dump(exclude_none=True, mode="json")
    return dict(request)


def _monitor_path(monitor_id: str, suffix: str = "") -> str:
    return f"/monitors/{quote(str(monitor_id), safe='')}{suffix}"


class MonitorManager:
    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    async def create_monitor(self, request: MonitorBody) -> ResultEnvelope[Any]:
        return await self._transport.post("/monitors", _body(request))

    async def list_monitors(self) -> ResultEnvelope[Any]:
        return await self._transport.get("/monitors")

    async def get_monitor(self, monitor_id: str) -> ResultEnvelope[Any]:
        return await self._transport.get(_monitor_path(monitor_id))

    async def update_monitor(self, monitor_id: str, request: MonitorBody) -> ResultEnvelope[Any]:
        return await self._transport.put(_monitor_path(monitor_id), _body(request))

    async def delete_monitor(self, monitor_id: str) -> ResultEnvelope[Any]:
        return await self._transport.delete(_monitor_path(monitor_id))

    async def pause_monitor(self, monitor_id: str) -> ResultEnvelope[Any]:
        return await self.update_monitor(monitor_id, UpdateMonitorRequest(status="paused"))

    async def resume_monitor(self, monitor_id: str) -> ResultEnvelope[Any]:
        return await self.update_monitor(monitor_id, UpdateMonitorRequest(status="active"))

    async def get_monitor_history(self, monitor_id: str, limit: Optional[int] = None) -> ResultEnvelope[Any]:
        params = {"limit": limit} if limit else None
        return await self._transport.get(_monitor_path(monitor_id, "/history"), params=params)

    async def get_monitor_stats(self, monitor_id: str) -> ResultEnvelope[Any]:
        return await self._transport.get(_monitor_path(monitor_id, "/stats"))


__all__ = ["MonitorManager", "MonitorBody"]
