"""HTTP transport with retry, backoff and error classification."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

import httpx

from .config import ClientConfig
from .errors import AuthenticationError, ErrorKind, NetworkError, RateLimitError, SentinelGuardError
from .metrics import REQUEST_RETRIES
from .models import ResultEnvelope

logger = logging.getLogger("sentinel_guard.transport")

SleepFunc = Callable[[float], Awaitable[None]]


class Transport:
    """Turns ``(method, path, body)`` into a retried, classified HTTP exchange.

    ``execute`` never raises for request failures; every outcome is returned
    as a ``ResultEnvelope``. The instance holds no per-call state, so heartbeat
    sends and monitor calls may share it concurrently.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[SleepFunc] = None,
    ) -> None:
        self._config = config
        self._retry_policy = config.effective_retry_policy
        self._client = httpx.AsyncClient(
            base_url=config.base_url.rstrip("/"),
            timeout=config.timeout_ms / 1000.0,
            transport=transport,
        )
        self._sleep = sleep or asyncio.sleep

    @property
    def config(self) -> ClientConfig:
        return self._config

    def _headers(self, extra: Optional[Mapping[str, str]] = None) -> httpx.Headers:
        headers = httpx.Headers({"Content-Type": "application/json"})
        headers.update(self._config.headers)
        if extra:
            headers.update(extra)
        # Credentials and client identity are applied last so callers cannot replace them.
        headers["x-api-key"] = self._config.api_key
        if self._config.monitor_api_key:
            headers["x-monitor-api-key"] = self._config.monitor_api_key
        headers["User-Agent"] = self._config.user_agent
        return headers

    async def execute(
        self,
        path: str,
        method: str = "GET",
        body: Any = None,
        *,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> ResultEnvelope[Any]:
        method = method.upper()
        request_headers = self._headers(headers)
        try:
            content = json.dumps(body, separators=(",", ":")) if body is not None else None
        except (TypeError, ValueError) as exc:
            logger.warning("Request body not serializable method=%s path=%s error=%s", method, path, exc)
            return ResultEnvelope.failure(f"Invalid request body: {exc}", ErrorKind.VALIDATION)
        max_retries = self._retry_policy.max_retries

        attempt = 1
        while True:
            try:
                value, status_code = await self._send_once(method, path, content, request_headers, params)
                return ResultEnvelope.success(value, status_code=status_code)
            except Exception as exc:
                error = self._map_error(exc)
                if attempt < max_retries and self._should_retry(error):
                    delay_ms = self._retry_policy.delay_ms(attempt)
                    logger.info(
                        "Retrying %s %s attempt=%s delay_ms=%.0f reason=%s",
                        method,
                        path,
                        attempt + 1,
                        delay_ms,
                        error.message,
                    )
                    REQUEST_RETRIES.labels(method=method).inc()
                    await self._sleep(delay_ms / 1000.0)
                    attempt += 1
                    continue
                logger.warning(
                    "Request failed method=%s path=%s attempts=%s status=%s error=%s",
                    method,
                    path,
                    attempt,
                    error.status_code,
                    error.message,
                )
                return ResultEnvelope.failure(error.message, error.kind, status_code=error.status_code)

    async def _send_once(
        self,
        method: str,
        path: str,
        content: Optional[str],
        headers: httpx.Headers,
        params: Optional[Dict[str, Any]],
    ) -> tuple[Any, int]:
        response = await self._client.request(method, path, content=content, headers=headers, params=params)
        if response.status_code >= 400:
            self._raise_for_status(response)
        if not response.content:
            return None, response.status_code
        try:
            return response.json(), response.status_code
        except ValueError as exc:
            raise SentinelGuardError(
                f"Invalid JSON response: {exc}",
                status_code=response.status_code,
                response=response.text,
            ) from exc

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        body = response.text
        message = f"HTTP {response.status_code}: {response.reason_phrase}"
        try:
            data = json.loads(body)
        except ValueError:
            data = None
        if isinstance(data, dict) and data.get("message"):
            message = str(data["message"])

        if response.status_code == 401:
            raise AuthenticationError(message, response=body)
        if response.status_code == 429:
            raise RateLimitError(message, response=body)
        raise SentinelGuardError(message, status_code=response.status_code, response=body)

    @staticmethod
    def _should_retry(error: SentinelGuardError) -> bool:
        if isinstance(error, AuthenticationError):
            return False
        if isinstance(error, (RateLimitError, NetworkError)):
            return True
        return error.status_code is not None and error.status_code >= 500

    @staticmethod
    def _map_error(exc: Exception) -> SentinelGuardError:
        if isinstance(exc, SentinelGuardError):
            return exc
        if isinstance(exc, httpx.TimeoutException):
            return NetworkError("Request timeout", exc)
        return NetworkError(f"Network error: {exc}", exc)

    async def get(self, path: str, *, params: Optional[Dict[str, Any]] = None) -> ResultEnvelope[Any]:
        return await self.execute(path, "GET", params=params)

    async def post(self, path: str, body: Any = None) -> ResultEnvelope[Any]:
        return await self.execute(path, "POST", body)

    async def put(self, path: str, body: Any = None) -> ResultEnvelope[Any]:
        return await self.execute(path, "PUT", body)

    async def delete(self, path: str) -> ResultEnvelope[Any]:
        return await self.execute(path, "DELETE")

    async def close(self) -> None:
        await self._client.aclose()


__all__ = ["Transport", "SleepFunc"]
