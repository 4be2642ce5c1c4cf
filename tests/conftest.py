from __future__ import annotations

import asyncio
import time
from typing import Callable, List

import pytest

from sentinel_guard.config import ClientConfig, RetryPolicy


class SleepRecorder:
    def __init__(self) -> None:
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)


def make_config(**overrides) -> ClientConfig:
    defaults = dict(
        base_url="https://api.example.com",
        api_key="test-key",
        monitor_api_key="monitor-key",
        retry_policy=RetryPolicy(max_retries=1, base_delay_ms=1, backoff_multiplier=2),
    )
    defaults.update(overrides)
    return ClientConfig(**defaults)


@pytest.fixture()
def sleeper() -> SleepRecorder:
    return SleepRecorder()
