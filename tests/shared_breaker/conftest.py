from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from fakeredis import FakeAsyncRedis, FakeServer

import shared_breaker.circuit_breaker.storage as storage_mod
from tests.shared_breaker.support.fakes import FakeClock, FakeLogger


@pytest.fixture
def fake_logger() -> FakeLogger:
    """Provide a fresh structured logger test double per test."""
    return FakeLogger()


@pytest.fixture
def fake_clock(monkeypatch: pytest.MonkeyPatch) -> FakeClock:
    """Drive in-memory storage expiry from a manually advanced clock."""
    clock = FakeClock()
    monkeypatch.setattr(storage_mod, "_monotonic", clock.monotonic)
    return clock


@pytest.fixture
def redis_server() -> FakeServer:
    """Provide an isolated fake Redis server per test."""
    return FakeServer()


@pytest_asyncio.fixture
async def redis_client(redis_server: FakeServer) -> AsyncIterator[FakeAsyncRedis]:
    """Provide an async client bound to the per-test fake Redis server."""
    client = FakeAsyncRedis(server=redis_server, decode_responses=True)
    yield client
    await client.aclose()
