import pytest
from fakeredis import FakeAsyncRedis, FakeServer

from shared_breaker.circuit_breaker import CircuitState, RedisBreakerStorage, keys_for
from shared_breaker.circuit_breaker.redis_storage import _ttl_seconds

pytestmark = pytest.mark.asyncio


async def test_init_sets_closed_default_only_when_missing(
    redis_client: FakeAsyncRedis,
) -> None:
    storage = RedisBreakerStorage(redis_client)
    keys = keys_for("svc")

    reading = await storage.init(keys)
    assert reading.state == CircuitState.CLOSED
    assert reading.open_ttl == 0.0
    assert await redis_client.get(keys.state) == "CLOSED"

    await redis_client.set(keys.state, "OPENED")
    await redis_client.set(keys.open_marker, 1, px=3_000)
    reading = await storage.init(keys)
    assert reading.state == CircuitState.OPEN
    assert 0 < reading.open_ttl <= 3.0


async def test_init_reads_unknown_state_as_closed(redis_client: FakeAsyncRedis) -> None:
    keys = keys_for("svc")
    await redis_client.set(keys.state, "HALF_OPENED")

    reading = await RedisBreakerStorage(redis_client).init(keys)

    assert reading.state == CircuitState.CLOSED


async def test_storage_accepts_byte_responses(redis_server: FakeServer) -> None:
    client = FakeAsyncRedis(server=redis_server)
    storage = RedisBreakerStorage(client)
    keys = keys_for("svc")
    try:
        await storage.flip_open(keys, sleep_window=2.0)
        counts = await storage.pre_run(keys, interval=5.0)
        reading = await storage.init(keys)
    finally:
        await client.aclose()

    assert (counts.request_count, counts.error_count) == (1, 0)
    assert reading.state == CircuitState.OPEN
    assert 0 < reading.open_ttl <= 2.0


async def test_pre_run_and_record_error_set_window_expiry(
    redis_client: FakeAsyncRedis,
) -> None:
    storage = RedisBreakerStorage(redis_client)
    keys = keys_for("svc")

    await storage.record_error(keys, interval=5.0)
    counts = await storage.pre_run(keys, interval=60.0)

    assert (counts.request_count, counts.error_count) == (2, 1)
    assert 0 < await redis_client.pttl(keys.request_count) <= 5_000
    assert 0 < await redis_client.pttl(keys.error_count) <= 5_000


async def test_flip_open_replaces_stale_marker(redis_client: FakeAsyncRedis) -> None:
    storage = RedisBreakerStorage(redis_client)
    keys = keys_for("svc")
    await redis_client.set(keys.open_marker, 1)

    await storage.flip_open(keys, sleep_window=2.0)

    assert await redis_client.get(keys.state) == "OPENED"
    assert 0 < await redis_client.pttl(keys.open_marker) <= 2_000


async def test_flip_close_unlinks_marker(redis_client: FakeAsyncRedis) -> None:
    storage = RedisBreakerStorage(redis_client)
    keys = keys_for("svc")
    await storage.flip_open(keys, sleep_window=2.0)

    await storage.flip_close(keys)

    assert await redis_client.get(keys.state) == "CLOSED"
    assert await redis_client.exists(keys.open_marker) == 0


async def test_snapshot_of_unknown_breaker_is_empty_and_closed(
    redis_client: FakeAsyncRedis,
) -> None:
    keys = keys_for("never called")

    snapshot = await RedisBreakerStorage(redis_client).snapshot(keys, name="x")

    assert snapshot.name == "x"
    assert snapshot.state == CircuitState.CLOSED
    assert (snapshot.request_count, snapshot.error_count) == (0, 0)
    assert snapshot.open_ttl == 0.0
    assert await redis_client.exists(*keys.all()) == 0


async def test_ttl_seconds_treats_missing_and_persistent_as_expired() -> None:
    assert _ttl_seconds(-2) == 0.0
    assert _ttl_seconds(-1) == 0.0
    assert _ttl_seconds(0) == 0.0
    assert _ttl_seconds(1_500) == 1.5
