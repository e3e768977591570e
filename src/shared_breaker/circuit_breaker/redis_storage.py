"""Redis-backed breaker storage shared by every process using the same server.

Each operation is a single ``MULTI``/``EXEC`` transaction. Expiry-if-none uses
``PEXPIRE ... NX`` and therefore requires Redis 7.0 or newer.
"""

from redis.asyncio import Redis

from shared_breaker.circuit_breaker.keys import BreakerKeys
from shared_breaker.circuit_breaker.state import (
    BreakerSnapshot,
    CircuitState,
    StateReading,
    WindowCounts,
    parse_state,
)
from shared_breaker.circuit_breaker.storage import AbstractBreakerStorage


def _to_millis(seconds: float) -> int:
    return max(int(seconds * 1000), 1)


def _ttl_seconds(pttl: int) -> float:
    # -2: key missing, -1: key without expiry
    if pttl <= 0:
        return 0.0
    return pttl / 1000


def _to_int(raw: str | bytes | None) -> int:
    return 0 if raw is None else int(raw)


class RedisBreakerStorage(AbstractBreakerStorage):
    """Breaker storage on top of a caller-owned ``redis.asyncio.Redis`` client.

    The client's connection pool is borrowed for the duration of one
    transaction and never held across the protected call.
    """

    def __init__(self, client: Redis) -> None:
        """Bind the storage to a Redis client.

        Args:
            client: Async Redis client. Its lifecycle stays with the caller.
        """
        self._client = client

    async def init(self, keys: BreakerKeys) -> StateReading:
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.setnx(keys.state, CircuitState.CLOSED.value)
            pipe.get(keys.state)
            pipe.pttl(keys.open_marker)
            _, state, pttl = await pipe.execute()
        return StateReading(state=parse_state(state), open_ttl=_ttl_seconds(pttl))

    async def pre_run(self, keys: BreakerKeys, *, interval: float) -> WindowCounts:
        interval_ms = _to_millis(interval)
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.incr(keys.request_count)
            pipe.setnx(keys.error_count, 0)
            pipe.pexpire(keys.request_count, interval_ms, nx=True)
            pipe.pexpire(keys.error_count, interval_ms, nx=True)
            pipe.get(keys.request_count)
            pipe.get(keys.error_count)
            results = await pipe.execute()
        return WindowCounts(
            request_count=_to_int(results[4]),
            error_count=_to_int(results[5]),
        )

    async def flip_open(self, keys: BreakerKeys, *, sleep_window: float) -> None:
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.set(keys.state, CircuitState.OPEN.value)
            pipe.set(keys.open_marker, 1, px=_to_millis(sleep_window))
            await pipe.execute()

    async def flip_close(self, keys: BreakerKeys) -> None:
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.set(keys.state, CircuitState.CLOSED.value)
            pipe.unlink(keys.open_marker)
            await pipe.execute()

    async def record_error(self, keys: BreakerKeys, *, interval: float) -> None:
        interval_ms = _to_millis(interval)
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.setnx(keys.request_count, 1)
            pipe.incr(keys.error_count)
            pipe.pexpire(keys.request_count, interval_ms, nx=True)
            pipe.pexpire(keys.error_count, interval_ms, nx=True)
            await pipe.execute()

    async def snapshot(self, keys: BreakerKeys, *, name: str) -> BreakerSnapshot:
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.get(keys.state)
            pipe.get(keys.request_count)
            pipe.get(keys.error_count)
            pipe.pttl(keys.open_marker)
            state, request_count, error_count, pttl = await pipe.execute()
        return BreakerSnapshot(
            name=name,
            state=parse_state(state),
            request_count=_to_int(request_count),
            error_count=_to_int(error_count),
            open_ttl=_ttl_seconds(pttl),
        )

    async def reset(self, keys: BreakerKeys) -> None:
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.delete(*keys.all())
            await pipe.execute()
