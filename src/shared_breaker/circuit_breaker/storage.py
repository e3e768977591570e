"""State storage for circuit breakers.

Storage is intentionally decoupled from breaker logic. Every method is one
atomic batch against the backing store: no other client may observe a partial
subset of its writes. ``RedisBreakerStorage`` provides this across processes;
``InMemoryBreakerStorage`` provides it within one process.

Important: storage persists only ``CLOSED`` and ``OPEN``. ``HALF_OPEN`` is
derived by the breaker from an ``OPEN`` state with an expired open-state marker.
"""

import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass

from shared_breaker.circuit_breaker.keys import BreakerKeys
from shared_breaker.circuit_breaker.state import (
    BreakerSnapshot,
    CircuitState,
    StateReading,
    WindowCounts,
    parse_state,
)


def _monotonic() -> float:
    return time.monotonic()


class AbstractBreakerStorage(ABC):
    """Abstract breaker storage interface.

    ``interval`` and ``sleep_window`` are expressed in seconds.
    """

    @abstractmethod
    async def init(self, keys: BreakerKeys) -> StateReading:
        """Default the state to ``CLOSED`` if absent; read state and marker TTL."""

    @abstractmethod
    async def pre_run(self, keys: BreakerKeys, *, interval: float) -> WindowCounts:
        """Count one request, ensure both counters expire, read both back.

        Counter expiry is only set when the key has none, so requests inside a
        window never push the window's end further out.
        """

    @abstractmethod
    async def flip_open(self, keys: BreakerKeys, *, sleep_window: float) -> None:
        """Persist ``OPEN`` and (re)start the open-state marker for ``sleep_window``."""

    @abstractmethod
    async def flip_close(self, keys: BreakerKeys) -> None:
        """Persist ``CLOSED`` and delete the open-state marker."""

    @abstractmethod
    async def record_error(self, keys: BreakerKeys, *, interval: float) -> None:
        """Count one failure in the current window."""

    @abstractmethod
    async def snapshot(self, keys: BreakerKeys, *, name: str) -> BreakerSnapshot:
        """Read all four keys without modifying them."""

    @abstractmethod
    async def reset(self, keys: BreakerKeys) -> None:
        """Delete all four keys."""


@dataclass(slots=True)
class _Entry:
    value: str
    expires_at: float | None = None


class InMemoryBreakerStorage(AbstractBreakerStorage):
    """Single-process storage with lazily expiring keys.

    Each operation runs under one lock so it is atomic with respect to every
    other operation on this instance, from any task or thread.
    """

    def __init__(self) -> None:
        """Initialize an empty keyspace."""
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def _live(self, key: str, now: float) -> _Entry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and entry.expires_at <= now:
            del self._entries[key]
            return None
        return entry

    def _get_int(self, key: str, now: float) -> int:
        entry = self._live(key, now)
        return 0 if entry is None else int(entry.value)

    def _setnx(self, key: str, value: str, now: float) -> None:
        if self._live(key, now) is None:
            self._entries[key] = _Entry(value)

    def _incr(self, key: str, now: float) -> int:
        entry = self._live(key, now)
        if entry is None:
            entry = self._entries[key] = _Entry("0")
        entry.value = str(int(entry.value) + 1)
        return int(entry.value)

    def _expire_nx(self, key: str, seconds: float, now: float) -> None:
        entry = self._live(key, now)
        if entry is not None and entry.expires_at is None:
            entry.expires_at = now + seconds

    def _ttl(self, key: str, now: float) -> float:
        entry = self._live(key, now)
        if entry is None or entry.expires_at is None:
            return 0.0
        return max(entry.expires_at - now, 0.0)

    async def init(self, keys: BreakerKeys) -> StateReading:
        with self._lock:
            now = _monotonic()
            self._setnx(keys.state, CircuitState.CLOSED.value, now)
            state_entry = self._live(keys.state, now)
            assert state_entry is not None
            return StateReading(
                state=parse_state(state_entry.value),
                open_ttl=self._ttl(keys.open_marker, now),
            )

    async def pre_run(self, keys: BreakerKeys, *, interval: float) -> WindowCounts:
        with self._lock:
            now = _monotonic()
            self._incr(keys.request_count, now)
            self._setnx(keys.error_count, "0", now)
            self._expire_nx(keys.request_count, interval, now)
            self._expire_nx(keys.error_count, interval, now)
            return WindowCounts(
                request_count=self._get_int(keys.request_count, now),
                error_count=self._get_int(keys.error_count, now),
            )

    async def flip_open(self, keys: BreakerKeys, *, sleep_window: float) -> None:
        with self._lock:
            now = _monotonic()
            self._entries[keys.state] = _Entry(CircuitState.OPEN.value)
            self._entries[keys.open_marker] = _Entry("1", expires_at=now + sleep_window)

    async def flip_close(self, keys: BreakerKeys) -> None:
        with self._lock:
            self._entries[keys.state] = _Entry(CircuitState.CLOSED.value)
            self._entries.pop(keys.open_marker, None)

    async def record_error(self, keys: BreakerKeys, *, interval: float) -> None:
        with self._lock:
            now = _monotonic()
            self._setnx(keys.request_count, "1", now)
            self._incr(keys.error_count, now)
            self._expire_nx(keys.request_count, interval, now)
            self._expire_nx(keys.error_count, interval, now)

    async def snapshot(self, keys: BreakerKeys, *, name: str) -> BreakerSnapshot:
        with self._lock:
            now = _monotonic()
            state_entry = self._live(keys.state, now)
            return BreakerSnapshot(
                name=name,
                state=parse_state(None if state_entry is None else state_entry.value),
                request_count=self._get_int(keys.request_count, now),
                error_count=self._get_int(keys.error_count, now),
                open_ttl=self._ttl(keys.open_marker, now),
            )

    async def reset(self, keys: BreakerKeys) -> None:
        with self._lock:
            for key in keys.all():
                self._entries.pop(key, None)
