"""Core circuit breaker implementation."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import ParamSpec, TypeVar

from shared_breaker.circuit_breaker.exceptions import (
    BreakerStorageError,
    CircuitOpenError,
)
from shared_breaker.circuit_breaker.keys import BreakerKeys, keys_for
from shared_breaker.circuit_breaker.state import (
    BreakerSnapshot,
    CircuitState,
    WindowCounts,
)
from shared_breaker.circuit_breaker.storage import AbstractBreakerStorage
from shared_breaker.logging import (
    StructuredLogger,
    breaker_log_context,
    get_breaker_logger,
    log_exception,
    log_info,
)

T = TypeVar("T")
P = ParamSpec("P")


@dataclass(frozen=True, slots=True)
class CircuitBreakerConfig:
    """Circuit breaker tuning values, fixed for the lifetime of a breaker.

    Attributes:
        request_count_threshold: Minimum requests in the current window before
            the circuit may open.
        error_percent_threshold: Whole error percentage (0-100) at or above
            which the circuit opens.
        sleep_window: Seconds the circuit stays ``OPEN`` before a trial call is let
            through.
        interval: Seconds in one rolling counting window.
    """

    request_count_threshold: int = 20
    error_percent_threshold: int = 50
    sleep_window: float = 5.0
    interval: float = 10.0

    def __post_init__(self) -> None:
        if self.request_count_threshold < 1:
            raise ValueError("request_count_threshold must be >= 1")
        if isinstance(self.error_percent_threshold, bool) or not isinstance(
            self.error_percent_threshold, int
        ):
            raise ValueError("error_percent_threshold must be an integer")
        if not 0 <= self.error_percent_threshold <= 100:
            raise ValueError("error_percent_threshold must be between 0 and 100")
        if self.sleep_window <= 0:
            raise ValueError("sleep_window must be > 0")
        if self.interval <= 0:
            raise ValueError("interval must be > 0")


class CircuitBreaker:
    """Guard async calls to a dependency using breaker state held in storage.

    One instance may serve any number of breaker names; each name has its own
    independent state in storage. Instances in different processes pointing at
    the same Redis server share state per name.

    Half-open trials are best-effort: when the cooldown has elapsed, every
    concurrent caller that observes it runs the protected call as a trial and
    the last outcome written wins.
    """

    def __init__(
        self,
        storage: AbstractBreakerStorage,
        *,
        config: CircuitBreakerConfig | None = None,
        logger: StructuredLogger | None = None,
    ) -> None:
        """Build a circuit breaker.

        Args:
            storage: Shared state storage backend.
            config: Breaker tuning. Defaults to ``CircuitBreakerConfig()``.
            logger: Structured logger for transitions and bookkeeping failures.
        """
        self.config = CircuitBreakerConfig() if config is None else config
        self._storage = storage
        self._logger: StructuredLogger = (
            get_breaker_logger() if logger is None else logger
        )

    def _should_open(self, counts: WindowCounts) -> bool:
        # the failure being handled is not yet recorded; request_count >= 1
        error_percent = (counts.error_count + 1) * 100 // counts.request_count
        return (
            counts.request_count >= self.config.request_count_threshold
            and error_percent >= self.config.error_percent_threshold
        )

    async def _bookkeep(
        self,
        name: str,
        operation: str,
        write: Callable[[], Awaitable[None]],
    ) -> bool:
        try:
            await write()
        except Exception:
            log_exception(
                self._logger,
                "circuit_breaker.bookkeeping_failed",
                breaker=name,
                operation=operation,
            )
            return False
        return True

    async def _open(self, name: str, keys: BreakerKeys, old: CircuitState) -> None:
        sleep_window = self.config.sleep_window
        opened = await self._bookkeep(
            name,
            "flip_open",
            lambda: self._storage.flip_open(keys, sleep_window=sleep_window),
        )
        if opened:
            log_info(
                self._logger,
                "circuit_breaker.opened",
                breaker=name,
                previous_state=old.value,
                sleep_window=sleep_window,
            )

    async def _on_failure(
        self,
        name: str,
        keys: BreakerKeys,
        state: CircuitState,
        counts: WindowCounts,
    ) -> None:
        if state == CircuitState.HALF_OPEN or self._should_open(counts):
            await self._open(name, keys, state)
            return
        await self._bookkeep(
            name,
            "record_error",
            lambda: self._storage.record_error(keys, interval=self.config.interval),
        )

    async def _on_success(
        self, name: str, keys: BreakerKeys, state: CircuitState
    ) -> None:
        if state != CircuitState.HALF_OPEN:
            return
        closed = await self._bookkeep(
            name, "flip_close", lambda: self._storage.flip_close(keys)
        )
        if closed:
            log_info(self._logger, "circuit_breaker.closed", breaker=name)

    async def call(
        self,
        name: str,
        func: Callable[P, Awaitable[T]],
        *args: P.args,
        **kwargs: P.kwargs,
    ) -> T:
        """Invoke an async callable under protection of breaker ``name``.

        Cancellation of the surrounding task (including an enclosing
        ``asyncio.timeout``) reaches ``func`` unchanged and is counted as a
        failure before it propagates.

        Args:
            name: Breaker name; slugified into storage keys.
            func: Dangerous async callable to execute.
            *args: Positional arguments forwarded to ``func``.
            **kwargs: Keyword arguments forwarded to ``func``.

        Returns:
            The result of ``func`` when allowed and successful.

        Raises:
            CircuitOpenError: When the circuit is open and the call is rejected.
            BreakerStorageError: When breaker state cannot be read or counted
                before running ``func``.
            Exception: The original exception from ``func`` when it fails.
        """
        keys = keys_for(name)

        try:
            reading = await self._storage.init(keys)
        except Exception as exc:
            raise BreakerStorageError(name, "init") from exc

        state = reading.state
        if state == CircuitState.OPEN:
            if reading.open_ttl > 0:
                raise CircuitOpenError(name, retry_after=reading.open_ttl)
            state = CircuitState.HALF_OPEN

        try:
            counts = await self._storage.pre_run(keys, interval=self.config.interval)
        except Exception as exc:
            raise BreakerStorageError(name, "pre_run") from exc

        try:
            with breaker_log_context(name):
                result = await func(*args, **kwargs)
        except (Exception, asyncio.CancelledError):
            await self._on_failure(name, keys, state, counts)
            raise

        await self._on_success(name, keys, state)
        return result

    async def get_state(self, name: str) -> BreakerSnapshot:
        """Return the stored state of breaker ``name`` without modifying it."""
        return await self._storage.snapshot(keys_for(name), name=name)

    async def reset(self, name: str) -> None:
        """Delete all stored state for breaker ``name``."""
        await self._storage.reset(keys_for(name))
