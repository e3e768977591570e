"""Circuit breaker state primitives."""

from dataclasses import dataclass
from enum import StrEnum


class CircuitState(StrEnum):
    """Circuit breaker state values.

    Only ``CLOSED`` and ``OPEN`` are ever written to storage.
    """

    CLOSED = "CLOSED"
    OPEN = "OPENED"
    HALF_OPEN = "HALF_OPENED"


def parse_state(raw: str | bytes | None) -> CircuitState:
    """Read a stored state value. Anything but ``OPENED`` is ``CLOSED``."""
    if isinstance(raw, bytes):
        raw = raw.decode()
    if raw == CircuitState.OPEN.value:
        return CircuitState.OPEN
    return CircuitState.CLOSED


@dataclass(frozen=True, slots=True)
class StateReading:
    """Result of the init transaction.

    Attributes:
        state: Persisted state after the lazy ``CLOSED`` default is applied.
        open_ttl: Seconds left on the open-state marker, ``0.0`` when absent.
    """

    state: CircuitState
    open_ttl: float


@dataclass(frozen=True, slots=True)
class WindowCounts:
    """Rolling-window counters read back by the pre-run transaction."""

    request_count: int
    error_count: int


@dataclass(frozen=True)
class BreakerSnapshot:
    """Point-in-time view of one breaker's stored keys.

    Attributes:
        name: Breaker name as passed by the caller.
        state: Persisted breaker state.
        request_count: Requests in the current window, ``0`` when expired.
        error_count: Failures in the current window, ``0`` when expired.
        open_ttl: Seconds left on the open-state marker, ``0.0`` when absent.
    """

    name: str
    state: CircuitState
    request_count: int
    error_count: int
    open_ttl: float
