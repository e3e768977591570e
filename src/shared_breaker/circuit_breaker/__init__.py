"""Async circuit breaker with state shared through a key-value store.

Key behavior notes:
  - Storage persists only ``CLOSED`` and ``OPENED``. ``HALF_OPEN`` is derived at
    call time from an open circuit whose open-state marker has expired.
  - Request and error counts accumulate in a rolling window that expires
    ``interval`` seconds after its first write.
  - Half-open trials are best-effort: concurrent callers may all try at once,
    and the last outcome written to storage wins.
  - Storage failures before the protected call surface as
    ``BreakerStorageError``. Storage failures after it are logged and never
    replace the protected call's own outcome.
"""

from shared_breaker.circuit_breaker.breaker import CircuitBreaker, CircuitBreakerConfig
from shared_breaker.circuit_breaker.exceptions import (
    BreakerStorageError,
    CircuitBreakerError,
    CircuitOpenError,
)
from shared_breaker.circuit_breaker.keys import BreakerKeys, keys_for
from shared_breaker.circuit_breaker.redis_storage import RedisBreakerStorage
from shared_breaker.circuit_breaker.state import BreakerSnapshot, CircuitState
from shared_breaker.circuit_breaker.storage import (
    AbstractBreakerStorage,
    InMemoryBreakerStorage,
)

__all__ = [
    "AbstractBreakerStorage",
    "BreakerKeys",
    "BreakerSnapshot",
    "BreakerStorageError",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerError",
    "CircuitOpenError",
    "CircuitState",
    "InMemoryBreakerStorage",
    "RedisBreakerStorage",
    "keys_for",
]
