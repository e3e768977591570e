"""Circuit breaker exceptions.

Callers can distinguish between:
  - A call being rejected because the circuit is open.
  - A call aborted because breaker state could not be read from storage.

Any other exception raised through ``CircuitBreaker.call`` comes from the
protected callable itself.
"""


class CircuitBreakerError(Exception):
    """Base exception for the circuit breaker package."""


class CircuitOpenError(CircuitBreakerError):
    """Raised when a call is rejected because the circuit is open.

    Attributes:
        breaker_name: Name of the breaker rejecting the call.
        retry_after: Seconds until a half-open trial call may be attempted.
    """

    def __init__(self, breaker_name: str, retry_after: float) -> None:
        """Initialize a circuit-open exception payload.

        Args:
            breaker_name: Breaker rejecting the call.
            retry_after: Seconds until the next half-open trial window opens.
        """
        self.breaker_name = breaker_name
        self.retry_after = retry_after
        super().__init__(f"circuit_open: {breaker_name} retry_after={retry_after:g}s")


class BreakerStorageError(CircuitBreakerError):
    """Raised when breaker state storage fails before the protected call runs.

    The underlying storage exception is available as ``__cause__``.

    Attributes:
        breaker_name: Name of the breaker whose storage access failed.
        operation: Storage transaction that failed (``init`` or ``pre_run``).
    """

    def __init__(self, breaker_name: str, operation: str) -> None:
        self.breaker_name = breaker_name
        self.operation = operation
        super().__init__(f"storage_unavailable: {breaker_name} operation={operation}")
