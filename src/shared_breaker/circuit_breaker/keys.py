"""Store key layout for one named breaker."""

from dataclasses import dataclass

from slugify import slugify

KEY_NAMESPACE = "circuit_breaker"


@dataclass(frozen=True, slots=True)
class BreakerKeys:
    """The four store keys holding all state for one breaker.

    Attributes:
        namespace: Shared prefix of every key, ``circuit_breaker:<slug>``.
        state: Persisted ``CLOSED``/``OPENED`` value.
        request_count: Requests seen in the current rolling window.
        error_count: Failures seen in the current rolling window.
        open_marker: Cooldown marker; its remaining TTL is the sleep window left.
    """

    namespace: str
    state: str
    request_count: str
    error_count: str
    open_marker: str

    def all(self) -> tuple[str, str, str, str]:
        return (self.state, self.request_count, self.error_count, self.open_marker)


def keys_for(name: str) -> BreakerKeys:
    """Return the store keys for breaker ``name``.

    Names that slugify to the same value share one breaker.
    """
    namespace = f"{KEY_NAMESPACE}:{slugify(name).strip()}"
    return BreakerKeys(
        namespace=namespace,
        state=f"{namespace}:current_state",
        request_count=f"{namespace}:request_count",
        error_count=f"{namespace}:error_count",
        open_marker=f"{namespace}:open_state_ttl",
    )
