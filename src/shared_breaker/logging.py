"""Structured logging helpers for breaker events.

The library never configures handlers or renderers; applications own that.
Events go through either a structlog-style logger (keyword fields) or a
stdlib logger (fields passed as ``extra``).
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Literal, Protocol

import structlog

BREAKER_LOGGER_NAME = "shared_breaker.circuit_breaker"

_StdlibLogger = logging.Logger | logging.LoggerAdapter[logging.Logger]


class StructuredLogger(Protocol):
    """Logger surface the breaker needs: transitions and bookkeeping failures."""

    def info(self, event: str, **kwargs: object) -> None:
        """Log an informational event."""

    def exception(self, event: str, **kwargs: object) -> None:
        """Log an exception event."""


def get_breaker_logger() -> structlog.stdlib.BoundLogger:
    """Return the default logger used by ``CircuitBreaker``."""
    return structlog.stdlib.get_logger(BREAKER_LOGGER_NAME)


@contextmanager
def breaker_log_context(name: str) -> Iterator[None]:
    """Bind ``breaker=name`` into structlog context vars for the enclosed block.

    Anything logged through structlog inside the protected call, with
    ``merge_contextvars`` in the processor chain, carries the breaker name.
    """
    with structlog.contextvars.bound_contextvars(breaker=name):
        yield


def _log(
    logger: StructuredLogger | _StdlibLogger,
    level: Literal["info", "exception"],
    event: str,
    **fields: object,
) -> None:
    method = getattr(logger, level)
    if isinstance(logger, (logging.Logger, logging.LoggerAdapter)):
        method(event, extra=fields)
        return
    method(event, **fields)


def log_info(
    logger: StructuredLogger | _StdlibLogger,
    event: str,
    **fields: object,
) -> None:
    """Log an informational event."""
    _log(logger, "info", event, **fields)


def log_exception(
    logger: StructuredLogger | _StdlibLogger,
    event: str,
    **fields: object,
) -> None:
    """Log an exception event. Call from inside an ``except`` block."""
    _log(logger, "exception", event, **fields)
