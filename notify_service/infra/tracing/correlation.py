"""Correlation id scoped to one request or one queued job.

The id is set at the HTTP boundary (from ``X-Correlation-ID`` or freshly
generated), copied into the delivery job payload, and re-established by the
worker when it runs the job. Anything in between reads it with
``get_correlation_id()``.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

from notify_service.infra.logging.context import log_context

CORRELATION_HEADER = "x-correlation-id"

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def new_correlation_id() -> str:
    return str(uuid.uuid4())


def get_correlation_id() -> str | None:
    """Current correlation id, or None outside any scope."""
    return _correlation_id.get()


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """Bind a correlation id for the duration of the block.

    A new UUID4 is generated when ``correlation_id`` is empty. The id is also
    placed in the log context so every record emitted inside carries it.

    Example:
        with correlation_scope(job.correlation_id) as cid:
            await service.deliver(notification)
    """
    value = correlation_id or new_correlation_id()
    token = _correlation_id.set(value)
    try:
        with log_context(correlation_id=value):
            yield value
    finally:
        _correlation_id.reset(token)


__all__ = [
    "CORRELATION_HEADER",
    "correlation_scope",
    "get_correlation_id",
    "new_correlation_id",
]
