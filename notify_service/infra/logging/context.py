"""Contextvars-backed log context.

Fields stored here (correlation id, notification id, job id, ...) are copied
onto every LogRecord by ``ContextInjectingFilter``, so request handlers and
queue tasks never have to pass them to each logging call. Each asyncio task
sees its own copy of the context.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})


def set_log_context(**kwargs: Any) -> None:
    """Add fields to the log context of the current task.

    Example:
        set_log_context(correlation_id="abc-123", user_id="u-1")
        logger.info("Accepted notification")  # record carries both fields
    """
    current = _log_context.get().copy()
    current.update(kwargs)
    _log_context.set(current)


def get_log_context() -> dict[str, Any]:
    """Return a copy of the current log context."""
    return _log_context.get().copy()


def clear_log_context() -> None:
    """Drop every field from the current log context."""
    _log_context.set({})


def remove_from_log_context(*keys: str) -> None:
    current = _log_context.get().copy()
    for key in keys:
        current.pop(key, None)
    _log_context.set(current)


@contextmanager
def log_context(**kwargs: Any) -> Iterator[dict[str, Any]]:
    """Temporarily extend the log context, restoring the previous one on exit.

    Example:
        with log_context(job_id=message.task_id):
            await deliver(...)
    """
    merged = {**_log_context.get(), **kwargs}
    token = _log_context.set(merged)
    try:
        yield merged
    finally:
        _log_context.reset(token)


class ContextInjectingFilter(logging.Filter):
    """Copy log context fields onto each record.

    Installed on the root logger by ``configure_logging`` so JSONFormatter
    sees the fields as regular record attributes. Attributes already present
    on the record (for example from ``extra=``) win.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


class ContextBoundLogger(logging.LoggerAdapter):
    """Logger adapter carrying a fixed set of extra fields.

    Example:
        logger = ContextBoundLogger(logging.getLogger(__name__), channel="email")
        logger.bind(notification_id=nid).info("Delivered")
    """

    def __init__(self, logger: logging.Logger, **context: Any) -> None:
        super().__init__(logger, context)

    def bind(self, **context: Any) -> ContextBoundLogger:
        """Return a new adapter with ``context`` merged into the bound fields."""
        return ContextBoundLogger(self.logger, **{**self.extra, **context})

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        extra = kwargs.get("extra", {})
        kwargs["extra"] = {**self.extra, **extra}
        return msg, kwargs


def get_logger(name: str, **context: Any) -> ContextBoundLogger:
    """Get a logger with ``context`` bound to every message it emits."""
    return ContextBoundLogger(logging.getLogger(name), **context)
