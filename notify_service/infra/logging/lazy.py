"""Lazily evaluated log messages.

Hot paths (repository calls, rate limit checks) log at DEBUG with a lambda,
so the f-string is only built when DEBUG is actually enabled:

    _lazy.debug(lambda: f"store.update_status: {nid} -> {status}")
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any


class LazyLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that calls callable messages and args only when the level is enabled."""

    def log(self, level: int, msg: Any, *args: Any, **kwargs: Any) -> None:
        if not self.isEnabledFor(level):
            return
        if callable(msg):
            msg = msg()
        if args:
            args = tuple(arg() if callable(arg) else arg for arg in args)
        super().log(level, msg, *args, **kwargs)

    def debug(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("exc_info", True)
        self.log(logging.ERROR, msg, *args, **kwargs)


def get_lazy_logger(name: str, **context: Any) -> LazyLoggerAdapter:
    """Get a lazy-evaluating logger, optionally with bound context.

    Example:
        logger = get_lazy_logger("repository.notifications")
        logger.debug(lambda: f"rows: {len(rows)}")
    """
    return LazyLoggerAdapter(logging.getLogger(name), context or {})


__all__ = ["LazyLoggerAdapter", "get_lazy_logger"]
