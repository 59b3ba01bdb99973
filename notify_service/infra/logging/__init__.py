"""Logging infrastructure.

Basic usage:
    import logging

    from notify_service.infra.logging import get_lazy_logger, set_log_context

    logger = logging.getLogger(__name__)
    set_log_context(correlation_id="abc-123")
    logger.info("Accepted notification")  # record carries correlation_id

    lazy_logger = get_lazy_logger(__name__)
    lazy_logger.debug(lambda: f"payload: {payload!r}")  # built only at DEBUG
"""

from notify_service.infra.logging.config import (
    complete,
    configure_logging,
    setup_logging,
    shutdown,
)
from notify_service.infra.logging.context import (
    ContextBoundLogger,
    ContextInjectingFilter,
    clear_log_context,
    get_log_context,
    get_logger,
    log_context,
    remove_from_log_context,
    set_log_context,
)
from notify_service.infra.logging.formatters import JSONFormatter
from notify_service.infra.logging.lazy import LazyLoggerAdapter, get_lazy_logger

__all__ = [
    "ContextBoundLogger",
    "ContextInjectingFilter",
    "JSONFormatter",
    "LazyLoggerAdapter",
    "clear_log_context",
    "complete",
    "configure_logging",
    "get_lazy_logger",
    "get_log_context",
    "get_logger",
    "log_context",
    "remove_from_log_context",
    "set_log_context",
    "setup_logging",
    "shutdown",
]
