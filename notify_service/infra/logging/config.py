"""Logging configuration.

- dictConfig sets root level and the context filter
- QueueHandler on root, QueueListener owning the real handlers, so request
  handlers and workers never block on stderr/file I/O
- JSONL output for machine parsing, plain text for local development
"""

from __future__ import annotations

import atexit
import logging
import logging.config
import time
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path
from queue import Queue
from typing import TYPE_CHECKING, Any

from notify_service.infra.logging.formatters import JSONFormatter

if TYPE_CHECKING:
    from notify_service.core.settings.logs import LoggingSettings

_log_queue: Queue[logging.LogRecord] | None = None
_listener: QueueListener | None = None
_LOGGING_INITIALIZED = False

logger = logging.getLogger(__name__)

_TEXT_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def complete(max_wait: float = 5.0) -> None:
    """Block until queued records are written (at most ``max_wait`` seconds)."""
    if _log_queue is None or _listener is None:
        return

    start = time.monotonic()
    while not _log_queue.empty() and (time.monotonic() - start) < max_wait:
        time.sleep(0.01)


def shutdown() -> None:
    """Flush pending records and stop the QueueListener. Registered with atexit."""
    global _log_queue, _listener

    if _listener is not None:
        complete()
        _listener.stop()
        _listener = None
    _log_queue = None


def setup_logging(
    log_settings: LoggingSettings | None = None,
    *,
    force: bool = False,
    **configure_kwargs: Any,
) -> None:
    """Configure logging once per process.

    Called by the API lifespan, the worker and the CLI. Later calls are
    no-ops unless ``force`` is set.

    Args:
        log_settings: Settings to use; loaded via get_logging_settings() when omitted.
        force: Reconfigure even if logging was already initialized.
        **configure_kwargs: Overrides passed through to configure_logging().
    """
    global _LOGGING_INITIALIZED

    if _LOGGING_INITIALIZED and not force:
        return

    if log_settings is None:
        from notify_service.core.settings import get_logging_settings

        log_settings = get_logging_settings()

    configure_logging(**{**log_settings.to_logging_kwargs(), **configure_kwargs})
    _LOGGING_INITIALIZED = True


def configure_logging(
    log_level: str = "INFO",
    console_level: str | None = None,
    file_level: str | None = None,
    file_path: str | Path | None = None,
    json_logs: bool = True,
    console_enabled: bool = True,
    include_context: bool = True,
    capture_warnings: bool = True,
    include_function_name: bool = False,
    file_max_bytes: int = 10 * 1024 * 1024,
    file_backup_count: int = 5,
    service_name: str = "notify-service",
    **kwargs: Any,
) -> None:
    """Configure the root logger with dictConfig and the queue pattern.

    Example:
        from notify_service.core.settings import get_logging_settings

        configure_logging(**get_logging_settings().to_logging_kwargs())
    """
    if kwargs:
        logger.debug("Unused logging kwargs supplied: %s", ", ".join(sorted(kwargs)))

    if capture_warnings:
        logging.captureWarnings(True)

    shutdown()

    path = Path(file_path) if file_path else None
    if path:
        path.parent.mkdir(parents=True, exist_ok=True)

    filters: dict[str, Any] = {}
    if include_context:
        filters["context"] = {
            "()": "notify_service.infra.logging.context.ContextInjectingFilter",
        }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": filters,
            "root": {
                "level": log_level.upper(),
                "handlers": [],
                "filters": list(filters),
            },
        }
    )

    handlers: list[logging.Handler] = []
    if console_enabled:
        console_handler = logging.StreamHandler()
        console_handler.setLevel((console_level or log_level).upper())
        console_handler.setFormatter(
            _build_formatter(json_logs, service_name, include_function_name)
        )
        handlers.append(console_handler)

    if path:
        file_handler = RotatingFileHandler(
            path,
            maxBytes=file_max_bytes,
            backupCount=file_backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel((file_level or log_level).upper())
        file_handler.setFormatter(
            _build_formatter(json_logs, service_name, include_function_name)
        )
        handlers.append(file_handler)

    _setup_queue_logging(handlers)


def _build_formatter(
    json_logs: bool, service_name: str, include_function_name: bool
) -> logging.Formatter:
    if json_logs:
        return JSONFormatter(
            static={"service": service_name},
            include_function_name=include_function_name,
        )
    return logging.Formatter(fmt=_TEXT_FORMAT, datefmt=_DATE_FORMAT)


def _setup_queue_logging(handlers: list[logging.Handler]) -> None:
    global _log_queue, _listener

    if not handlers:
        return

    _log_queue = Queue()
    _listener = QueueListener(_log_queue, *handlers, respect_handler_level=True)
    _listener.start()
    atexit.register(shutdown)

    logging.getLogger().addHandler(QueueHandler(_log_queue))
