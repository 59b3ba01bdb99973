"""Durable delivery queue built on taskiq."""

from notify_service.infra.tasks.broker import (
    QueueUnavailableError,
    broker,
    start_taskiq,
    stop_taskiq,
)

__all__ = ["QueueUnavailableError", "broker", "start_taskiq", "stop_taskiq"]
