"""Tests for JSON formatting, log context and lazy loggers."""

from __future__ import annotations

import json
import logging
import sys

from notify_service.infra.logging import (
    ContextInjectingFilter,
    JSONFormatter,
    get_lazy_logger,
    get_log_context,
    get_logger,
    log_context,
    set_log_context,
)
from notify_service.infra.logging.context import clear_log_context


def _record(msg: str = "Notification delivered", **extra) -> logging.LogRecord:
    record = logging.LogRecord("notify_service.test", logging.INFO, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_one_object_per_line(self):
        formatter = JSONFormatter(static={"service": "notify-service"})

        line = formatter.format(_record(notification_id="n-1"))

        data = json.loads(line)
        assert "\n" not in line
        assert data["level"] == "INFO"
        assert data["message"] == "Notification delivered"
        assert data["service"] == "notify-service"
        assert data["notification_id"] == "n-1"
        assert data["timestamp"].endswith("Z")

    def test_exception_is_single_line(self):
        formatter = JSONFormatter()
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord(
                "t", logging.ERROR, __file__, 1, "failed", (), sys.exc_info()
            )

        line = formatter.format(record)

        assert "\n" not in line
        assert "ValueError: boom" in json.loads(line)["exception"]


class TestLogContext:
    def test_filter_injects_context(self):
        clear_log_context()
        with log_context(correlation_id="abc-123"):
            record = _record()
            ContextInjectingFilter().filter(record)
        assert record.correlation_id == "abc-123"
        assert get_log_context() == {}

    def test_explicit_extra_wins(self):
        clear_log_context()
        set_log_context(correlation_id="ctx")
        record = _record(correlation_id="explicit")

        ContextInjectingFilter().filter(record)

        assert record.correlation_id == "explicit"
        clear_log_context()


class TestLoggers:
    def test_lazy_message_not_built_when_disabled(self):
        logger = get_lazy_logger("notify_service.test.lazy")
        logger.logger.setLevel(logging.INFO)
        calls: list[int] = []

        logger.debug(lambda: calls.append(1) or "expensive")

        assert calls == []

    def test_bound_logger_merges_extra(self, caplog):
        logger = get_logger("notify_service.test.bound", channel="email").bind(notification_id="n-1")

        with caplog.at_level(logging.INFO, logger="notify_service.test.bound"):
            logger.info("Delivered", extra={"outcome": "sent"})

        record = caplog.records[-1]
        assert record.channel == "email"
        assert record.notification_id == "n-1"
        assert record.outcome == "sent"
