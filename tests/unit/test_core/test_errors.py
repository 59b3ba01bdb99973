"""Tests for domain errors and their HTTP mapping."""

from __future__ import annotations

import pytest

from notify_service.core.exceptions import RateLimitException
from notify_service.features.notifications.errors import (
    ChannelUnavailable,
    DatabaseError,
    InvalidPayload,
    NotificationNotFound,
    RateLimitExceeded,
    Result,
    to_http_exception,
)


@pytest.mark.parametrize(
    ("error", "status_code", "code"),
    [
        (NotificationNotFound("n-1"), 404, "NOT_FOUND"),
        (InvalidPayload("bad"), 422, "INVALID_PAYLOAD"),
        (RateLimitExceeded(12), 429, "RATE_LIMIT_EXCEEDED"),
        (ChannelUnavailable("email", "down"), 503, "CHANNEL_UNAVAILABLE"),
        (DatabaseError("create", "deadlock detected"), 500, "DATABASE_ERROR"),
    ],
)
def test_http_mapping(error, status_code, code):
    exc = to_http_exception(error)

    assert error.status_code == status_code
    assert exc.status_code == status_code
    assert exc.code == code


def test_rate_limit_carries_retry_after():
    exc = to_http_exception(RateLimitExceeded(12))

    assert isinstance(exc, RateLimitException)
    assert exc.extra["retry_after"] == 12


def test_database_error_does_not_leak_cause():
    exc = to_http_exception(DatabaseError("create", "password authentication failed"))

    assert "password" not in exc.detail


def test_result_helpers():
    ok = Result.ok(3)
    failed = Result.fail(InvalidPayload("bad"))

    assert ok.is_ok and ok.unwrap() == 3
    assert not failed.is_ok
    assert failed.error.message == "bad"
