"""Tests for RateLimitStateTracker and client_key."""

from starlette.requests import Request

from notify_service.infra.metrics.prometheus import rate_limit_protection_status
from notify_service.infra.ratelimit import (
    ANONYMOUS_KEY,
    RateLimitProtectionStatus,
    RateLimitStateTracker,
    client_key,
)


class TestRateLimitStateTracker:
    """Validate state transitions and the protection gauge."""

    def test_initial_state_active(self):
        tracker = RateLimitStateTracker()
        state = tracker.get_state()
        assert state.status == RateLimitProtectionStatus.ACTIVE
        assert state.consecutive_failures == 0

    def test_record_failure_triggers_degraded(self):
        tracker = RateLimitStateTracker(failure_threshold=2)

        tracker.record_failure("connection refused")
        assert tracker.get_state().status == RateLimitProtectionStatus.ACTIVE
        tracker.record_failure("connection refused")

        state = tracker.get_state()
        assert state.status == RateLimitProtectionStatus.DEGRADED
        assert state.consecutive_failures == 2
        assert rate_limit_protection_status._value.get() == 0.5

    def test_record_success_restores_active(self):
        tracker = RateLimitStateTracker(failure_threshold=1)
        tracker.record_failure("timeout")

        tracker.record_success()

        state = tracker.get_state()
        assert state.status == RateLimitProtectionStatus.ACTIVE
        assert state.consecutive_failures == 0
        assert state.last_error is None

    def test_mark_disabled_is_sticky(self):
        tracker = RateLimitStateTracker(failure_threshold=1)
        tracker.mark_disabled()

        tracker.record_failure("down")
        tracker.record_success()

        assert tracker.get_state().status == RateLimitProtectionStatus.DISABLED

    def test_snapshot_is_a_copy(self):
        tracker = RateLimitStateTracker()
        snapshot = tracker.get_state()
        snapshot.consecutive_failures = 99
        assert tracker.get_state().consecutive_failures == 0

    def test_to_dict(self):
        data = RateLimitStateTracker().get_state().to_dict()
        assert data["status"] == "active"
        assert "since" in data


def _request(peer: str | None, headers: dict[str, str] | None = None) -> Request:
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": (peer, 1234) if peer else None,
    }
    return Request(scope)


class TestClientKey:
    def test_uses_peer_address(self):
        assert client_key(_request("203.0.113.7")) == "203.0.113.7"

    def test_forwarded_for_ignored_from_untrusted_peer(self):
        request = _request("203.0.113.7", {"X-Forwarded-For": "198.51.100.1"})
        assert client_key(request, trusted_proxies=["10.0.0.1"]) == "203.0.113.7"

    def test_forwarded_for_from_trusted_proxy(self):
        request = _request("10.0.0.1", {"X-Forwarded-For": "198.51.100.1, 10.0.0.1"})
        assert client_key(request, trusted_proxies=["10.0.0.1"]) == "198.51.100.1"

    def test_anonymous_without_peer(self):
        assert client_key(_request(None)) == ANONYMOUS_KEY
