"""Tracks whether the distributed rate limiter is healthy."""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import UTC, datetime

from notify_service.infra.metrics.prometheus import rate_limit_protection_status
from notify_service.infra.ratelimit.status import (
    RateLimitProtectionState,
    RateLimitProtectionStatus,
)

logger = logging.getLogger(__name__)

_STATUS_GAUGE_VALUES = {
    RateLimitProtectionStatus.ACTIVE: 1.0,
    RateLimitProtectionStatus.DEGRADED: 0.5,
    RateLimitProtectionStatus.DISABLED: 0.0,
}


class RateLimitStateTracker:
    """Thread-safe ACTIVE / DEGRADED / DISABLED state machine.

    ``failure_threshold`` consecutive Redis failures move ACTIVE to DEGRADED;
    the next success moves it back.

    Example:
        tracker = RateLimitStateTracker(failure_threshold=3)
        tracker.record_failure("Connection refused")
        tracker.get_state().consecutive_failures  # 1
    """

    def __init__(self, failure_threshold: int = 3) -> None:
        self._failure_threshold = failure_threshold
        self._lock = threading.Lock()
        self._state = RateLimitProtectionState(status=RateLimitProtectionStatus.ACTIVE)
        rate_limit_protection_status.set(_STATUS_GAUGE_VALUES[RateLimitProtectionStatus.ACTIVE])

    def get_state(self) -> RateLimitProtectionState:
        """Snapshot of the current state."""
        with self._lock:
            return replace(self._state)

    def record_success(self) -> None:
        with self._lock:
            self._state.consecutive_failures = 0
            self._state.last_error = None
            if self._state.status == RateLimitProtectionStatus.DEGRADED:
                self._transition(RateLimitProtectionStatus.ACTIVE)

    def record_failure(self, error: str) -> None:
        with self._lock:
            self._state.consecutive_failures += 1
            self._state.last_error = error
            if (
                self._state.status == RateLimitProtectionStatus.ACTIVE
                and self._state.consecutive_failures >= self._failure_threshold
            ):
                self._transition(RateLimitProtectionStatus.DEGRADED)

    def mark_degraded(self, error: str) -> None:
        with self._lock:
            self._state.last_error = error
            if self._state.status == RateLimitProtectionStatus.ACTIVE:
                self._transition(RateLimitProtectionStatus.DEGRADED)

    def mark_disabled(self) -> None:
        with self._lock:
            if self._state.status != RateLimitProtectionStatus.DISABLED:
                self._transition(RateLimitProtectionStatus.DISABLED)

    def _transition(self, to_status: RateLimitProtectionStatus) -> None:
        from_status = self._state.status
        self._state.status = to_status
        self._state.since = datetime.now(UTC)
        rate_limit_protection_status.set(_STATUS_GAUGE_VALUES[to_status])

        log_extra = {
            "from_status": from_status.value,
            "to_status": to_status.value,
            "consecutive_failures": self._state.consecutive_failures,
            "last_error": self._state.last_error,
        }
        if to_status == RateLimitProtectionStatus.DEGRADED:
            logger.warning(
                "Rate limit protection degraded - using in-process limiter",
                extra=log_extra,
            )
        elif to_status == RateLimitProtectionStatus.ACTIVE:
            logger.info("Rate limit protection restored to active", extra=log_extra)
        else:
            logger.info("Rate limit protection disabled by configuration", extra=log_extra)


__all__ = ["RateLimitStateTracker"]
