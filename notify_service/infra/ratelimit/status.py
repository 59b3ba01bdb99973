"""Rate limit protection status types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum


class RateLimitProtectionStatus(str, Enum):
    """Which backend is enforcing admission limits.

    Values:
        ACTIVE: Redis sliding window, shared across instances
        DEGRADED: Redis unreachable, per-process in-memory window in use
        DISABLED: Rate limiting turned off by configuration
    """

    ACTIVE = "active"
    DEGRADED = "degraded"
    DISABLED = "disabled"


@dataclass
class RateLimitProtectionState:
    status: RateLimitProtectionStatus
    since: datetime = field(default_factory=lambda: datetime.now(UTC))
    consecutive_failures: int = 0
    last_error: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "status": self.status.value,
            "since": self.since.isoformat(),
            "consecutive_failures": self.consecutive_failures,
            "last_error": self.last_error,
        }


__all__ = [
    "RateLimitProtectionState",
    "RateLimitProtectionStatus",
]
