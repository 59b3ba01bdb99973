"""Admission rate limiting infrastructure."""

from __future__ import annotations

from notify_service.infra.ratelimit.factory import build_rate_limiter
from notify_service.infra.ratelimit.fallback import FallbackRateLimiter
from notify_service.infra.ratelimit.keys import ANONYMOUS_KEY, client_key
from notify_service.infra.ratelimit.limiter import (
    RateLimiter,
    RateLimitState,
    SlidingWindowRateLimiter,
)
from notify_service.infra.ratelimit.memory import InMemoryRateLimiter
from notify_service.infra.ratelimit.status import (
    RateLimitProtectionState,
    RateLimitProtectionStatus,
)
from notify_service.infra.ratelimit.tracker import RateLimitStateTracker

__all__ = [
    "ANONYMOUS_KEY",
    "FallbackRateLimiter",
    "InMemoryRateLimiter",
    "RateLimitProtectionState",
    "RateLimitProtectionStatus",
    "RateLimitState",
    "RateLimitStateTracker",
    "RateLimiter",
    "SlidingWindowRateLimiter",
    "build_rate_limiter",
    "client_key",
]
