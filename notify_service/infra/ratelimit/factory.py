"""Builds the process-wide admission limiter from settings."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from notify_service.infra.ratelimit.fallback import FallbackRateLimiter
from notify_service.infra.ratelimit.limiter import SlidingWindowRateLimiter
from notify_service.infra.ratelimit.memory import InMemoryRateLimiter
from notify_service.infra.ratelimit.tracker import RateLimitStateTracker

if TYPE_CHECKING:
    from redis.asyncio import Redis

    from notify_service.core.settings.ratelimit import RateLimitSettings

logger = logging.getLogger(__name__)


def build_rate_limiter(settings: RateLimitSettings, redis: Redis | None) -> FallbackRateLimiter:
    """Redis sliding window with an in-process fallback.

    Without Redis only the in-process window is used and the protection
    state reports DEGRADED from the start. When limiting is disabled the
    limiter is still built so ``/health`` can report DISABLED.
    """
    tracker = RateLimitStateTracker(failure_threshold=settings.failure_threshold)
    primary = (
        SlidingWindowRateLimiter(
            redis,
            max_requests=settings.max_requests,
            window_seconds=settings.window_seconds,
            key_prefix=settings.key_prefix,
        )
        if redis is not None
        else None
    )
    limiter = FallbackRateLimiter(
        primary,
        InMemoryRateLimiter(settings.max_requests, settings.window_seconds),
        tracker,
    )

    if not settings.enabled:
        tracker.mark_disabled()
        logger.info("Rate limiting disabled by configuration")
    elif primary is None:
        tracker.mark_degraded("Redis not configured")
        logger.warning("Redis not available, rate limiting is per-process only")
    else:
        logger.info(
            "Rate limiting enabled",
            extra={
                "max_requests": settings.max_requests,
                "window_seconds": settings.window_seconds,
            },
        )

    return limiter


__all__ = ["build_rate_limiter"]
