"""Two-tier limiter: Redis first, in-process window when Redis is down."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from redis.exceptions import RedisError

from notify_service.infra.ratelimit.tracker import RateLimitStateTracker

if TYPE_CHECKING:
    from notify_service.infra.ratelimit.limiter import RateLimiter, RateLimitState
    from notify_service.infra.ratelimit.memory import InMemoryRateLimiter
    from notify_service.infra.ratelimit.status import RateLimitProtectionState

logger = logging.getLogger(__name__)

_BACKEND_ERRORS = (RedisError, OSError)


class FallbackRateLimiter:
    """Routes each call to ``primary`` and falls back on backend errors.

    A Redis failure never rejects or blindly admits a request: the
    in-process limiter answers instead. Each call tries the primary again,
    so recovery is automatic.

    Args:
        primary: Distributed limiter, or None when Redis is not configured.
        fallback: Per-process limiter.
        tracker: Records primary health for ``/health`` and metrics.
    """

    def __init__(
        self,
        primary: RateLimiter | None,
        fallback: InMemoryRateLimiter,
        tracker: RateLimitStateTracker | None = None,
    ) -> None:
        self._primary = primary
        self._fallback = fallback
        self._tracker = tracker or RateLimitStateTracker()
        self.max_requests = fallback.max_requests
        self.window_seconds = fallback.window_seconds

    @property
    def tracker(self) -> RateLimitStateTracker:
        return self._tracker

    def protection_state(self) -> RateLimitProtectionState:
        return self._tracker.get_state()

    def _on_backend_error(self, operation: str, exc: Exception) -> None:
        self._tracker.record_failure(str(exc) or type(exc).__name__)
        logger.warning(
            "Rate limit backend unavailable, using in-process limiter",
            extra={"operation": f"ratelimit.{operation}", "error": str(exc)},
        )

    async def is_rate_limited(self, key: str) -> bool:
        if self._primary is None:
            return await self._fallback.is_rate_limited(key)
        try:
            limited = await self._primary.is_rate_limited(key)
        except _BACKEND_ERRORS as exc:
            self._on_backend_error("is_rate_limited", exc)
            return await self._fallback.is_rate_limited(key)
        self._tracker.record_success()
        return limited

    async def get_state(self, key: str) -> RateLimitState:
        if self._primary is None:
            return await self._fallback.get_state(key)
        try:
            state = await self._primary.get_state(key)
        except _BACKEND_ERRORS as exc:
            self._on_backend_error("get_state", exc)
            return await self._fallback.get_state(key)
        self._tracker.record_success()
        return state


__all__ = ["FallbackRateLimiter"]
