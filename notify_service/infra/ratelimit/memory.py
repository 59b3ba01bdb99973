"""Per-process sliding window rate limiter."""

from __future__ import annotations

import asyncio
import time
from collections import deque
from collections.abc import Callable

from notify_service.infra.ratelimit.limiter import RateLimitState


class InMemoryRateLimiter:
    """Same contract as ``SlidingWindowRateLimiter``, state kept in this process.

    Used when Redis is unreachable. Limits are per instance, so with N
    replicas a caller can get up to N times the configured budget.

    Args:
        clock: Time source, injectable for tests.
    """

    def __init__(
        self,
        max_requests: int = 20,
        window_seconds: int = 60,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, deque[float]] = {}
        self._lock = asyncio.Lock()
        self._last_sweep = clock()

    def _prune(self, window: deque[float], now: float) -> None:
        cutoff = now - self.window_seconds
        while window and window[0] <= cutoff:
            window.popleft()

    def _sweep(self, now: float) -> None:
        # Drop idle keys at most once per window
        if now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        for key in list(self._windows):
            window = self._windows[key]
            self._prune(window, now)
            if not window:
                del self._windows[key]

    async def is_rate_limited(self, key: str) -> bool:
        async with self._lock:
            now = self._clock()
            self._sweep(now)
            window = self._windows.setdefault(key, deque())
            self._prune(window, now)
            if len(window) >= self.max_requests:
                return True
            window.append(now)
            return False

    async def get_state(self, key: str) -> RateLimitState:
        async with self._lock:
            now = self._clock()
            window = self._windows.get(key)
            if window is not None:
                self._prune(window, now)
            if not window:
                return RateLimitState(
                    limit=self.max_requests,
                    remaining=self.max_requests,
                    reset_at=now + self.window_seconds,
                )
            return RateLimitState(
                limit=self.max_requests,
                remaining=max(0, self.max_requests - len(window)),
                reset_at=window[0] + self.window_seconds,
            )

    async def reset(self, key: str) -> None:
        async with self._lock:
            self._windows.pop(key, None)


__all__ = ["InMemoryRateLimiter"]
