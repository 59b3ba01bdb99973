"""Tests for the sliding window limiters and the Redis fallback."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from notify_service.core.settings.ratelimit import RateLimitSettings
from notify_service.infra.ratelimit import (
    FallbackRateLimiter,
    InMemoryRateLimiter,
    RateLimitProtectionStatus,
    RateLimitState,
    RateLimitStateTracker,
    SlidingWindowRateLimiter,
    build_rate_limiter,
)


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestInMemoryRateLimiter:
    async def test_twenty_first_request_is_rejected(self):
        limiter = InMemoryRateLimiter(max_requests=20, window_seconds=60, clock=FakeClock())

        results = [await limiter.is_rate_limited("1.2.3.4") for _ in range(21)]

        assert results[:20] == [False] * 20
        assert results[20] is True

    async def test_window_slides(self):
        clock = FakeClock()
        limiter = InMemoryRateLimiter(max_requests=2, window_seconds=60, clock=clock)
        await limiter.is_rate_limited("k")
        clock.now += 30
        await limiter.is_rate_limited("k")
        assert await limiter.is_rate_limited("k") is True

        clock.now += 31
        assert await limiter.is_rate_limited("k") is False
        assert await limiter.is_rate_limited("k") is True

    async def test_keys_are_independent(self):
        limiter = InMemoryRateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())

        assert await limiter.is_rate_limited("a") is False
        assert await limiter.is_rate_limited("b") is False
        assert await limiter.is_rate_limited("a") is True

    async def test_state_reports_reset_of_oldest_entry(self):
        clock = FakeClock()
        limiter = InMemoryRateLimiter(max_requests=2, window_seconds=60, clock=clock)
        await limiter.is_rate_limited("k")
        clock.now += 10
        await limiter.is_rate_limited("k")

        state = await limiter.get_state("k")

        assert state.remaining == 0
        assert state.reset_at == 1_060.0
        assert state.retry_after(now=clock.now) == 50

    async def test_reset_clears_key(self):
        limiter = InMemoryRateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())
        await limiter.is_rate_limited("k")

        await limiter.reset("k")

        assert await limiter.is_rate_limited("k") is False


class TestRateLimitState:
    def test_retry_after_is_at_least_one(self):
        state = RateLimitState(limit=20, remaining=0, reset_at=100.2)
        assert state.retry_after(now=100.0) == 1
        assert state.retry_after(now=200.0) == 1

    def test_retry_after_rounds_up(self):
        assert RateLimitState(limit=20, remaining=0, reset_at=112.1).retry_after(now=100.0) == 13


class TestSlidingWindowRateLimiter:
    async def test_admitted_when_script_allows(self):
        redis = MagicMock()
        redis.eval = AsyncMock(return_value=[1, 3, b"990.0"])
        limiter = SlidingWindowRateLimiter(redis, max_requests=20, window_seconds=60)

        assert await limiter.is_rate_limited("1.2.3.4") is False
        args = redis.eval.await_args.args
        assert args[1] == 1
        assert args[2] == "rl:1.2.3.4"
        assert args[3] == 20
        assert args[4] == 60

    async def test_rejected_when_script_denies(self):
        redis = MagicMock()
        redis.eval = AsyncMock(return_value=[0, 20, b"990.0"])
        limiter = SlidingWindowRateLimiter(redis, max_requests=20, window_seconds=60)

        assert await limiter.is_rate_limited("1.2.3.4") is True

    async def test_state_from_oldest_entry(self):
        redis = MagicMock()
        redis.eval = AsyncMock(return_value=[20, b"1000.0"])
        limiter = SlidingWindowRateLimiter(redis, max_requests=20, window_seconds=60)

        state = await limiter.get_state("1.2.3.4")

        assert state.remaining == 0
        assert state.reset_at == 1_060.0

    def test_long_keys_are_hashed(self):
        limiter = SlidingWindowRateLimiter(MagicMock(), key_prefix="rl")
        key = limiter._make_key("x" * 200)
        assert key.startswith("rl:")
        assert len(key) == len("rl:") + 16


class TestFallbackRateLimiter:
    async def test_uses_fallback_on_redis_error(self):
        primary = MagicMock()
        primary.is_rate_limited = AsyncMock(side_effect=RedisConnectionError("refused"))
        fallback = InMemoryRateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())
        tracker = RateLimitStateTracker(failure_threshold=2)
        limiter = FallbackRateLimiter(primary, fallback, tracker)

        assert await limiter.is_rate_limited("k") is False
        assert await limiter.is_rate_limited("k") is True

        state = limiter.protection_state()
        assert state.status == RateLimitProtectionStatus.DEGRADED
        assert state.consecutive_failures == 2
        assert state.last_error == "refused"

    async def test_recovers_when_redis_returns(self):
        primary = MagicMock()
        primary.is_rate_limited = AsyncMock(side_effect=[OSError("down"), False])
        tracker = RateLimitStateTracker(failure_threshold=1)
        limiter = FallbackRateLimiter(primary, InMemoryRateLimiter(), tracker)

        await limiter.is_rate_limited("k")
        assert tracker.get_state().status == RateLimitProtectionStatus.DEGRADED

        await limiter.is_rate_limited("k")
        assert tracker.get_state().status == RateLimitProtectionStatus.ACTIVE

    async def test_non_backend_errors_propagate(self):
        primary = MagicMock()
        primary.is_rate_limited = AsyncMock(side_effect=ValueError("bug"))
        limiter = FallbackRateLimiter(primary, InMemoryRateLimiter())

        with pytest.raises(ValueError):
            await limiter.is_rate_limited("k")


class TestBuildRateLimiter:
    def test_without_redis_is_degraded(self):
        limiter = build_rate_limiter(RateLimitSettings(enabled=True), None)
        state = limiter.protection_state()
        assert state.status == RateLimitProtectionStatus.DEGRADED
        assert state.last_error == "Redis not configured"

    def test_disabled(self):
        limiter = build_rate_limiter(RateLimitSettings(enabled=False), MagicMock())
        assert limiter.protection_state().status == RateLimitProtectionStatus.DISABLED

    def test_with_redis_is_active(self):
        limiter = build_rate_limiter(RateLimitSettings(enabled=True, max_requests=5), MagicMock())
        assert limiter.protection_state().status == RateLimitProtectionStatus.ACTIVE
        assert limiter.max_requests == 5
