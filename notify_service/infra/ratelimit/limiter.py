"""Redis-backed sliding window rate limiter."""

from __future__ import annotations

import hashlib
import logging
import math
import time
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from notify_service.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)
lazy_logger = get_lazy_logger(__name__)


@dataclass(frozen=True, slots=True)
class RateLimitState:
    """Read-only view of one key's window."""

    limit: int
    remaining: int
    reset_at: float

    def retry_after(self, now: float | None = None) -> int:
        """Seconds until a slot frees up, never less than 1."""
        now = time.time() if now is None else now
        return max(1, math.ceil(self.reset_at - now))


class RateLimiter(Protocol):
    max_requests: int
    window_seconds: int

    async def is_rate_limited(self, key: str) -> bool:
        """Record a request for ``key``; True when it must be rejected."""
        ...

    async def get_state(self, key: str) -> RateLimitState:
        ...


# Prune, count, and record only if under the limit: one atomic round trip.
# Returns {allowed, count_after, oldest_score}.
_CHECK_SCRIPT = """
local key = KEYS[1]
local limit = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
local now = tonumber(ARGV[3])
local member = ARGV[4]

redis.call('ZREMRANGEBYSCORE', key, 0, now - window)
local current = redis.call('ZCARD', key)

if current < limit then
    redis.call('ZADD', key, now, member)
    redis.call('EXPIRE', key, math.ceil(window))
    current = current + 1
    local oldest = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
    return {1, current, oldest[2]}
end

local oldest = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
return {0, current, oldest[2]}
"""

_STATE_SCRIPT = """
local key = KEYS[1]
local window = tonumber(ARGV[1])
local now = tonumber(ARGV[2])

redis.call('ZREMRANGEBYSCORE', key, 0, now - window)
local current = redis.call('ZCARD', key)
local oldest = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
return {current, oldest[2] or false}
"""


class SlidingWindowRateLimiter:
    """At most ``max_requests`` per ``window_seconds`` per key, shared through Redis.

    Each admitted request adds a timestamped member to a sorted set; members
    older than the window are pruned on every check. Rejected requests are
    not recorded, so a caller hammering the endpoint does not extend its own
    lockout.

    Raises ``redis.RedisError`` / ``OSError`` when Redis is unreachable;
    ``FallbackRateLimiter`` handles that.

    Example:
        limiter = SlidingWindowRateLimiter(redis, max_requests=20, window_seconds=60)
        if await limiter.is_rate_limited("203.0.113.7"):
            state = await limiter.get_state("203.0.113.7")
    """

    def __init__(
        self,
        redis: Redis,
        max_requests: int = 20,
        window_seconds: int = 60,
        key_prefix: str = "rl",
    ) -> None:
        self.redis = redis
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.key_prefix = key_prefix

    def _make_key(self, identifier: str) -> str:
        # Hash long identifiers to keep key size reasonable
        if len(identifier) > 50:
            identifier = hashlib.sha256(identifier.encode()).hexdigest()[:16]
        return f"{self.key_prefix}:{identifier}"

    async def is_rate_limited(self, key: str) -> bool:
        now = time.time()
        allowed, current, _oldest = await self.redis.eval(
            _CHECK_SCRIPT,
            1,
            self._make_key(key),
            self.max_requests,
            self.window_seconds,
            now,
            f"{now}:{uuid.uuid4().hex}",
        )
        limited = not bool(int(allowed))
        lazy_logger.debug(
            lambda: f"ratelimit.check: {key} -> {int(current)}/{self.max_requests} limited={limited}"
        )
        return limited

    async def get_state(self, key: str) -> RateLimitState:
        now = time.time()
        current, oldest = await self.redis.eval(
            _STATE_SCRIPT,
            1,
            self._make_key(key),
            self.window_seconds,
            now,
        )
        reset_at = float(oldest) + self.window_seconds if oldest else now + self.window_seconds
        return RateLimitState(
            limit=self.max_requests,
            remaining=max(0, self.max_requests - int(current)),
            reset_at=reset_at,
        )

    async def reset(self, key: str) -> None:
        await self.redis.delete(self._make_key(key))
        logger.info("Rate limit reset", extra={"key": key})


__all__ = ["RateLimitState", "RateLimiter", "SlidingWindowRateLimiter"]
