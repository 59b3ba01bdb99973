"""Shared Redis connection.

Used by the admission rate limiter and by job history. Both treat Redis as
optional: when it is unreachable the limiter falls back to an in-process
window and job history is skipped.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, cast

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

from notify_service.core.settings import get_redis_settings

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from notify_service.core.settings.redis import RedisSettings

logger = logging.getLogger(__name__)


class RedisClient:
    """Owns a connection pool and the client built on it.

    Example:
        redis_client = RedisClient()
        await redis_client.connect()
        await redis_client.client.ping()
        await redis_client.disconnect()
    """

    def __init__(self, settings: RedisSettings | None = None) -> None:
        self._settings = settings or get_redis_settings()
        self._pool: ConnectionPool | None = None
        self._client: Redis | None = None

    async def connect(self) -> bool:
        """Create the pool and ping.

        The client is kept even when the ping fails, so callers recover
        on their own once Redis comes back. Returns the ping outcome.
        """
        logger.info(
            "Connecting to Redis",
            extra={
                "host": self._settings.host,
                "port": self._settings.port,
                "db": self._settings.db,
                "max_connections": self._settings.max_connections,
            },
        )
        self._pool = ConnectionPool.from_url(
            self._settings.url,
            **self._settings.connection_pool_kwargs(),
        )
        self._client = Redis(connection_pool=self._pool)

        try:
            await cast("Awaitable[bool]", self._client.ping())
        except (RedisError, OSError) as e:
            logger.warning("Redis not reachable at startup", extra={"error": str(e)})
            return False

        logger.info("Redis connection established successfully")
        return True

    async def disconnect(self) -> None:
        if self._client is not None:
            await cast("Any", self._client).aclose()
            self._client = None
        if self._pool is not None:
            await cast("Any", self._pool).aclose()
            self._pool = None
        logger.info("Redis connection closed")

    @property
    def client(self) -> Redis:
        if self._client is None:
            msg = "Redis client not connected. Call connect() first."
            raise RuntimeError(msg)
        return self._client


_redis: RedisClient | None = None


async def start_redis() -> RedisClient | None:
    """Connect the process-wide client when Redis is configured."""
    global _redis

    settings = get_redis_settings()
    if not settings.is_configured:
        logger.info("Redis not configured, skipping connection")
        return None

    _redis = RedisClient(settings)
    await _redis.connect()
    return _redis


async def stop_redis() -> None:
    global _redis

    if _redis is not None:
        await _redis.disconnect()
        _redis = None


def get_redis_client() -> Redis | None:
    """The process-wide Redis client, or None when Redis is not in use."""
    return _redis.client if _redis is not None else None


__all__ = ["RedisClient", "get_redis_client", "start_redis", "stop_redis"]
