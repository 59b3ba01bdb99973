"""Redis connection management."""

from notify_service.infra.cache.redis import (
    RedisClient,
    get_redis_client,
    start_redis,
    stop_redis,
)

__all__ = ["RedisClient", "get_redis_client", "start_redis", "stop_redis"]
