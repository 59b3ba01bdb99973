"""LRU-cached settings loaders.

Settings are loaded and validated once, then cached for the lifetime of
the process. In tests, clear the cache to force a reload:

    clear_all_caches()
"""

from __future__ import annotations

from functools import lru_cache

from .app import AppSettings
from .email import EmailSettings
from .logs import LoggingSettings
from .postgres import PostgresSettings
from .rabbit import RabbitSettings
from .ratelimit import RateLimitSettings
from .redis import RedisSettings
from .tasks import TaskSettings
from .webhooks import WebhookSettings


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    """Get cached application settings."""
    return AppSettings()


@lru_cache(maxsize=1)
def get_db_settings() -> PostgresSettings:
    """Get cached database settings."""
    return PostgresSettings()


@lru_cache(maxsize=1)
def get_redis_settings() -> RedisSettings:
    """Get cached Redis settings."""
    return RedisSettings()


@lru_cache(maxsize=1)
def get_rabbit_settings() -> RabbitSettings:
    """Get cached RabbitMQ settings."""
    return RabbitSettings()


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached logging settings."""
    return LoggingSettings()


@lru_cache(maxsize=1)
def get_email_settings() -> EmailSettings:
    """Get cached SMTP settings."""
    return EmailSettings()


@lru_cache(maxsize=1)
def get_webhook_settings() -> WebhookSettings:
    """Get cached webhook channel settings."""
    return WebhookSettings()


@lru_cache(maxsize=1)
def get_rate_limit_settings() -> RateLimitSettings:
    """Get cached rate limit settings."""
    return RateLimitSettings()


@lru_cache(maxsize=1)
def get_task_settings() -> TaskSettings:
    """Get cached queue and worker settings."""
    return TaskSettings()


def clear_all_caches() -> None:
    """Clear all settings caches.

    Useful for testing. In production, prefer process restarts over cache clearing.
    """
    get_app_settings.cache_clear()
    get_db_settings.cache_clear()
    get_redis_settings.cache_clear()
    get_rabbit_settings.cache_clear()
    get_logging_settings.cache_clear()
    get_email_settings.cache_clear()
    get_webhook_settings.cache_clear()
    get_rate_limit_settings.cache_clear()
    get_task_settings.cache_clear()

    from .unified import get_settings

    get_settings.cache_clear()
