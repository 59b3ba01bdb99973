"""Unified settings composition for convenient access.

Usage:
    from notify_service.core.settings import get_settings

    settings = get_settings()
    print(settings.app.api_prefix)
    print(settings.tasks.max_attempts)

Each nested settings object still loads from its own environment prefix.
Code that needs a single domain should prefer the get_*_settings() loaders.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache

from .app import AppSettings
from .email import EmailSettings
from .loader import (
    get_app_settings,
    get_db_settings,
    get_email_settings,
    get_logging_settings,
    get_rabbit_settings,
    get_rate_limit_settings,
    get_redis_settings,
    get_task_settings,
    get_webhook_settings,
)
from .logs import LoggingSettings
from .postgres import PostgresSettings
from .rabbit import RabbitSettings
from .ratelimit import RateLimitSettings
from .redis import RedisSettings
from .tasks import TaskSettings
from .webhooks import WebhookSettings


@dataclass(frozen=True, slots=True)
class Settings:
    """All domain settings of the service in one object."""

    app: AppSettings = field(default_factory=get_app_settings)
    db: PostgresSettings = field(default_factory=get_db_settings)
    redis: RedisSettings = field(default_factory=get_redis_settings)
    rabbit: RabbitSettings = field(default_factory=get_rabbit_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    email: EmailSettings = field(default_factory=get_email_settings)
    webhook: WebhookSettings = field(default_factory=get_webhook_settings)
    rate_limit: RateLimitSettings = field(default_factory=get_rate_limit_settings)
    tasks: TaskSettings = field(default_factory=get_task_settings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached unified settings."""
    return Settings()
