"""Modular Pydantic Settings v2 configuration.

One frozen settings class per domain, each with its own env prefix
(APP_, DB_, REDIS_, RABBIT_, LOG_, EMAIL_, WEBHOOK_, RATE_LIMIT_, TASK_),
loaded once through the cached get_*_settings() functions.

Configuration precedence (highest to lowest):
    1. init kwargs (testing/overrides)
    2. Environment variables
    3. .env file
"""

from __future__ import annotations

from .loader import (
    clear_all_caches,
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
from .unified import Settings, get_settings

__all__ = [
    "Settings",
    "clear_all_caches",
    "get_app_settings",
    "get_db_settings",
    "get_email_settings",
    "get_logging_settings",
    "get_rabbit_settings",
    "get_rate_limit_settings",
    "get_redis_settings",
    "get_settings",
    "get_task_settings",
    "get_webhook_settings",
]
