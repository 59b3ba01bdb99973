"""Application lifespan management.

Long-lived handles (database engine, Redis client, taskiq broker, HTTP
client, rate limiter, dispatch service) are created once here and stored on
``app.state`` for the request dependencies.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import httpx

from notify_service.core.settings import get_settings
from notify_service.features.notifications.channels import build_default_registry
from notify_service.features.notifications.repository import NotificationRepository
from notify_service.features.notifications.service import NotificationDispatchService
from notify_service.infra.cache import start_redis, stop_redis
from notify_service.infra.database import AsyncSessionLocal, close_database, init_database
from notify_service.infra.logging import setup_logging
from notify_service.infra.metrics.prometheus import application_info
from notify_service.infra.ratelimit import build_rate_limiter
from notify_service.infra.tasks import start_taskiq, stop_taskiq

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from fastapi import FastAPI

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle.

    Startup order: logging, database, Redis, rate limiter, queue broker,
    dispatch service. Shutdown runs in reverse.

    Args:
        app: FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings = get_settings()

    # =========================================================================
    # STARTUP PHASE
    # =========================================================================

    setup_logging(log_settings=settings.logging, force=True)
    logger.info(
        "Application starting",
        extra={"service": settings.app.service_name, "environment": settings.app.environment},
    )
    application_info.labels(
        version=settings.app.version,
        service=settings.app.service_name,
        environment=settings.app.environment,
    ).set(1)

    await init_database()

    redis_client = await start_redis()
    app.state.rate_limiter = build_rate_limiter(
        settings.rate_limit,
        redis_client.client if redis_client is not None else None,
    )

    await start_taskiq()

    http_client = httpx.AsyncClient(timeout=settings.webhook.timeout_seconds)
    app.state.http_client = http_client
    app.state.dispatch_service = NotificationDispatchService(
        NotificationRepository(AsyncSessionLocal),
        build_default_registry(settings, http_client=http_client),
    )

    logger.info(
        "Application startup complete",
        extra={
            "service": settings.app.service_name,
            "version": settings.app.version,
            "database_enabled": settings.db.is_configured,
            "cache_enabled": settings.redis.is_configured,
            "messaging_enabled": settings.rabbit.is_configured,
            "channels": app.state.dispatch_service.registry.names(),
        },
    )

    # =========================================================================
    # APPLICATION RUNTIME
    # =========================================================================

    yield

    # =========================================================================
    # SHUTDOWN PHASE
    # =========================================================================

    logger.info("Application shutting down", extra={"service": settings.app.service_name})

    app.state.dispatch_service = None
    await http_client.aclose()
    await stop_taskiq()
    await stop_redis()
    await close_database()

    logger.info("Application shutdown complete")


__all__ = ["lifespan"]
