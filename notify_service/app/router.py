"""Router registry and setup."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from notify_service.core.settings import get_app_settings
from notify_service.features.metrics.router import router as metrics_router
from notify_service.features.notifications.router import router as notifications_router

if TYPE_CHECKING:
    from fastapi import FastAPI

    from notify_service.core.settings.app import AppSettings

logger = logging.getLogger(__name__)


def setup_routers(app: FastAPI, app_settings: AppSettings | None = None) -> None:
    """Register all feature routers with the application.

    Args:
        app: FastAPI application instance.
        app_settings: Optional application settings override for the API prefix.
    """
    app_settings = app_settings or get_app_settings()
    api_prefix = app_settings.api_prefix

    # Metrics endpoint (no prefix - accessible at /metrics)
    app.include_router(metrics_router)

    app.include_router(notifications_router, prefix=api_prefix)

    logger.debug("Routers registered", extra={"api_prefix": api_prefix})
