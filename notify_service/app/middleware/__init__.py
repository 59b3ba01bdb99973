"""Middleware configuration for the FastAPI application.

Order, outermost first:
- CORS (only when origins are configured)
- Correlation ID: binds the request's correlation scope
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi.middleware.cors import CORSMiddleware

from notify_service.app.middleware.correlation_id import CorrelationIDMiddleware

if TYPE_CHECKING:
    from fastapi import FastAPI

    from notify_service.core.settings import Settings

logger = logging.getLogger(__name__)


def configure_middleware(app: FastAPI, settings: Settings) -> None:
    """Install the middleware stack.

    Starlette runs the last added middleware first, so the outermost one is
    added last.
    """
    app.add_middleware(CorrelationIDMiddleware)

    cors_origins = settings.app.cors_origins
    if cors_origins:
        logger.info("Configuring CORS", extra={"origins": cors_origins})
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["X-Correlation-ID", "Retry-After"],
            max_age=3600,
        )


__all__ = ["CorrelationIDMiddleware", "configure_middleware"]
