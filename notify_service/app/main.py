"""FastAPI application factory."""

from __future__ import annotations

from fastapi import FastAPI

from notify_service.app.exception_handlers import configure_exception_handlers
from notify_service.app.lifespan import lifespan
from notify_service.app.middleware import configure_middleware
from notify_service.app.router import setup_routers
from notify_service.core.settings import get_settings


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Uses unified settings from core.settings for all configuration.
    Settings are loaded once and cached via LRU cache.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()
    app_settings = settings.app

    app = FastAPI(
        title=app_settings.title,
        description=app_settings.description,
        version=app_settings.version,
        docs_url=app_settings.get_docs_url(),
        redoc_url=None,
        openapi_url=app_settings.get_openapi_url(),
        debug=app_settings.debug,
        lifespan=lifespan,
    )

    # Configure exception handlers (must be before middleware)
    configure_exception_handlers(app)

    configure_middleware(app, settings)

    setup_routers(app, app_settings)

    return app


# Application instance for uvicorn
app = create_app()
