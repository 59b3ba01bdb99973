"""API server command."""

import sys

import click
import uvicorn

from notify_service.cli.utils import error, info, warning
from notify_service.core.settings import get_app_settings


@click.command(name="serve")
@click.option(
    "--host",
    default=None,
    help="Host to bind (default: from settings or 0.0.0.0)",
)
@click.option(
    "--port",
    default=None,
    type=int,
    help="Port to bind (default: from settings or 8000)",
)
@click.option(
    "--reload/--no-reload",
    default=False,
    help="Enable auto-reload on code changes",
)
@click.option(
    "--workers",
    default=1,
    type=int,
    help="Number of worker processes (disable with --reload)",
)
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["critical", "error", "warning", "info", "debug", "trace"]),
    help="Uvicorn log level",
)
def serve(
    host: str | None,
    port: int | None,
    reload: bool,
    workers: int,
    log_level: str,
) -> None:
    """Run the HTTP API with uvicorn."""
    settings = get_app_settings()
    host = host or settings.host
    port = port or settings.port

    if reload and workers > 1:
        warning("--reload is incompatible with --workers > 1. Setting workers to 1.")
        workers = 1

    info(f"Server will run at: http://{host}:{port}")
    info(f"Environment: {settings.environment}")

    try:
        uvicorn.run(
            "notify_service.app.main:app",
            host=host,
            port=port,
            reload=reload,
            workers=None if reload else workers,
            log_level=log_level,
        )
    except KeyboardInterrupt:
        info("Shutting down server...")
    except OSError as e:
        error(f"Failed to start server: {e}")
        sys.exit(1)
