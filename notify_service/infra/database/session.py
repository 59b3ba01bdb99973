"""Async database engine and session management.

PostgreSQL via psycopg3 when ``DB_*`` settings are configured, otherwise a
local aiosqlite file so the service runs without external infrastructure.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from notify_service.core.settings import get_app_settings, get_db_settings
from notify_service.infra.metrics.prometheus import database_query_duration_seconds

if TYPE_CHECKING:
    from notify_service.core.settings.postgres import PostgresSettings

logger = logging.getLogger(__name__)

_SQL_OPERATIONS = ("SELECT", "INSERT", "UPDATE", "DELETE")


def create_engine_from_settings(db_settings: PostgresSettings | None = None) -> AsyncEngine:
    """Build an AsyncEngine from database settings, with query timing attached."""
    db_settings = db_settings or get_db_settings()
    engine_kwargs = db_settings.sqlalchemy_engine_kwargs()
    engine_kwargs["echo"] = engine_kwargs.get("echo") or get_app_settings().debug
    async_engine = create_async_engine(db_settings.get_sqlalchemy_url(), **engine_kwargs)
    _instrument(async_engine)
    return async_engine


def _instrument(async_engine: AsyncEngine) -> None:
    @event.listens_for(async_engine.sync_engine, "before_cursor_execute")
    def _before_cursor_execute(
        conn: Any, cursor: Any, statement: str, parameters: Any, context: Any, executemany: Any
    ) -> None:
        context._query_start_time = time.perf_counter()

    @event.listens_for(async_engine.sync_engine, "after_cursor_execute")
    def _after_cursor_execute(
        conn: Any, cursor: Any, statement: str, parameters: Any, context: Any, executemany: Any
    ) -> None:
        duration = time.perf_counter() - context._query_start_time
        head = statement.lstrip()[:6].upper() if statement else ""
        operation = head if head in _SQL_OPERATIONS else "OTHER"
        database_query_duration_seconds.labels(operation=operation).observe(duration)


engine = create_engine_from_settings()

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def init_database() -> None:
    """Check connectivity at startup.

    On the SQLite fallback the schema is created directly, since migrations
    target PostgreSQL.
    """
    db_settings = get_db_settings()
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

        if not db_settings.is_configured:
            from notify_service.core.database import Base
            from notify_service.features.notifications import models  # noqa: F401

            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

        logger.info(
            "Database connection established",
            extra={"dialect": engine.dialect.name, "configured": db_settings.is_configured},
        )
    except Exception as e:
        logger.error("Failed to connect to database", extra={"error": str(e)})
        raise


async def close_database() -> None:
    """Dispose the engine's connection pool. Called at shutdown."""
    logger.info("Closing database connection")
    await engine.dispose()


__all__ = [
    "AsyncSessionLocal",
    "close_database",
    "create_engine_from_settings",
    "engine",
    "init_database",
]
