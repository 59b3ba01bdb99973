"""Database engine, session factory and lifecycle helpers."""

from notify_service.infra.database.session import (
    AsyncSessionLocal,
    close_database,
    create_engine_from_settings,
    engine,
    init_database,
)

__all__ = [
    "AsyncSessionLocal",
    "close_database",
    "create_engine_from_settings",
    "engine",
    "init_database",
]
