"""Pytest configuration and shared fixtures.

Organization:
    - Database Fixtures: in-memory SQLite engine, session factory, repository
    - Channel Fixtures: stub channels with controllable outcomes
    - Application Fixtures: FastAPI app wired to the fixtures above, HTTP client
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

if TYPE_CHECKING:
    from fastapi import FastAPI
    from sqlalchemy.ext.asyncio import AsyncEngine

# Ensure tests run without external infrastructure
os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("DB_ENABLED", "false")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("RABBIT_ENABLED", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "true")


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """Fresh in-memory SQLite database with all tables created.

    StaticPool keeps a single connection so every session sees the same
    in-memory database.
    """
    from notify_service.core.database import Base

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def repository(session_factory):
    from notify_service.features.notifications.repository import NotificationRepository

    return NotificationRepository(session_factory)


# ============================================================================
# Channel Fixtures
# ============================================================================


class StubChannel:
    """Channel whose availability and send outcome are set by the test."""

    def __init__(self, name: str, *, available: bool = True, error: str | None = None) -> None:
        self.name = name
        self.available = available
        self.error = error
        self.sent: list = []

    def is_available(self) -> bool:
        return self.available

    async def send(self, notification):
        from notify_service.features.notifications.errors import ChannelUnavailable, Result

        self.sent.append(notification)
        if self.error is not None:
            return Result.fail(ChannelUnavailable(self.name, self.error))
        return Result.ok()


@pytest.fixture
def stub_channel() -> type[StubChannel]:
    """The StubChannel class, for tests that build their own registry."""
    return StubChannel


@pytest.fixture
def webhook_channel() -> StubChannel:
    return StubChannel("webhook")


@pytest.fixture
def registry(webhook_channel: StubChannel):
    """In-app plus a stub webhook; email is deliberately not registered."""
    from notify_service.features.notifications.channels import ChannelRegistry, InAppChannel

    return ChannelRegistry([InAppChannel(), webhook_channel])


@pytest.fixture
def service(repository, registry):
    from notify_service.features.notifications.service import NotificationDispatchService

    return NotificationDispatchService(repository, registry)


# ============================================================================
# Application Fixtures
# ============================================================================


@pytest.fixture
def enqueued() -> list:
    """Delivery jobs handed to the queue during the test."""
    return []


@pytest.fixture
def rate_limiter():
    from notify_service.infra.ratelimit import (
        FallbackRateLimiter,
        InMemoryRateLimiter,
        RateLimitStateTracker,
    )

    return FallbackRateLimiter(
        None,
        InMemoryRateLimiter(max_requests=20, window_seconds=60),
        RateLimitStateTracker(),
    )


@pytest.fixture
async def app(service, rate_limiter, enqueued) -> FastAPI:
    """Application with its state wired to test doubles.

    The lifespan does not run under ASGITransport, so the handles it would
    create are set on ``app.state`` here. Enqueued jobs are captured in
    ``enqueued`` instead of reaching a broker.
    """
    from notify_service.app.main import create_app
    from notify_service.features.notifications.dependencies import get_enqueuer

    application = create_app()
    application.state.dispatch_service = service
    application.state.rate_limiter = rate_limiter

    async def capture(job) -> str:
        enqueued.append(job)
        return f"job-{len(enqueued)}"

    application.dependency_overrides[get_enqueuer] = lambda: capture
    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def user_headers() -> dict[str, str]:
    return {"X-User-ID": "user-123"}
