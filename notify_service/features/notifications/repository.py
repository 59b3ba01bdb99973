"""Tenant-scoped persistence for notifications.

Every public method runs in its own session and transaction and returns a
``Result``. ``SQLAlchemyError`` never escapes: it is logged here and turned
into ``DatabaseError``. Writes always narrow by ``(id, user_id)``; a write
that matches zero rows is reported as ``NotificationNotFound``.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, TypeVar

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError

from notify_service.features.notifications.errors import (
    DatabaseError,
    NotificationNotFound,
    Result,
)
from notify_service.features.notifications.models import (
    Notification,
    NotificationRecord,
    NotificationStatus,
)
from notify_service.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


R = TypeVar("R")


def _parse_id(value: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class NotificationRepository:
    """Store for ``Notification`` rows.

    Args:
        session_factory: ``async_sessionmaker`` bound to the service database.
            Tests pass one bound to an in-memory SQLite engine.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._logger = logging.getLogger("repository.Notification")
        self._lazy = get_lazy_logger("repository.Notification")

    async def _run(
        self,
        operation: str,
        work: Callable[[AsyncSession], Awaitable[Result[R]]],
    ) -> Result[R]:
        try:
            async with self._session_factory() as session, session.begin():
                return await work(session)
        except SQLAlchemyError as exc:
            self._logger.error(
                "Database operation failed",
                extra={"operation": f"db.{operation}", "error": str(exc)},
                exc_info=True,
            )
            return Result.fail(DatabaseError(operation=operation, cause=str(exc)))

    async def create(
        self,
        *,
        user_id: str,
        title: str,
        body: str,
        channel: str,
        metadata: dict[str, Any] | None = None,
        correlation_id: str | None = None,
    ) -> Result[NotificationRecord]:
        """Insert a notification. Status is always ``pending``."""

        async def work(session: AsyncSession) -> Result[NotificationRecord]:
            row = Notification(
                user_id=user_id,
                title=title,
                body=body,
                channel=str(channel),
                status=NotificationStatus.PENDING.value,
                metadata_=dict(metadata or {}),
                correlation_id=correlation_id,
            )
            session.add(row)
            await session.flush()
            await session.refresh(row)
            self._lazy.debug(lambda: f"db.create: Notification(id={row.id}, channel={row.channel})")
            return Result.ok(NotificationRecord.from_model(row))

        return await self._run("create", work)

    async def find_by_id(self, notification_id: str, user_id: str) -> Result[NotificationRecord]:
        """Tenant-scoped lookup. A row owned by another user is reported as not found."""
        nid = _parse_id(notification_id)
        if nid is None:
            return Result.fail(NotificationNotFound(notification_id))

        async def work(session: AsyncSession) -> Result[NotificationRecord]:
            stmt = select(Notification).where(
                Notification.id == nid, Notification.user_id == user_id
            )
            row = (await session.execute(stmt)).scalar_one_or_none()
            self._lazy.debug(
                lambda: f"db.find_by_id: Notification({nid}) -> {'found' if row else 'not found'}"
            )
            if row is None:
                return Result.fail(NotificationNotFound(notification_id))
            return Result.ok(NotificationRecord.from_model(row))

        return await self._run("find_by_id", work)

    async def find_by_id_internal(self, notification_id: str) -> Result[NotificationRecord]:
        """Lookup without tenant filter.

        Only the delivery worker calls this: a queued job carries the
        notification id but no caller identity. Never route HTTP input here.
        """
        nid = _parse_id(notification_id)
        if nid is None:
            return Result.fail(NotificationNotFound(notification_id))

        async def work(session: AsyncSession) -> Result[NotificationRecord]:
            row = await session.get(Notification, nid)
            if row is None:
                return Result.fail(NotificationNotFound(notification_id))
            return Result.ok(NotificationRecord.from_model(row))

        return await self._run("find_by_id_internal", work)

    async def list_for_user(
        self,
        user_id: str,
        *,
        status: str | None = None,
        channel: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Result[list[NotificationRecord]]:
        """Newest first, optionally filtered by status and channel."""

        async def work(session: AsyncSession) -> Result[list[NotificationRecord]]:
            stmt = select(Notification).where(Notification.user_id == user_id)
            if status is not None:
                stmt = stmt.where(Notification.status == str(status))
            if channel is not None:
                stmt = stmt.where(Notification.channel == str(channel))
            stmt = (
                stmt.order_by(Notification.created_at.desc(), Notification.id.desc())
                .limit(limit)
                .offset(offset)
            )
            rows = (await session.execute(stmt)).scalars().all()
            self._lazy.debug(
                lambda: f"db.list_for_user: {status=}, {channel=}, {limit=}, {offset=} -> {len(rows)} items"
            )
            return Result.ok([NotificationRecord.from_model(row) for row in rows])

        return await self._run("list_for_user", work)

    async def update_status(
        self,
        notification_id: str,
        status: NotificationStatus | str,
        user_id: str,
    ) -> Result[NotificationRecord]:
        """Atomic conditional status write narrowed by ``(id, user_id)``."""
        nid = _parse_id(notification_id)
        if nid is None:
            return Result.fail(NotificationNotFound(notification_id))

        async def work(session: AsyncSession) -> Result[NotificationRecord]:
            stmt = (
                update(Notification)
                .where(Notification.id == nid, Notification.user_id == user_id)
                .values(status=str(status), updated_at=datetime.now(UTC))
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(stmt)
            if result.rowcount == 0:
                self._logger.info(
                    "Status update matched no rows",
                    extra={"notification_id": notification_id, "operation": "db.update_status"},
                )
                return Result.fail(NotificationNotFound(notification_id))

            row = await session.get(Notification, nid, populate_existing=True)
            if row is None:
                return Result.fail(NotificationNotFound(notification_id))
            self._lazy.debug(lambda: f"db.update_status: Notification({nid}) -> {status}")
            return Result.ok(NotificationRecord.from_model(row))

        return await self._run("update_status", work)

    async def mark_all_read(self, user_id: str) -> Result[int]:
        """Set ``read_at`` on every unread notification of the user. Returns rows affected."""
        now = datetime.now(UTC)
        return await self._bulk_update(
            "mark_all_read",
            user_id,
            Notification.read_at.is_(None),
            {"read_at": now, "updated_at": now},
        )

    async def mark_all_unread(self, user_id: str) -> Result[int]:
        """Clear ``read_at`` on every read notification of the user. Returns rows affected."""
        return await self._bulk_update(
            "mark_all_unread",
            user_id,
            Notification.read_at.is_not(None),
            {"read_at": None, "updated_at": datetime.now(UTC)},
        )

    async def _bulk_update(
        self,
        operation: str,
        user_id: str,
        condition: Any,
        values: dict[str, Any],
    ) -> Result[int]:
        async def work(session: AsyncSession) -> Result[int]:
            stmt = (
                update(Notification)
                .where(Notification.user_id == user_id, condition)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(stmt)
            self._lazy.debug(lambda: f"db.{operation}: {result.rowcount} rows")
            return Result.ok(result.rowcount)

        return await self._run(operation, work)

    async def delete(self, notification_id: str, user_id: str) -> Result[None]:
        """Tenant-scoped hard delete."""
        nid = _parse_id(notification_id)
        if nid is None:
            return Result.fail(NotificationNotFound(notification_id))

        async def work(session: AsyncSession) -> Result[None]:
            stmt = (
                delete(Notification)
                .where(Notification.id == nid, Notification.user_id == user_id)
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(stmt)
            if result.rowcount == 0:
                return Result.fail(NotificationNotFound(notification_id))
            self._lazy.debug(lambda: f"db.delete: Notification({nid})")
            return Result.ok(None)

        return await self._run("delete", work)


__all__ = ["NotificationRepository"]
