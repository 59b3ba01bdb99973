"""Notification ORM model and the immutable record the store hands out."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import JSON, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from notify_service.core.database import Base, TimestampMixin, UUIDv7PKMixin


class ChannelName(StrEnum):
    EMAIL = "email"
    WEBHOOK = "webhook"
    IN_APP = "in-app"


class NotificationStatus(StrEnum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class Notification(Base, UUIDv7PKMixin, TimestampMixin):
    """A message owned by one user (tenant), delivered through one channel.

    ``channel`` and ``user_id`` never change after insert. ``status`` moves
    ``pending -> sent|failed`` on delivery and ``-> pending`` on retry.
    """

    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_user_id_created_at", "user_id", "created_at"),
        Index("ix_notifications_channel", "channel"),
    )

    user_id: Mapped[str] = mapped_column(
        String(255), nullable=False, index=True, comment="Owning tenant"
    )
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    body: Mapped[str] = mapped_column(String(1000), nullable=False)
    channel: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=NotificationStatus.PENDING.value,
        server_default=NotificationStatus.PENDING.value,
        index=True,
    )
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    # "metadata" is reserved on declarative classes
    metadata_: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, nullable=False, default=dict
    )
    correlation_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, channel={self.channel!r}, status={self.status!r})>"


@dataclass(frozen=True, slots=True)
class NotificationRecord:
    """Detached, read-only view of a notification row."""

    id: str
    user_id: str
    title: str
    body: str
    channel: str
    status: str
    created_at: datetime
    updated_at: datetime
    read_at: datetime | None = None
    correlation_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_model(cls, row: Notification) -> NotificationRecord:
        return cls(
            id=str(row.id),
            user_id=row.user_id,
            title=row.title,
            body=row.body,
            channel=row.channel,
            status=row.status,
            created_at=row.created_at,
            updated_at=row.updated_at,
            read_at=row.read_at,
            correlation_id=row.correlation_id,
            metadata=dict(row.metadata_ or {}),
        )
