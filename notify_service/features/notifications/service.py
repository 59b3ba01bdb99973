"""Dispatch service: orchestrates the store and the channel registry."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

from notify_service.features.notifications.errors import (
    ChannelUnavailable,
    InvalidPayload,
    Result,
)
from notify_service.features.notifications.models import NotificationStatus
from notify_service.infra.logging import get_logger
from notify_service.infra.metrics.prometheus import (
    notification_deliveries_total,
    notification_delivery_duration_seconds,
)

if TYPE_CHECKING:
    from notify_service.features.notifications.channels.base import ChannelDescriptor
    from notify_service.features.notifications.channels.registry import ChannelRegistry
    from notify_service.features.notifications.models import NotificationRecord
    from notify_service.features.notifications.repository import NotificationRepository

MARK_ACTIONS = ("read", "unread")


class NotificationDispatchService:
    """Creates, delivers, retries and deletes notifications.

    Status rules enforced here:
        pending --deliver ok--> sent
        pending --deliver failed--> failed
        any --retry--> pending

    The service never branches on a channel's name; it only asks the
    registry for the channel matching ``notification.channel``.
    """

    def __init__(self, store: NotificationRepository, registry: ChannelRegistry) -> None:
        self._store = store
        self._registry = registry
        self._logger = get_logger(__name__)

    @property
    def registry(self) -> ChannelRegistry:
        return self._registry

    async def create_pending(
        self,
        *,
        user_id: str,
        title: str,
        body: str,
        channel: str,
        metadata: dict[str, Any] | None = None,
        correlation_id: str | None = None,
    ) -> Result[NotificationRecord]:
        """Persist a ``pending`` notification. Nothing is sent."""
        return await self._store.create(
            user_id=user_id,
            title=title,
            body=body,
            channel=channel,
            metadata=metadata,
            correlation_id=correlation_id,
        )

    async def deliver(self, notification: NotificationRecord) -> Result[NotificationRecord]:
        """Attempt delivery and record the terminal status.

        The status is always written before returning, so the row never
        stays ``pending`` after an attempt. A failed status write is returned
        even when the send itself succeeded.
        """
        log = self._logger.bind(notification_id=notification.id, channel=notification.channel)
        channel = self._registry.get(notification.channel)

        if channel is None or not channel.is_available():
            reason = "not registered" if channel is None else "not configured"
            send_result: Result[None] = Result.fail(
                ChannelUnavailable(notification.channel, reason)
            )
        else:
            start_time = time.perf_counter()
            send_result = await channel.send(notification)
            notification_delivery_duration_seconds.labels(channel=channel.name).observe(
                time.perf_counter() - start_time
            )

        status = NotificationStatus.SENT if send_result.is_ok else NotificationStatus.FAILED
        write_result = await self._store.update_status(notification.id, status, notification.user_id)
        notification_deliveries_total.labels(
            channel=notification.channel, outcome=status.value
        ).inc()

        if not write_result.is_ok:
            log.error(
                "Delivery status could not be recorded",
                extra={
                    "outcome": status.value,
                    "error_code": write_result.error.code,
                    "operation": "dispatch.deliver",
                },
            )
            return write_result

        if send_result.is_ok:
            log.info("Notification delivered", extra={"outcome": "sent", "operation": "dispatch.deliver"})
            return write_result

        log.warning(
            "Notification delivery failed",
            extra={
                "outcome": "failed",
                "reason": send_result.error.message,
                "operation": "dispatch.deliver",
            },
        )
        return Result.fail(send_result.error)

    async def retry(self, notification_id: str, user_id: str) -> Result[NotificationRecord]:
        """Reset to ``pending`` regardless of the current status."""
        result = await self._store.update_status(notification_id, NotificationStatus.PENDING, user_id)
        if result.is_ok:
            self._logger.info(
                "Notification reset for retry",
                extra={"notification_id": notification_id, "operation": "dispatch.retry"},
            )
        return result

    async def mark_as_deleted(self, notification_id: str, user_id: str) -> Result[None]:
        """Tenant-scoped hard delete; no archived state exists."""
        return await self._store.delete(notification_id, user_id)

    soft_delete = mark_as_deleted

    async def get(self, notification_id: str, user_id: str) -> Result[NotificationRecord]:
        return await self._store.find_by_id(notification_id, user_id)

    async def find_for_delivery(self, notification_id: str) -> Result[NotificationRecord]:
        """Unscoped lookup for the queue worker only."""
        return await self._store.find_by_id_internal(notification_id)

    async def list_for_user(
        self,
        user_id: str,
        *,
        status: str | None = None,
        channel: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Result[list[NotificationRecord]]:
        return await self._store.list_for_user(
            user_id, status=status, channel=channel, limit=limit, offset=offset
        )

    async def mark_all(self, action: str, user_id: str) -> Result[int]:
        """Bulk ``read``/``unread`` for all of the user's notifications."""
        if action == "read":
            return await self._store.mark_all_read(user_id)
        if action == "unread":
            return await self._store.mark_all_unread(user_id)
        return Result.fail(
            InvalidPayload(f"Unknown action {action!r}; expected one of {', '.join(MARK_ACTIONS)}")
        )

    def describe_channels(self) -> list[ChannelDescriptor]:
        return self._registry.describe()


__all__ = ["MARK_ACTIONS", "NotificationDispatchService"]
