"""Notification delivery task definitions.

This module provides:
- The ``DeliveryJob`` queue payload
- ``enqueue_delivery`` used by the API after a notification is persisted
- The ``deliver_notification`` task run by workers
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from notify_service.core.settings import get_settings
from notify_service.features.notifications.channels import build_default_registry
from notify_service.features.notifications.errors import NotificationNotFound
from notify_service.features.notifications.repository import NotificationRepository
from notify_service.features.notifications.service import NotificationDispatchService
from notify_service.infra.database.session import AsyncSessionLocal
from notify_service.infra.metrics.prometheus import queue_enqueue_total
from notify_service.infra.tasks.broker import QueueUnavailableError, broker
from notify_service.infra.tracing.correlation import correlation_scope

logger = logging.getLogger(__name__)


class DeliveryJob(BaseModel):
    """Queue payload referencing an already persisted notification."""

    model_config = ConfigDict(frozen=True)

    notification_id: str = Field(min_length=1)
    channel: str = Field(min_length=1)
    correlation_id: str | None = None
    metadata: dict[str, Any] | None = None


class DeliveryFailedError(Exception):
    """Delivery attempt failed; raised so the queue retries the job."""

    def __init__(self, notification_id: str, code: str, message: str) -> None:
        self.notification_id = notification_id
        self.code = code
        super().__init__(f"{code}: {message}")


_dispatch_service: NotificationDispatchService | None = None


def get_dispatch_service() -> NotificationDispatchService:
    """Dispatch service shared by every job in this worker process."""
    global _dispatch_service

    if _dispatch_service is None:
        _dispatch_service = NotificationDispatchService(
            NotificationRepository(AsyncSessionLocal),
            build_default_registry(get_settings()),
        )
    return _dispatch_service


@broker.task(task_name="notifications.deliver")
async def deliver_notification(
    notification_id: str,
    channel: str,
    correlation_id: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Deliver one notification and record its terminal status.

    A failed delivery raises ``DeliveryFailedError`` so the retry
    middleware re-enqueues the job. A notification deleted while the job
    was queued is not retried.

    Returns:
        Dictionary with the notification id and its resulting status.
    """
    with correlation_scope(correlation_id):
        service = get_dispatch_service()

        found = await service.find_for_delivery(notification_id)
        if not found.is_ok:
            if isinstance(found.error, NotificationNotFound):
                logger.warning(
                    "Notification no longer exists, dropping delivery job",
                    extra={"notification_id": notification_id, "channel": channel},
                )
                return {"notification_id": notification_id, "status": None}
            raise DeliveryFailedError(notification_id, found.error.code, found.error.message)

        result = await service.deliver(found.value)
        if not result.is_ok:
            raise DeliveryFailedError(notification_id, result.error.code, result.error.message)

        return {"notification_id": notification_id, "status": result.value.status}


async def enqueue_delivery(job: DeliveryJob) -> str:
    """Push ``job`` onto the delivery queue and return the task id.

    Raises:
        QueueUnavailableError: The broker refused or could not be reached.
    """
    try:
        task = await deliver_notification.kiq(**job.model_dump())
    except Exception as e:
        queue_enqueue_total.labels(outcome="error").inc()
        logger.exception(
            "Failed to enqueue delivery job",
            extra={"notification_id": job.notification_id, "error": str(e)},
        )
        raise QueueUnavailableError(str(e)) from e

    queue_enqueue_total.labels(outcome="ok").inc()
    logger.info(
        "Delivery job enqueued",
        extra={"notification_id": job.notification_id, "task_id": task.task_id},
    )
    return task.task_id


__all__ = [
    "DeliveryFailedError",
    "DeliveryJob",
    "deliver_notification",
    "enqueue_delivery",
    "get_dispatch_service",
]
