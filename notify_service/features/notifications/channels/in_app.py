"""In-app channel."""

from __future__ import annotations

from typing import TYPE_CHECKING

from notify_service.features.notifications.errors import Result
from notify_service.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from notify_service.features.notifications.models import NotificationRecord

lazy_logger = get_lazy_logger(__name__)


class InAppChannel:
    """Database-only delivery.

    The stored row is what the UI polls, so there is nothing to push;
    sending always succeeds.
    """

    name = "in-app"

    def is_available(self) -> bool:
        return True

    async def send(self, notification: NotificationRecord) -> Result[None]:
        lazy_logger.debug(
            lambda: f"in_app.send: {notification.id} visible to user {notification.user_id}"
        )
        return Result.ok()
