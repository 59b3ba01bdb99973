"""Outbound webhook channel (httpx)."""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any

import httpx

from notify_service.features.notifications.errors import ChannelUnavailable, Result
from notify_service.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from notify_service.core.settings.webhooks import WebhookSettings
    from notify_service.features.notifications.models import NotificationRecord

logger = logging.getLogger(__name__)
lazy_logger = get_lazy_logger(__name__)


def build_envelope(notification: NotificationRecord) -> dict[str, Any]:
    """JSON body POSTed to the webhook target."""
    return {
        "id": notification.id,
        "title": notification.title,
        "body": notification.body,
        "channel": notification.channel,
        "status": notification.status,
        "metadata": notification.metadata,
        "correlationId": notification.correlation_id,
        "createdAt": notification.created_at.isoformat(),
    }


class WebhookChannel:
    """POSTs a fixed JSON envelope to the configured URL.

    Any non-2xx response, timeout or transport error is a failed delivery.

    Args:
        settings: Target URL, optional bearer secret and timeout.
        client: Shared ``httpx.AsyncClient``. When omitted a client is
            opened per send.
    """

    name = "webhook"

    def __init__(
        self,
        settings: WebhookSettings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._client = client

    def is_available(self) -> bool:
        return self._settings.is_configured

    def _headers(self, notification: NotificationRecord) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "User-Agent": "notify-service/1.0"}
        if self._settings.secret is not None and self._settings.secret.get_secret_value():
            headers["Authorization"] = f"Bearer {self._settings.secret.get_secret_value()}"
        if notification.correlation_id:
            headers["X-Correlation-ID"] = notification.correlation_id
        return headers

    async def send(self, notification: NotificationRecord) -> Result[None]:
        if not self.is_available():
            return Result.fail(ChannelUnavailable(self.name, "webhook URL not configured"))

        url = self._settings.url
        payload = json.dumps(build_envelope(notification), default=str)
        headers = self._headers(notification)
        start_time = time.perf_counter()

        try:
            if self._client is not None:
                response = await self._client.post(
                    url, content=payload, headers=headers, timeout=self._settings.timeout_seconds
                )
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(
                        url, content=payload, headers=headers, timeout=self._settings.timeout_seconds
                    )
        except httpx.TimeoutException:
            logger.warning(
                "Webhook request timed out",
                extra={
                    "notification_id": notification.id,
                    "timeout_seconds": self._settings.timeout_seconds,
                    "operation": "webhook.send",
                },
            )
            return Result.fail(
                ChannelUnavailable(
                    self.name, f"request timed out after {self._settings.timeout_seconds}s"
                )
            )
        # InvalidURL does not derive from HTTPError.
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(
                "Webhook request failed",
                extra={"notification_id": notification.id, "error": str(e), "operation": "webhook.send"},
            )
            return Result.fail(ChannelUnavailable(self.name, f"request failed: {e}"))

        elapsed_ms = int((time.perf_counter() - start_time) * 1000)
        if not 200 <= response.status_code < 300:
            logger.warning(
                "Webhook target rejected notification",
                extra={
                    "notification_id": notification.id,
                    "status_code": response.status_code,
                    "response_time_ms": elapsed_ms,
                    "operation": "webhook.send",
                },
            )
            return Result.fail(
                ChannelUnavailable(self.name, f"target responded with HTTP {response.status_code}")
            )

        lazy_logger.debug(
            lambda: f"webhook.send: {notification.id} -> {response.status_code} in {elapsed_ms}ms"
        )
        return Result.ok()
