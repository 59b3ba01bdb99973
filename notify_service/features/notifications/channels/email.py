"""SMTP email channel (aiosmtplib)."""

from __future__ import annotations

import logging
import time
from email.mime.text import MIMEText
from typing import TYPE_CHECKING

import aiosmtplib

from notify_service.features.notifications.errors import ChannelUnavailable, Result
from notify_service.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from notify_service.core.settings.email import EmailSettings
    from notify_service.features.notifications.models import NotificationRecord

logger = logging.getLogger(__name__)
lazy_logger = get_lazy_logger(__name__)


class EmailChannel:
    """Sends the notification as a plain-text email.

    The recipient is taken from ``metadata["to"]``. Subject is the title,
    body is the notification body. STARTTLS by default, implicit TLS when
    ``use_ssl`` is set (port 465).
    """

    name = "email"

    def __init__(self, settings: EmailSettings) -> None:
        self._settings = settings

    def is_available(self) -> bool:
        return self._settings.is_configured

    async def send(self, notification: NotificationRecord) -> Result[None]:
        if not self.is_available():
            return Result.fail(ChannelUnavailable(self.name, "SMTP credentials not configured"))

        recipient = notification.metadata.get("to")
        if not isinstance(recipient, str) or not recipient.strip():
            return Result.fail(ChannelUnavailable(self.name, "metadata.to is missing"))

        message = self._build_message(notification, recipient.strip())
        settings = self._settings
        start_time = time.perf_counter()

        try:
            smtp = aiosmtplib.SMTP(
                hostname=settings.smtp_host,
                port=settings.smtp_port,
                use_tls=settings.use_ssl,
                start_tls=settings.use_tls and not settings.use_ssl,
                timeout=settings.timeout,
            )
            async with smtp:
                await smtp.login(
                    settings.smtp_username,
                    settings.smtp_password.get_secret_value(),
                )
                await smtp.send_message(message)
        except aiosmtplib.SMTPAuthenticationError as e:
            logger.warning(
                "SMTP authentication failed",
                extra={"notification_id": notification.id, "error": str(e)},
            )
            return Result.fail(ChannelUnavailable(self.name, f"authentication failed: {e}"))
        except aiosmtplib.SMTPRecipientsRefused as e:
            logger.warning(
                "SMTP recipient refused",
                extra={"notification_id": notification.id, "error": str(e)},
            )
            return Result.fail(ChannelUnavailable(self.name, f"recipient refused: {e}"))
        except (aiosmtplib.SMTPException, OSError, TimeoutError) as e:
            logger.warning(
                "SMTP delivery failed",
                extra={"notification_id": notification.id, "error": str(e)},
            )
            return Result.fail(ChannelUnavailable(self.name, str(e) or type(e).__name__))

        elapsed_ms = int((time.perf_counter() - start_time) * 1000)
        lazy_logger.debug(
            lambda: f"email.send: notification {notification.id} delivered in {elapsed_ms}ms"
        )
        return Result.ok()

    def _build_message(self, notification: NotificationRecord, recipient: str) -> MIMEText:
        message = MIMEText(notification.body, "plain", "utf-8")
        message["Subject"] = notification.title
        message["From"] = self._settings.sender or ""
        message["To"] = recipient
        if notification.correlation_id:
            message["X-Correlation-ID"] = notification.correlation_id
        return message
