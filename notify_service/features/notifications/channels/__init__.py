"""Delivery channels.

- email: SMTP via aiosmtplib
- webhook: HTTP POST via httpx
- in-app: stored row only

Each channel satisfies the ``NotificationChannel`` protocol and is looked up
by name through ``ChannelRegistry``.
"""

from __future__ import annotations

from notify_service.features.notifications.channels.base import (
    ChannelDescriptor,
    NotificationChannel,
)
from notify_service.features.notifications.channels.email import EmailChannel
from notify_service.features.notifications.channels.in_app import InAppChannel
from notify_service.features.notifications.channels.registry import (
    ChannelRegistry,
    build_default_registry,
)
from notify_service.features.notifications.channels.webhook import WebhookChannel

__all__ = [
    "ChannelDescriptor",
    "ChannelRegistry",
    "EmailChannel",
    "InAppChannel",
    "NotificationChannel",
    "WebhookChannel",
    "build_default_registry",
]
