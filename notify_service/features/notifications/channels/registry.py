"""Channel registry: a fixed, name-indexed set of channels built at startup."""

from __future__ import annotations

from typing import TYPE_CHECKING

from notify_service.features.notifications.channels.base import ChannelDescriptor
from notify_service.features.notifications.channels.email import EmailChannel
from notify_service.features.notifications.channels.in_app import InAppChannel
from notify_service.features.notifications.channels.webhook import WebhookChannel

if TYPE_CHECKING:
    from collections.abc import Iterable

    import httpx

    from notify_service.core.settings import Settings
    from notify_service.features.notifications.channels.base import NotificationChannel


class ChannelRegistry:
    """Resolves channels by name.

    Example:
        registry = ChannelRegistry([InAppChannel(), WebhookChannel(settings)])
        channel = registry.get("webhook")

    Raises:
        ValueError: Two channels share a name.
    """

    def __init__(self, channels: Iterable[NotificationChannel]) -> None:
        self._channels: dict[str, NotificationChannel] = {}
        for channel in channels:
            if channel.name in self._channels:
                raise ValueError(f"Duplicate channel name: {channel.name!r}")
            self._channels[channel.name] = channel

    def get(self, name: str) -> NotificationChannel | None:
        return self._channels.get(str(name))

    def names(self) -> list[str]:
        return list(self._channels)

    def describe(self) -> list[ChannelDescriptor]:
        """Availability is read from configuration, not probed."""
        return [
            ChannelDescriptor(name=name, available=channel.is_available())
            for name, channel in self._channels.items()
        ]


def build_default_registry(
    settings: Settings,
    http_client: httpx.AsyncClient | None = None,
) -> ChannelRegistry:
    """Email, webhook and in-app channels configured from ``settings``."""
    return ChannelRegistry(
        [
            EmailChannel(settings.email),
            WebhookChannel(settings.webhook, client=http_client),
            InAppChannel(),
        ]
    )
