"""Channel protocol and descriptor."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from notify_service.features.notifications.errors import Result
    from notify_service.features.notifications.models import NotificationRecord


@runtime_checkable
class NotificationChannel(Protocol):
    """A delivery mechanism.

    ``send`` must not raise: transport failures come back as a failed
    ``Result`` carrying ``ChannelUnavailable``.
    """

    name: str

    def is_available(self) -> bool:
        """True when the channel's configuration is complete."""
        ...

    async def send(self, notification: NotificationRecord) -> Result[None]:
        ...


@dataclass(frozen=True, slots=True)
class ChannelDescriptor:
    name: str
    available: bool
