"""Pydantic schemas for the notifications feature."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from notify_service.core.schemas import CustomBase
from notify_service.features.notifications.models import ChannelName, NotificationStatus
from notify_service.infra.ratelimit import RateLimitProtectionStatus

# ============================================================================
# Requests
# ============================================================================


class NotificationCreate(BaseModel):
    """Payload for sending a notification."""

    model_config = ConfigDict(extra="ignore")

    title: str = Field(..., min_length=1, max_length=100)
    body: str = Field(..., min_length=1, max_length=1000)
    channel: ChannelName = Field(..., description="Delivery channel: email, webhook, in-app")
    metadata: dict[str, Any] | None = Field(
        default=None,
        description="Channel-specific options, e.g. {'to': 'user@example.com'} for email",
    )


class MarkAllRequest(BaseModel):
    """Bulk read state change for all of the caller's notifications."""

    action: str = Field(..., description="Either 'read' or 'unread'")


# ============================================================================
# Responses
# ============================================================================


class NotificationAccepted(CustomBase):
    job_id: str
    correlation_id: str
    notification_id: str


class NotificationResponse(CustomBase):
    """Notification as returned to its owner."""

    id: str
    title: str
    body: str
    channel: ChannelName
    status: NotificationStatus
    read_at: datetime | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    correlation_id: str | None = None
    created_at: datetime
    updated_at: datetime


class NotificationListResponse(CustomBase):
    data: list[NotificationResponse]
    correlation_id: str | None = None


class NotificationDetailResponse(CustomBase):
    data: NotificationResponse
    correlation_id: str | None = None


class OkResponse(CustomBase):
    ok: bool = True


class ChannelResponse(CustomBase):
    name: str
    available: bool


class ChannelListResponse(CustomBase):
    data: list[ChannelResponse]
    correlation_id: str | None = None


class RateLimitHealth(CustomBase):
    status: RateLimitProtectionStatus
    consecutive_failures: int = 0
    last_error: str | None = None


class HealthResponse(CustomBase):
    status: str = Field(description="'ok' or 'degraded'")
    version: str
    rate_limiter: RateLimitHealth


__all__ = [
    "ChannelListResponse",
    "ChannelResponse",
    "HealthResponse",
    "MarkAllRequest",
    "NotificationAccepted",
    "NotificationCreate",
    "NotificationDetailResponse",
    "NotificationListResponse",
    "NotificationResponse",
    "OkResponse",
    "RateLimitHealth",
]
