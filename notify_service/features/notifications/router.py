"""API router for the notifications feature.

Endpoints:
- POST /notifications - Accept a notification for asynchronous delivery
- GET /notifications - List the caller's notifications
- GET /notifications/{notification_id} - Get one notification
- PATCH /notifications - Mark all as read/unread
- POST /notifications/{notification_id}/retry - Reset to pending and re-enqueue
- DELETE /notifications/{notification_id} - Delete a notification
- GET /channels - Channel availability
- GET /health - Liveness plus rate limiter protection status
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from notify_service.core.exceptions import ServiceUnavailableException
from notify_service.core.settings import get_app_settings
from notify_service.features.notifications.dependencies import (
    CurrentUserIdDep,
    DispatchServiceDep,
    EnqueuerDep,
    RateLimiterDep,
    enforce_rate_limit,
)
from notify_service.features.notifications.errors import to_http_exception
from notify_service.features.notifications.models import ChannelName, NotificationStatus
from notify_service.features.notifications.schemas import (
    ChannelListResponse,
    ChannelResponse,
    HealthResponse,
    MarkAllRequest,
    NotificationAccepted,
    NotificationCreate,
    NotificationDetailResponse,
    NotificationListResponse,
    NotificationResponse,
    OkResponse,
    RateLimitHealth,
)
from notify_service.infra.metrics.prometheus import notifications_accepted_total
from notify_service.infra.ratelimit import RateLimitProtectionStatus
from notify_service.infra.tasks import QueueUnavailableError
from notify_service.infra.tracing.correlation import get_correlation_id, new_correlation_id
from notify_service.workers.notifications.tasks import DeliveryJob

logger = logging.getLogger(__name__)

router = APIRouter(tags=["notifications"])


def _queue_unavailable() -> ServiceUnavailableException:
    return ServiceUnavailableException(
        "Delivery queue unavailable, try again later",
        type="queue-unavailable",
        code="QUEUE_UNAVAILABLE",
    )


# ============================================================================
# Notifications
# ============================================================================


@router.post(
    "/notifications",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=NotificationAccepted,
    summary="Send a notification",
    description="""
Persist the notification as `pending` and enqueue a delivery job.

**Errors:**
- 401: missing user header
- 422: invalid payload
- 429: rate limited (`Retry-After` header set)
- 503: queue unavailable; the notification is not kept
""",
    dependencies=[Depends(enforce_rate_limit)],
)
async def create_notification(
    payload: NotificationCreate,
    user_id: CurrentUserIdDep,
    service: DispatchServiceDep,
    enqueue: EnqueuerDep,
) -> NotificationAccepted:
    correlation_id = get_correlation_id() or new_correlation_id()

    created = await service.create_pending(
        user_id=user_id,
        title=payload.title,
        body=payload.body,
        channel=payload.channel.value,
        metadata=payload.metadata,
        correlation_id=correlation_id,
    )
    if not created.is_ok:
        raise to_http_exception(created.error)
    notification = created.value

    job = DeliveryJob(
        notification_id=notification.id,
        channel=notification.channel,
        correlation_id=correlation_id,
        metadata=payload.metadata,
    )
    try:
        job_id = await enqueue(job)
    except QueueUnavailableError:
        # Nothing would ever move an unqueued row out of pending.
        rollback = await service.mark_as_deleted(notification.id, user_id)
        if not rollback.is_ok:
            logger.error(
                "Failed to remove notification after enqueue failure",
                extra={"notification_id": notification.id, "error_code": rollback.error.code},
            )
        raise _queue_unavailable() from None

    notifications_accepted_total.labels(channel=notification.channel).inc()
    logger.info(
        "Notification accepted",
        extra={"notification_id": notification.id, "job_id": job_id, "channel": notification.channel},
    )
    return NotificationAccepted(
        job_id=job_id,
        correlation_id=correlation_id,
        notification_id=notification.id,
    )


@router.get(
    "/notifications",
    response_model=NotificationListResponse,
    summary="List the caller's notifications",
)
async def list_notifications(
    user_id: CurrentUserIdDep,
    service: DispatchServiceDep,
    status_filter: Annotated[
        NotificationStatus | None,
        Query(alias="status", description="Filter by delivery status"),
    ] = None,
    channel: Annotated[ChannelName | None, Query(description="Filter by channel")] = None,
    limit: Annotated[int, Query(ge=1, le=100, description="Maximum results")] = 50,
    offset: Annotated[int, Query(ge=0, description="Pagination offset")] = 0,
) -> NotificationListResponse:
    """Newest first."""
    result = await service.list_for_user(
        user_id,
        status=status_filter.value if status_filter else None,
        channel=channel.value if channel else None,
        limit=limit,
        offset=offset,
    )
    if not result.is_ok:
        raise to_http_exception(result.error)

    return NotificationListResponse(
        data=[NotificationResponse.model_validate(n) for n in result.value],
        correlation_id=get_correlation_id(),
    )


@router.patch(
    "/notifications",
    response_model=OkResponse,
    summary="Mark all notifications read or unread",
)
async def mark_all_notifications(
    payload: MarkAllRequest,
    user_id: CurrentUserIdDep,
    service: DispatchServiceDep,
) -> OkResponse:
    result = await service.mark_all(payload.action, user_id)
    if not result.is_ok:
        raise to_http_exception(result.error)
    return OkResponse()


@router.get(
    "/notifications/{notification_id}",
    response_model=NotificationDetailResponse,
    summary="Get a notification",
)
async def get_notification(
    notification_id: str,
    user_id: CurrentUserIdDep,
    service: DispatchServiceDep,
) -> NotificationDetailResponse:
    result = await service.get(notification_id, user_id)
    if not result.is_ok:
        raise to_http_exception(result.error)
    return NotificationDetailResponse(
        data=NotificationResponse.model_validate(result.value),
        correlation_id=get_correlation_id(),
    )


@router.post(
    "/notifications/{notification_id}/retry",
    response_model=OkResponse,
    summary="Retry delivery",
    description="Reset the notification to `pending` whatever its status, then enqueue a new delivery job.",
)
async def retry_notification(
    notification_id: str,
    user_id: CurrentUserIdDep,
    service: DispatchServiceDep,
    enqueue: EnqueuerDep,
) -> OkResponse:
    found = await service.get(notification_id, user_id)
    if not found.is_ok:
        raise to_http_exception(found.error)

    reset = await service.retry(notification_id, user_id)
    if not reset.is_ok:
        raise to_http_exception(reset.error)
    notification = reset.value

    try:
        await enqueue(
            DeliveryJob(
                notification_id=notification.id,
                channel=notification.channel,
                correlation_id=get_correlation_id(),
                metadata=notification.metadata or None,
            )
        )
    except QueueUnavailableError:
        raise _queue_unavailable() from None

    return OkResponse()


@router.delete(
    "/notifications/{notification_id}",
    response_model=OkResponse,
    summary="Delete a notification",
)
async def delete_notification(
    notification_id: str,
    user_id: CurrentUserIdDep,
    service: DispatchServiceDep,
) -> OkResponse:
    result = await service.mark_as_deleted(notification_id, user_id)
    if not result.is_ok:
        raise to_http_exception(result.error)
    logger.info("Notification deleted", extra={"notification_id": notification_id})
    return OkResponse()


# ============================================================================
# Channels and health
# ============================================================================


@router.get(
    "/channels",
    response_model=ChannelListResponse,
    summary="List delivery channels",
    description="Availability reflects configuration presence, not live health checks.",
)
async def list_channels(service: DispatchServiceDep) -> ChannelListResponse:
    return ChannelListResponse(
        data=[ChannelResponse.model_validate(c) for c in service.describe_channels()],
        correlation_id=get_correlation_id(),
    )


@router.get("/health", response_model=HealthResponse, summary="Service health")
async def health(limiter: RateLimiterDep) -> HealthResponse:
    if limiter is None:
        limiter_health = RateLimitHealth(status=RateLimitProtectionStatus.DISABLED)
    else:
        state = limiter.protection_state()
        limiter_health = RateLimitHealth(
            status=state.status,
            consecutive_failures=state.consecutive_failures,
            last_error=state.last_error,
        )

    overall = "degraded" if limiter_health.status == RateLimitProtectionStatus.DEGRADED else "ok"
    return HealthResponse(
        status=overall,
        version=get_app_settings().version,
        rate_limiter=limiter_health,
    )


__all__ = ["router"]
