"""FastAPI dependencies for the notifications feature.

Provides Annotated type aliases for clean dependency injection in route handlers.

Example usage:
    from notify_service.features.notifications.dependencies import (
        CurrentUserIdDep,
        DispatchServiceDep,
    )

    @router.get("/notifications")
    async def list_notifications(
        user_id: CurrentUserIdDep,
        service: DispatchServiceDep,
    ) -> NotificationListResponse:
        ...
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Depends, Request

from notify_service.core.exceptions import ServiceUnavailableException, UnauthorizedException
from notify_service.core.settings import get_app_settings, get_rate_limit_settings
from notify_service.features.notifications.errors import RateLimitExceeded, to_http_exception
from notify_service.features.notifications.service import NotificationDispatchService
from notify_service.infra.logging import get_lazy_logger
from notify_service.infra.metrics.prometheus import rate_limit_rejections_total
from notify_service.infra.ratelimit import FallbackRateLimiter, client_key
from notify_service.workers.notifications.tasks import DeliveryJob, enqueue_delivery

logger = logging.getLogger(__name__)
lazy_logger = get_lazy_logger(__name__)

Enqueuer = Callable[[DeliveryJob], Awaitable[str]]


def get_current_user_id(request: Request) -> str:
    """Tenant id from the gateway-supplied user header.

    Raises:
        UnauthorizedException: When the header is missing or blank.
    """
    header = get_app_settings().user_id_header
    user_id = (request.headers.get(header) or "").strip()
    if not user_id:
        raise UnauthorizedException("Authentication required")
    return user_id


def get_dispatch_service(request: Request) -> NotificationDispatchService:
    service = getattr(request.app.state, "dispatch_service", None)
    if service is None:
        raise ServiceUnavailableException("Notification service is not ready")
    return service


def get_rate_limiter(request: Request) -> FallbackRateLimiter | None:
    """Admission limiter built at startup; None when limiting is disabled."""
    return getattr(request.app.state, "rate_limiter", None)


def get_enqueuer() -> Enqueuer:
    return enqueue_delivery


CurrentUserIdDep = Annotated[str, Depends(get_current_user_id)]
DispatchServiceDep = Annotated[NotificationDispatchService, Depends(get_dispatch_service)]
RateLimiterDep = Annotated[FallbackRateLimiter | None, Depends(get_rate_limiter)]
EnqueuerDep = Annotated[Enqueuer, Depends(get_enqueuer)]


async def enforce_rate_limit(request: Request, limiter: RateLimiterDep) -> None:
    """Reject the request with 429 once the caller's window is full.

    Runs as a route dependency, so the check happens before the request
    body is validated.
    """
    if limiter is None or not get_rate_limit_settings().enabled:
        return

    key = client_key(request, get_app_settings().trusted_proxy_ips)
    if not await limiter.is_rate_limited(key):
        lazy_logger.debug(lambda: f"Rate limit check passed for {key}")
        return

    state = await limiter.get_state(key)
    retry_after = state.retry_after()
    rate_limit_rejections_total.labels(endpoint=request.url.path).inc()
    logger.warning(
        "Rate limit exceeded",
        extra={"client": key, "retry_after": retry_after, "reset_at": state.reset_at},
    )
    raise to_http_exception(RateLimitExceeded(retry_after))


__all__ = [
    "CurrentUserIdDep",
    "DispatchServiceDep",
    "Enqueuer",
    "EnqueuerDep",
    "RateLimiterDep",
    "enforce_rate_limit",
    "get_current_user_id",
    "get_dispatch_service",
    "get_enqueuer",
    "get_rate_limiter",
]
