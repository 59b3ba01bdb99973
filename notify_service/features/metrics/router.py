"""Prometheus metrics endpoint.

Endpoints:
    GET /metrics - Prometheus scrape endpoint

Metrics Exposed:
    - notifications_accepted_total - Notifications accepted by channel
    - notification_deliveries_total - Delivery attempts by channel and outcome
    - notification_delivery_duration_seconds - Channel send latency
    - rate_limit_rejections_total / rate_limit_protection_status
    - queue_enqueue_total / queue_retries_total / queue_jobs_dead_total
    - database_query_duration_seconds - Query execution time
    - application_info - Service version, name, and environment labels
"""

from __future__ import annotations

from fastapi import APIRouter, Response

from notify_service.infra.metrics import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """Render every collector in the application registry."""
    return Response(content=generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)


__all__ = ["router"]
