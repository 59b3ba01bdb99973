"""Prometheus metrics for the notification pipeline."""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

# Custom registry so tests and multiple app instances don't collide with the default one
REGISTRY = CollectorRegistry()

DEFAULT_LATENCY_BUCKETS = (
    0.001,
    0.005,
    0.01,
    0.025,
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
    10.0,
)

# Admission
notifications_accepted_total = Counter(
    "notifications_accepted_total",
    "Notifications persisted and enqueued for delivery",
    ["channel"],
    registry=REGISTRY,
)

rate_limit_rejections_total = Counter(
    "rate_limit_rejections_total",
    "Requests rejected by the admission rate limiter",
    ["endpoint"],
    registry=REGISTRY,
)

rate_limit_protection_status = Gauge(
    "rate_limit_protection_status",
    "Rate limiter backend in use (1=distributed, 0.5=in-process fallback, 0=disabled)",
    registry=REGISTRY,
)

# Queue
queue_enqueue_total = Counter(
    "queue_enqueue_total",
    "Delivery jobs pushed to the queue",
    ["outcome"],
    registry=REGISTRY,
)

queue_retries_total = Counter(
    "queue_retries_total",
    "Delivery jobs re-scheduled after a failed attempt",
    ["task_name"],
    registry=REGISTRY,
)

queue_jobs_dead_total = Counter(
    "queue_jobs_dead_total",
    "Delivery jobs that exhausted their retry budget",
    ["task_name"],
    registry=REGISTRY,
)

# Delivery
notification_deliveries_total = Counter(
    "notification_deliveries_total",
    "Delivery attempts by channel and outcome",
    ["channel", "outcome"],
    registry=REGISTRY,
)

notification_delivery_duration_seconds = Histogram(
    "notification_delivery_duration_seconds",
    "Time spent in a channel send call",
    ["channel"],
    buckets=DEFAULT_LATENCY_BUCKETS,
    registry=REGISTRY,
)

# Database
database_query_duration_seconds = Histogram(
    "database_query_duration_seconds",
    "Database query duration in seconds",
    ["operation"],
    buckets=DEFAULT_LATENCY_BUCKETS,
    registry=REGISTRY,
)

application_info = Gauge(
    "application_info",
    "Application information",
    ["version", "service", "environment"],
    registry=REGISTRY,
)
