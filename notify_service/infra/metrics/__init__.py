"""Prometheus metrics registry and collectors."""

from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from notify_service.infra.metrics.prometheus import REGISTRY

__all__ = ["CONTENT_TYPE_LATEST", "REGISTRY", "generate_latest"]
