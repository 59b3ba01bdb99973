"""Request and job tracing helpers."""

from notify_service.infra.tracing.correlation import (
    CORRELATION_HEADER,
    correlation_scope,
    get_correlation_id,
    new_correlation_id,
)

__all__ = [
    "CORRELATION_HEADER",
    "correlation_scope",
    "get_correlation_id",
    "new_correlation_id",
]
