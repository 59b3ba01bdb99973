"""Shared API schemas."""

from notify_service.core.schemas.base import CustomBase
from notify_service.core.schemas.error import (
    ProblemDetail,
    ValidationError,
    ValidationProblemDetail,
)

__all__ = ["CustomBase", "ProblemDetail", "ValidationError", "ValidationProblemDetail"]
