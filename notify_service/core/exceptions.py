"""HTTP-boundary exception classes.

These are raised only by the HTTP layer. Store, channel and dispatch code
returns domain errors inside a ``Result`` instead (see
``notify_service.features.notifications.errors``).
"""

from __future__ import annotations

from typing import Any

_TITLES = {
    400: "Bad Request",
    401: "Unauthorized",
    404: "Not Found",
    422: "Unprocessable Entity",
    429: "Too Many Requests",
    500: "Internal Server Error",
    503: "Service Unavailable",
}


class AppException(Exception):
    """Base application exception rendered as RFC 7807 problem details.

    Attributes:
        status_code: HTTP status code for the error.
        detail: Human-readable error message.
        type: Error type identifier (``type`` member of the problem document).
        title: Short, human-readable summary of the problem type.
        instance: URI reference identifying this occurrence.
        code: Stable machine-readable error code (``NOT_FOUND`` etc.).
        extra: Additional members merged into the problem document.

    Example:
        raise AppException(
            status_code=404,
            detail="Notification abc123 not found",
            type="notification-not-found",
            code="NOT_FOUND",
        )
    """

    def __init__(
        self,
        status_code: int,
        detail: str,
        type: str = "about:blank",
        title: str | None = None,
        instance: str | None = None,
        code: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.status_code = status_code
        self.detail = detail
        self.type = type
        self.title = title or self._default_title(status_code)
        self.instance = instance
        self.code = code
        self.extra = extra or {}
        super().__init__(detail)

    @staticmethod
    def _default_title(status_code: int) -> str:
        return _TITLES.get(status_code, "Error")


class NotFoundException(AppException):
    """Resource missing or owned by a different tenant."""

    def __init__(
        self,
        detail: str,
        type: str = "not-found",
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            status_code=404,
            detail=detail,
            type=type,
            title="Not Found",
            instance=instance,
            code="NOT_FOUND",
            extra=extra,
        )


class ValidationException(AppException):
    """Request payload failed validation."""

    def __init__(
        self,
        detail: str,
        type: str = "validation-error",
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            status_code=422,
            detail=detail,
            type=type,
            title="Validation Error",
            instance=instance,
            code="INVALID_PAYLOAD",
            extra=extra,
        )


class UnauthorizedException(AppException):
    """Caller identity is missing."""

    def __init__(
        self,
        detail: str,
        type: str = "unauthorized",
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            status_code=401,
            detail=detail,
            type=type,
            title="Unauthorized",
            instance=instance,
            code="UNAUTHORIZED",
            extra=extra,
        )


class RateLimitException(AppException):
    """Caller exceeded its admission budget.

    ``retry_after`` (seconds) is copied into ``extra`` so the exception
    handler can emit a ``Retry-After`` header.

    Example:
        raise RateLimitException(
            detail="Rate limit exceeded. Try again in 12 seconds.",
            retry_after=12,
            extra={"limit": 20, "window": 60},
        )
    """

    def __init__(
        self,
        detail: str,
        retry_after: int,
        type: str = "rate-limit-exceeded",
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.retry_after = retry_after
        super().__init__(
            status_code=429,
            detail=detail,
            type=type,
            title="Too Many Requests",
            instance=instance,
            code="RATE_LIMIT_EXCEEDED",
            extra={**(extra or {}), "retry_after": retry_after},
        )


class ServiceUnavailableException(AppException):
    """A downstream dependency (queue, channel) is unavailable."""

    def __init__(
        self,
        detail: str,
        type: str = "service-unavailable",
        instance: str | None = None,
        code: str = "SERVICE_UNAVAILABLE",
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            status_code=503,
            detail=detail,
            type=type,
            title="Service Unavailable",
            instance=instance,
            code=code,
            extra=extra,
        )


class InternalServerException(AppException):
    """Unexpected server-side failure. ``detail`` must not leak internals."""

    def __init__(
        self,
        detail: str = "An unexpected error occurred",
        type: str = "internal-error",
        instance: str | None = None,
        code: str = "INTERNAL_ERROR",
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            status_code=500,
            detail=detail,
            type=type,
            title="Internal Server Error",
            instance=instance,
            code=code,
            extra=extra,
        )
