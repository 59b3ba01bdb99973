"""Domain errors and the Result container for the notification pipeline.

Store, channel and dispatch operations return ``Result`` values instead of
raising. Only two boundaries convert them back into exceptions:

- the HTTP layer, via ``to_http_exception`` (rendered as problem+json)
- the queue worker, via ``Result.unwrap`` (so taskiq can retry the job)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Generic, TypeVar

from notify_service.core.exceptions import (
    AppException,
    InternalServerException,
    NotFoundException,
    RateLimitException,
    ServiceUnavailableException,
    ValidationException,
)


@dataclass(frozen=True, slots=True)
class NotificationError:
    """Base for all domain errors. ``code`` and ``status_code`` are per subclass."""

    code: ClassVar[str] = "INTERNAL_ERROR"
    status_code: ClassVar[int] = 500

    @property
    def message(self) -> str:
        return "An unexpected error occurred"


@dataclass(frozen=True, slots=True)
class NotificationNotFound(NotificationError):
    """Missing, or owned by another tenant. The two cases are indistinguishable on purpose."""

    notification_id: str

    code: ClassVar[str] = "NOT_FOUND"
    status_code: ClassVar[int] = 404

    @property
    def message(self) -> str:
        return f"Notification {self.notification_id} not found"


@dataclass(frozen=True, slots=True)
class ChannelUnavailable(NotificationError):
    channel: str
    reason: str | None = None

    code: ClassVar[str] = "CHANNEL_UNAVAILABLE"
    status_code: ClassVar[int] = 503

    @property
    def message(self) -> str:
        if self.reason:
            return f"Channel '{self.channel}' unavailable: {self.reason}"
        return f"Channel '{self.channel}' unavailable"


@dataclass(frozen=True, slots=True)
class DatabaseError(NotificationError):
    """Backing store fault.

    ``cause`` is for logs only; ``message`` never exposes it.
    """

    operation: str
    cause: str = ""

    code: ClassVar[str] = "DATABASE_ERROR"
    status_code: ClassVar[int] = 500

    @property
    def message(self) -> str:
        return "A database error occurred"


@dataclass(frozen=True, slots=True)
class InvalidPayload(NotificationError):
    detail: str

    code: ClassVar[str] = "INVALID_PAYLOAD"
    status_code: ClassVar[int] = 422

    @property
    def message(self) -> str:
        return self.detail


@dataclass(frozen=True, slots=True)
class RateLimitExceeded(NotificationError):
    retry_after: int

    code: ClassVar[str] = "RATE_LIMIT_EXCEEDED"
    status_code: ClassVar[int] = 429

    @property
    def message(self) -> str:
        return f"Rate limit exceeded. Try again in {self.retry_after} seconds."


class ResultError(Exception):
    """Raised by ``Result.unwrap`` on a failed result."""

    def __init__(self, error: NotificationError) -> None:
        self.error = error
        super().__init__(f"{error.code}: {error.message}")


T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Result(Generic[T]):
    """Either a value or a ``NotificationError``.

    Example:
        result = await store.find_by_id(nid, user_id)
        if not result.is_ok:
            return Result.fail(result.error)
        notification = result.value
    """

    value: T | None = None
    error: NotificationError | None = None

    @classmethod
    def ok(cls, value: T | None = None) -> Result[T]:
        return cls(value=value)

    @classmethod
    def fail(cls, error: NotificationError) -> Result[T]:
        return cls(error=error)

    @property
    def is_ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, or raise ``ResultError`` carrying the domain error."""
        if self.error is not None:
            raise ResultError(self.error)
        return self.value  # type: ignore[return-value]


def to_http_exception(error: NotificationError) -> AppException:
    """Map a domain error to the HTTP exception the API renders."""
    match error:
        case NotificationNotFound():
            return NotFoundException(
                detail=error.message,
                type="notification-not-found",
                extra={"notification_id": error.notification_id},
            )
        case InvalidPayload():
            return ValidationException(detail=error.message, type="invalid-payload")
        case RateLimitExceeded():
            return RateLimitException(detail=error.message, retry_after=error.retry_after)
        case ChannelUnavailable():
            return ServiceUnavailableException(
                detail=error.message,
                type="channel-unavailable",
                code=error.code,
                extra={"channel": error.channel},
            )
        case DatabaseError():
            return InternalServerException(
                detail=error.message, type="database-error", code=error.code
            )
        case _:
            return InternalServerException(code=error.code)


__all__ = [
    "ChannelUnavailable",
    "DatabaseError",
    "InvalidPayload",
    "NotificationError",
    "NotificationNotFound",
    "RateLimitExceeded",
    "Result",
    "ResultError",
    "to_http_exception",
]
