"""RFC 7807 problem detail schemas."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ProblemDetail(BaseModel):
    """Problem details document returned for every error response."""

    type: str = Field(default="about:blank", description="Error type identifier")
    title: str = Field(description="Short summary of the problem type")
    status: int = Field(description="HTTP status code")
    detail: str = Field(description="Human-readable explanation")
    instance: str | None = Field(default=None, description="URI of this occurrence")
    code: str | None = Field(default=None, description="Machine-readable error code")
    correlation_id: str | None = Field(default=None, description="Request correlation id")


class ValidationError(BaseModel):
    """One field-level validation failure."""

    field: str
    message: str
    type: str
    value: Any = None


class ValidationProblemDetail(ProblemDetail):
    errors: list[ValidationError] = Field(default_factory=list)


__all__ = ["ProblemDetail", "ValidationError", "ValidationProblemDetail"]
