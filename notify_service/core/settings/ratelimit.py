"""Admission rate limit settings."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ._sanitizers import sanitize_inline_numeric


class RateLimitSettings(BaseSettings):
    """Sliding-window limits applied to notification creation.

    Environment variables use RATE_LIMIT_ prefix.
    Example: RATE_LIMIT_MAX_REQUESTS=20, RATE_LIMIT_WINDOW_SECONDS=60
    """

    enabled: bool = Field(default=True, description="Enable admission rate limiting")
    max_requests: int = Field(
        default=20,
        ge=1,
        le=100_000,
        description="Requests admitted per caller key per window",
    )
    window_seconds: int = Field(
        default=60,
        ge=1,
        le=86_400,
        description="Window length in seconds",
    )
    key_prefix: str = Field(
        default="rl",
        min_length=1,
        max_length=50,
        pattern=r"^[a-zA-Z0-9_:-]+$",
        description="Redis key prefix for window entries",
    )
    failure_threshold: int = Field(
        default=3,
        ge=1,
        le=100,
        description="Consecutive Redis failures before protection is reported as degraded",
    )

    @field_validator("max_requests", "window_seconds", mode="before")
    @classmethod
    def _normalize_numbers(cls, value: Any) -> Any:
        return sanitize_inline_numeric(value)

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
