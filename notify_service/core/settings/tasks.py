"""Delivery queue and worker settings.

Environment variables use TASK_ prefix.
Example: TASK_MAX_ATTEMPTS=3, TASK_WORKER_CONCURRENCY=5
"""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ._sanitizers import sanitize_inline_numeric


class TaskSettings(BaseSettings):
    """Retry, backoff, retention and concurrency for delivery jobs."""

    # ──────────────────────────────────────────────────────────────
    # Queue
    # ──────────────────────────────────────────────────────────────

    queue_name: str = Field(
        default="notifications",
        min_length=1,
        max_length=100,
        pattern=r"^[a-zA-Z0-9_-]+$",
        description="Queue name (prefixed with the RabbitMQ queue prefix)",
    )

    # ──────────────────────────────────────────────────────────────
    # Retry policy
    # ──────────────────────────────────────────────────────────────

    max_attempts: int = Field(
        default=3,
        ge=1,
        le=20,
        description="Total delivery attempts per job, including the first",
    )
    backoff_base_seconds: float = Field(
        default=1.0,
        ge=0.0,
        le=300.0,
        description="Delay before the first retry; doubled for every later retry",
    )
    backoff_max_seconds: float = Field(
        default=60.0,
        ge=0.0,
        le=3600.0,
        description="Upper bound for a single retry delay",
    )

    # ──────────────────────────────────────────────────────────────
    # Job history retention
    # ──────────────────────────────────────────────────────────────

    history_completed_limit: int = Field(
        default=500,
        ge=0,
        le=100_000,
        description="Recently completed jobs kept for inspection",
    )
    history_failed_limit: int = Field(
        default=200,
        ge=0,
        le=100_000,
        description="Permanently failed jobs kept for inspection",
    )

    # ──────────────────────────────────────────────────────────────
    # Worker
    # ──────────────────────────────────────────────────────────────

    worker_concurrency: int = Field(
        default=5,
        ge=1,
        le=1000,
        description="Deliveries a single worker process runs at once",
    )

    @field_validator(
        "max_attempts",
        "worker_concurrency",
        "history_completed_limit",
        "history_failed_limit",
        mode="before",
    )
    @classmethod
    def _normalize_numbers(cls, value: Any) -> Any:
        return sanitize_inline_numeric(value)

    def backoff_delay(self, attempt: int) -> float:
        """Delay before re-running a job whose ``attempt``-th run just failed.

        Attempt 1 waits ``backoff_base_seconds``, attempt 2 twice that, and so on.
        """
        delay = self.backoff_base_seconds * (2 ** max(attempt - 1, 0))
        return min(delay, self.backoff_max_seconds)

    model_config = SettingsConfigDict(
        env_prefix="TASK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
