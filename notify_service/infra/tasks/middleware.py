"""Taskiq middleware for delivery retries and job history.

This module provides middleware that hooks into Taskiq's lifecycle:

1. ExponentialBackoffRetryMiddleware - Re-enqueues failed jobs with a growing delay
2. JobHistoryMiddleware - Keeps bounded lists of recently completed/failed jobs

The middleware chain order matters:
- ExponentialBackoffRetryMiddleware must come first so the retry decision is
  made before anything records the outcome
- JobHistoryMiddleware records the final state of each job
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from redis.exceptions import RedisError
from taskiq import TaskiqMiddleware
from taskiq.exceptions import NoResultError
from taskiq.kicker import AsyncKicker

from notify_service.core.settings import get_task_settings
from notify_service.infra.cache import get_redis_client
from notify_service.infra.metrics.prometheus import (
    queue_jobs_dead_total,
    queue_retries_total,
)

if TYPE_CHECKING:
    from taskiq import TaskiqMessage, TaskiqResult

    from notify_service.core.settings.tasks import TaskSettings

logger = logging.getLogger(__name__)

RETRIES_LABEL = "_retries"
DELAY_LABEL = "delay"


def attempt_number(message: TaskiqMessage) -> int:
    """1-based number of the run this message represents."""
    try:
        return int(message.labels.get(RETRIES_LABEL, 0)) + 1
    except (TypeError, ValueError):
        return 1


class ExponentialBackoffRetryMiddleware(TaskiqMiddleware):
    """Re-enqueue failed jobs until ``max_attempts`` runs have happened.

    The retry is a fresh message carrying the attempt counter and a ``delay``
    label; AioPikaBroker publishes it to its delay queue, so the worker slot is
    released while the job waits. Once the budget is spent the job is logged
    as permanently failed and dropped.

    Example usage:
        broker = AioPikaBroker(...)
        broker.add_middlewares(ExponentialBackoffRetryMiddleware())
    """

    def __init__(self, settings: TaskSettings | None = None) -> None:
        super().__init__()
        self._settings = settings or get_task_settings()

    @property
    def max_attempts(self) -> int:
        return self._settings.max_attempts

    async def on_error(
        self,
        message: TaskiqMessage,
        result: TaskiqResult[Any],
        exception: BaseException,
    ) -> None:
        """Schedule the next attempt or give up.

        Args:
            message: The failed task message.
            result: The task result, updated so no result is stored for
                a run that will be retried.
            exception: The error raised by the task.
        """
        attempt = attempt_number(message)
        log_extra = {
            "task_id": message.task_id,
            "task_name": message.task_name,
            "attempt": attempt,
            "max_attempts": self.max_attempts,
            "error": str(exception),
        }

        if attempt >= self.max_attempts:
            queue_jobs_dead_total.labels(task_name=message.task_name).inc()
            logger.error("Job permanently failed after all retries", extra=log_extra)
            return

        delay = self._settings.backoff_delay(attempt)
        kicker: AsyncKicker[Any, Any] = AsyncKicker(
            task_name=message.task_name,
            broker=self.broker,
            labels=message.labels,
        ).with_labels(**{RETRIES_LABEL: attempt, DELAY_LABEL: delay})

        await kicker.kiq(*message.args, **message.kwargs)
        result.error = NoResultError()

        queue_retries_total.labels(task_name=message.task_name).inc()
        logger.warning(
            "Job failed, retry scheduled",
            extra={**log_extra, "delay_seconds": delay},
        )


class JobHistoryMiddleware(TaskiqMiddleware):
    """Record finished jobs in two capped Redis lists.

    A job is "finished" when it succeeded or when its last allowed attempt
    failed; intermediate failures that will be retried are not recorded.
    Nothing is written while Redis is not connected.

    Keys:
        ``{prefix}:completed`` - newest first, at most ``history_completed_limit``
        ``{prefix}:failed`` - newest first, at most ``history_failed_limit``
    """

    def __init__(
        self,
        settings: TaskSettings | None = None,
        key_prefix: str = "taskiq:history",
    ) -> None:
        super().__init__()
        self._settings = settings or get_task_settings()
        self._key_prefix = key_prefix

    def history_key(self, outcome: str) -> str:
        return f"{self._key_prefix}:{outcome}"

    async def post_execute(
        self,
        message: TaskiqMessage,
        result: TaskiqResult[Any],
    ) -> None:
        """Push the job onto the completed or failed list.

        Args:
            message: The task message.
            result: The task result.
        """
        if not result.is_err:
            outcome, limit = "completed", self._settings.history_completed_limit
        elif attempt_number(message) >= self._settings.max_attempts:
            outcome, limit = "failed", self._settings.history_failed_limit
        else:
            return

        redis = get_redis_client()
        if redis is None or limit <= 0:
            return

        entry = {
            "task_id": message.task_id,
            "task_name": message.task_name,
            "attempts": attempt_number(message),
            "kwargs": message.kwargs,
            "finished_at": datetime.now(UTC).isoformat(),
            "execution_time": result.execution_time,
        }
        if result.is_err:
            entry["error"] = repr(result.error)

        key = self.history_key(outcome)
        try:
            async with redis.pipeline(transaction=True) as pipe:
                pipe.lpush(key, json.dumps(entry, default=str))
                pipe.ltrim(key, 0, limit - 1)
                await pipe.execute()
        except (RedisError, OSError) as e:
            logger.warning(
                "Failed to record job history",
                extra={"task_id": message.task_id, "outcome": outcome, "error": str(e)},
            )


__all__ = [
    "DELAY_LABEL",
    "RETRIES_LABEL",
    "ExponentialBackoffRetryMiddleware",
    "JobHistoryMiddleware",
    "attempt_number",
]
