"""Tests for the retry and job history taskiq middleware."""

from __future__ import annotations

import json
import logging
from typing import Any
from unittest.mock import MagicMock

import pytest
from taskiq import TaskiqMessage, TaskiqResult
from taskiq.exceptions import NoResultError

from notify_service.core.settings.tasks import TaskSettings
from notify_service.infra.metrics.prometheus import queue_jobs_dead_total, queue_retries_total
from notify_service.infra.tasks import middleware as middleware_module
from notify_service.infra.tasks.middleware import (
    DELAY_LABEL,
    RETRIES_LABEL,
    ExponentialBackoffRetryMiddleware,
    JobHistoryMiddleware,
    attempt_number,
)

TASK_NAME = "notifications.deliver"


def _message(retries: int | None = None) -> TaskiqMessage:
    labels: dict[str, Any] = {}
    if retries is not None:
        labels[RETRIES_LABEL] = retries
    return TaskiqMessage(
        task_id="task-1",
        task_name=TASK_NAME,
        labels=labels,
        args=[],
        kwargs={"notification_id": "n-1", "channel": "webhook"},
    )


def _result(*, is_err: bool) -> TaskiqResult[Any]:
    return TaskiqResult(
        is_err=is_err,
        return_value=None,
        execution_time=0.25,
        error=RuntimeError("HTTP 500") if is_err else None,
    )


def _counter(metric) -> float:
    return metric.labels(task_name=TASK_NAME)._value.get()


class RecordingKicker:
    """Stands in for AsyncKicker and records what would be re-enqueued."""

    instances: list[RecordingKicker] = []

    def __init__(self, task_name: str, broker: Any, labels: dict[str, Any]) -> None:
        self.task_name = task_name
        self.labels = dict(labels)
        self.kicked: tuple[tuple, dict] | None = None
        RecordingKicker.instances.append(self)

    def with_labels(self, **labels: Any) -> RecordingKicker:
        self.labels.update(labels)
        return self

    async def kiq(self, *args: Any, **kwargs: Any) -> None:
        self.kicked = (args, kwargs)


@pytest.fixture
def kicker(monkeypatch: pytest.MonkeyPatch) -> type[RecordingKicker]:
    RecordingKicker.instances = []
    monkeypatch.setattr(middleware_module, "AsyncKicker", RecordingKicker)
    return RecordingKicker


@pytest.fixture
def task_settings() -> TaskSettings:
    return TaskSettings(
        max_attempts=3,
        backoff_base_seconds=1.0,
        backoff_max_seconds=60.0,
        history_completed_limit=2,
        history_failed_limit=5,
    )


class TestAttemptNumber:
    def test_first_run(self):
        assert attempt_number(_message()) == 1

    def test_counts_retries(self):
        assert attempt_number(_message(retries=2)) == 3

    def test_string_label(self):
        message = _message()
        message.labels[RETRIES_LABEL] = "1"
        assert attempt_number(message) == 2


class TestExponentialBackoffRetryMiddleware:
    async def test_failed_first_attempt_is_requeued(self, kicker, task_settings):
        middleware = ExponentialBackoffRetryMiddleware(task_settings)
        middleware.set_broker(MagicMock())
        result = _result(is_err=True)
        before = _counter(queue_retries_total)

        await middleware.on_error(_message(), result, RuntimeError("HTTP 500"))

        [requeued] = kicker.instances
        assert requeued.task_name == TASK_NAME
        assert requeued.labels[RETRIES_LABEL] == 1
        assert requeued.labels[DELAY_LABEL] == 1.0
        assert requeued.kicked == ((), {"notification_id": "n-1", "channel": "webhook"})
        assert isinstance(result.error, NoResultError)
        assert _counter(queue_retries_total) == before + 1

    async def test_delay_doubles(self, kicker, task_settings):
        middleware = ExponentialBackoffRetryMiddleware(task_settings)
        middleware.set_broker(MagicMock())

        await middleware.on_error(_message(retries=1), _result(is_err=True), RuntimeError())

        assert kicker.instances[0].labels[RETRIES_LABEL] == 2
        assert kicker.instances[0].labels[DELAY_LABEL] == 2.0

    async def test_exhausted_job_is_dropped_and_logged(
        self, kicker, task_settings, caplog: pytest.LogCaptureFixture
    ):
        middleware = ExponentialBackoffRetryMiddleware(task_settings)
        middleware.set_broker(MagicMock())
        before = _counter(queue_jobs_dead_total)

        with caplog.at_level(logging.ERROR, logger=middleware_module.__name__):
            await middleware.on_error(_message(retries=2), _result(is_err=True), RuntimeError())

        assert kicker.instances == []
        assert _counter(queue_jobs_dead_total) == before + 1
        assert "Job permanently failed after all retries" in caplog.text

    async def test_single_attempt_budget_never_retries(self, kicker):
        middleware = ExponentialBackoffRetryMiddleware(TaskSettings(max_attempts=1))
        middleware.set_broker(MagicMock())

        await middleware.on_error(_message(), _result(is_err=True), RuntimeError())

        assert kicker.instances == []


class FakePipeline:
    def __init__(self) -> None:
        self.commands: list[tuple] = []
        self.executed = False

    async def __aenter__(self) -> FakePipeline:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        return None

    def lpush(self, key: str, value: str) -> None:
        self.commands.append(("lpush", key, value))

    def ltrim(self, key: str, start: int, end: int) -> None:
        self.commands.append(("ltrim", key, start, end))

    async def execute(self) -> None:
        self.executed = True


@pytest.fixture
def pipeline(monkeypatch: pytest.MonkeyPatch) -> FakePipeline:
    pipe = FakePipeline()
    redis = MagicMock()
    redis.pipeline = MagicMock(return_value=pipe)
    monkeypatch.setattr(middleware_module, "get_redis_client", lambda: redis)
    return pipe


class TestJobHistoryMiddleware:
    async def test_records_completed_job(self, pipeline, task_settings):
        middleware = JobHistoryMiddleware(task_settings)

        await middleware.post_execute(_message(), _result(is_err=False))

        assert pipeline.executed
        op, key, raw = pipeline.commands[0]
        assert (op, key) == ("lpush", "taskiq:history:completed")
        entry = json.loads(raw)
        assert entry["task_id"] == "task-1"
        assert entry["attempts"] == 1
        assert pipeline.commands[1] == ("ltrim", "taskiq:history:completed", 0, 1)

    async def test_records_final_failure(self, pipeline, task_settings):
        middleware = JobHistoryMiddleware(task_settings)

        await middleware.post_execute(_message(retries=2), _result(is_err=True))

        assert pipeline.commands[0][1] == "taskiq:history:failed"
        assert "HTTP 500" in json.loads(pipeline.commands[0][2])["error"]
        assert pipeline.commands[1] == ("ltrim", "taskiq:history:failed", 0, 4)

    async def test_skips_failure_that_will_be_retried(self, pipeline, task_settings):
        middleware = JobHistoryMiddleware(task_settings)

        await middleware.post_execute(_message(), _result(is_err=True))

        assert pipeline.commands == []

    async def test_skips_without_redis(self, monkeypatch: pytest.MonkeyPatch, task_settings):
        monkeypatch.setattr(middleware_module, "get_redis_client", lambda: None)
        middleware = JobHistoryMiddleware(task_settings)

        await middleware.post_execute(_message(), _result(is_err=False))
