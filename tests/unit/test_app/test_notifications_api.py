"""HTTP tests for the notifications API."""

from __future__ import annotations

import pytest

from notify_service.features.notifications.dependencies import get_enqueuer
from notify_service.infra.ratelimit import (
    FallbackRateLimiter,
    InMemoryRateLimiter,
    RateLimitStateTracker,
)
from notify_service.infra.tasks import QueueUnavailableError

API = "/api/v1"
PROBLEM_JSON = "application/problem+json"


def _payload(**overrides) -> dict:
    payload = {"title": "Deploy", "body": "Deploy finished", "channel": "in-app"}
    payload.update(overrides)
    return payload


async def _create(client, headers, **overrides) -> str:
    response = await client.post(f"{API}/notifications", json=_payload(**overrides), headers=headers)
    assert response.status_code == 202, response.text
    return response.json()["notificationId"]


class TestCreateNotification:
    async def test_accepted_and_enqueued(self, client, user_headers, enqueued, repository):
        response = await client.post(
            f"{API}/notifications",
            json=_payload(channel="webhook", metadata={"priority": "high"}),
            headers={**user_headers, "X-Correlation-ID": "req-123"},
        )

        assert response.status_code == 202
        body = response.json()
        assert body["jobId"] == "job-1"
        assert body["correlationId"] == "req-123"
        assert response.headers["x-correlation-id"] == "req-123"

        [job] = enqueued
        assert job.notification_id == body["notificationId"]
        assert job.channel == "webhook"
        assert job.correlation_id == "req-123"
        assert job.metadata == {"priority": "high"}

        stored = await repository.find_by_id(body["notificationId"], "user-123")
        assert stored.value.status == "pending"
        assert stored.value.correlation_id == "req-123"

    async def test_generates_correlation_id(self, client, user_headers):
        response = await client.post(f"{API}/notifications", json=_payload(), headers=user_headers)

        assert response.status_code == 202
        assert response.json()["correlationId"] == response.headers["x-correlation-id"]

    async def test_unknown_fields_are_ignored(self, client, user_headers):
        response = await client.post(
            f"{API}/notifications", json=_payload(priority=5), headers=user_headers
        )
        assert response.status_code == 202

    @pytest.mark.parametrize(
        "payload",
        [
            _payload(title=""),
            _payload(title="x" * 101),
            _payload(body="x" * 1001),
            _payload(channel="sms"),
            {"title": "t", "body": "b"},
        ],
    )
    async def test_invalid_payload(self, client, user_headers, enqueued, payload):
        response = await client.post(f"{API}/notifications", json=payload, headers=user_headers)

        assert response.status_code == 422
        assert response.headers["content-type"] == PROBLEM_JSON
        problem = response.json()
        assert problem["code"] == "INVALID_PAYLOAD"
        assert problem["errors"]
        assert enqueued == []

    async def test_missing_user_is_unauthorized(self, client):
        response = await client.post(f"{API}/notifications", json=_payload())

        assert response.status_code == 401
        assert response.json()["code"] == "UNAUTHORIZED"

    async def test_queue_unavailable_removes_notification(self, app, client, user_headers, repository):
        async def failing_enqueue(job) -> str:
            raise QueueUnavailableError("broker down")

        app.dependency_overrides[get_enqueuer] = lambda: failing_enqueue

        response = await client.post(f"{API}/notifications", json=_payload(), headers=user_headers)

        assert response.status_code == 503
        assert response.json()["code"] == "QUEUE_UNAVAILABLE"
        listed = await repository.list_for_user("user-123")
        assert listed.value == []


class TestRateLimit:
    @pytest.fixture
    def rate_limiter(self):
        return FallbackRateLimiter(
            None,
            InMemoryRateLimiter(max_requests=2, window_seconds=60),
            RateLimitStateTracker(),
        )

    async def test_third_request_is_rejected(self, client, user_headers):
        for _ in range(2):
            await _create(client, user_headers)

        response = await client.post(f"{API}/notifications", json=_payload(), headers=user_headers)

        assert response.status_code == 429
        assert response.headers["content-type"] == PROBLEM_JSON
        assert 1 <= int(response.headers["retry-after"]) <= 60
        assert response.json()["code"] == "RATE_LIMIT_EXCEEDED"

    async def test_limit_applies_before_validation(self, client, user_headers):
        for _ in range(2):
            await _create(client, user_headers)

        response = await client.post(
            f"{API}/notifications", json={"title": ""}, headers=user_headers
        )

        assert response.status_code == 429

    async def test_limit_is_per_client(self, client, user_headers):
        for _ in range(2):
            await _create(client, user_headers)

        # The test transport connects from 127.0.0.1, a trusted proxy
        response = await client.post(
            f"{API}/notifications",
            json=_payload(),
            headers={**user_headers, "X-Forwarded-For": "198.51.100.20"},
        )

        assert response.status_code == 202


class TestReadNotifications:
    async def test_list_own_notifications(self, client, user_headers):
        first = await _create(client, user_headers)
        await _create(client, {"X-User-ID": "someone-else"})

        response = await client.get(f"{API}/notifications", headers=user_headers)

        assert response.status_code == 200
        assert [n["id"] for n in response.json()["data"]] == [first]

    async def test_list_filters(self, client, user_headers):
        await _create(client, user_headers, channel="webhook")
        await _create(client, user_headers, channel="in-app")

        response = await client.get(
            f"{API}/notifications",
            params={"channel": "webhook", "status": "pending"},
            headers=user_headers,
        )

        data = response.json()["data"]
        assert len(data) == 1
        assert data[0]["channel"] == "webhook"
        assert "correlationId" in response.json()

    async def test_list_rejects_bad_limit(self, client, user_headers):
        response = await client.get(
            f"{API}/notifications", params={"limit": 0}, headers=user_headers
        )
        assert response.status_code == 422

    async def test_get_one(self, client, user_headers):
        notification_id = await _create(client, user_headers, metadata={"k": "v"})

        response = await client.get(f"{API}/notifications/{notification_id}", headers=user_headers)

        data = response.json()["data"]
        assert data["id"] == notification_id
        assert data["status"] == "pending"
        assert data["metadata"] == {"k": "v"}
        assert {"readAt", "correlationId", "createdAt", "updatedAt"} <= data.keys()
        assert "created_at" not in data

    async def test_other_tenant_gets_404(self, client, user_headers):
        notification_id = await _create(client, user_headers)

        response = await client.get(
            f"{API}/notifications/{notification_id}", headers={"X-User-ID": "intruder"}
        )

        assert response.status_code == 404
        problem = response.json()
        assert problem["code"] == "NOT_FOUND"
        assert problem["type"] == "notification-not-found"


class TestMutations:
    async def test_mark_all_read(self, client, user_headers):
        notification_id = await _create(client, user_headers)

        response = await client.patch(
            f"{API}/notifications", json={"action": "read"}, headers=user_headers
        )

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        detail = await client.get(f"{API}/notifications/{notification_id}", headers=user_headers)
        assert detail.json()["data"]["readAt"] is not None

    async def test_mark_all_unknown_action(self, client, user_headers):
        response = await client.patch(
            f"{API}/notifications", json={"action": "archive"}, headers=user_headers
        )

        assert response.status_code == 422
        assert response.json()["code"] == "INVALID_PAYLOAD"

    async def test_retry_resets_and_requeues(self, client, user_headers, service, enqueued):
        notification_id = await _create(client, user_headers)
        record = (await service.get(notification_id, "user-123")).value
        await service.deliver(record)

        response = await client.post(
            f"{API}/notifications/{notification_id}/retry", headers=user_headers
        )

        assert response.status_code == 200
        assert (await service.get(notification_id, "user-123")).value.status == "pending"
        assert [job.notification_id for job in enqueued] == [notification_id, notification_id]

    async def test_retry_unknown_is_404(self, client, user_headers):
        response = await client.post(
            f"{API}/notifications/0190f3c2-0000-7000-8000-0000000000aa/retry",
            headers=user_headers,
        )
        assert response.status_code == 404

    async def test_delete(self, client, user_headers):
        notification_id = await _create(client, user_headers)

        deleted = await client.delete(
            f"{API}/notifications/{notification_id}", headers=user_headers
        )
        again = await client.delete(f"{API}/notifications/{notification_id}", headers=user_headers)

        assert deleted.status_code == 200
        assert again.status_code == 404


class TestChannelsAndHealth:
    async def test_channels(self, client):
        response = await client.get(f"{API}/channels")

        assert response.status_code == 200
        assert {c["name"]: c["available"] for c in response.json()["data"]} == {
            "in-app": True,
            "webhook": True,
        }

    async def test_health_reports_limiter_state(self, client, rate_limiter):
        response = await client.get(f"{API}/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["rateLimiter"]["status"] == "active"

    async def test_health_degraded(self, client, rate_limiter):
        rate_limiter.tracker.mark_degraded("Redis not configured")

        body = (await client.get(f"{API}/health")).json()

        assert body["status"] == "degraded"
        assert body["rateLimiter"]["lastError"] == "Redis not configured"

    async def test_service_not_ready(self, app, client, user_headers):
        app.state.dispatch_service = None

        response = await client.get(f"{API}/notifications", headers=user_headers)

        assert response.status_code == 503

    async def test_metrics_endpoint(self, client, user_headers):
        await _create(client, user_headers)

        response = await client.get("/metrics")

        assert response.status_code == 200
        assert "notifications_accepted_total" in response.text
