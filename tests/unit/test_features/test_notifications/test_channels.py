"""Tests for the email, webhook and in-app channels and the registry."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import aiosmtplib
import httpx
import pytest

from notify_service.core.settings.email import EmailSettings
from notify_service.core.settings.webhooks import WebhookSettings
from notify_service.features.notifications.channels import (
    ChannelRegistry,
    EmailChannel,
    InAppChannel,
    NotificationChannel,
    WebhookChannel,
    build_default_registry,
)
from notify_service.features.notifications.channels import email as email_module
from notify_service.features.notifications.errors import ChannelUnavailable
from notify_service.features.notifications.models import NotificationRecord


@pytest.fixture
def notification() -> NotificationRecord:
    now = datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)
    return NotificationRecord(
        id="0190f3c2-0000-7000-8000-000000000001",
        user_id="user-1",
        title="Deploy",
        body="Deploy finished",
        channel="webhook",
        status="pending",
        created_at=now,
        updated_at=now,
        correlation_id="corr-1",
        metadata={"to": "ops@example.com"},
    )


def _webhook(handler, **settings) -> WebhookChannel:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    config = WebhookSettings(url="https://hooks.example.com/notify", **settings)
    return WebhookChannel(config, client=client)


class TestWebhookChannel:
    async def test_posts_envelope_and_headers(self, notification):
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(204)

        channel = _webhook(handler, secret="s3cret")

        result = await channel.send(notification)

        assert result.is_ok
        request = captured[0]
        assert request.method == "POST"
        assert str(request.url) == "https://hooks.example.com/notify"
        assert request.headers["Authorization"] == "Bearer s3cret"
        assert request.headers["X-Correlation-ID"] == "corr-1"
        assert request.headers["Content-Type"] == "application/json"
        body = json.loads(request.content)
        assert body["id"] == notification.id
        assert body["title"] == "Deploy"
        assert body["correlationId"] == "corr-1"
        assert body["createdAt"] == "2026-01-02T03:04:05+00:00"

    async def test_no_authorization_without_secret(self, notification):
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200)

        await _webhook(handler).send(notification)

        assert "Authorization" not in captured[0].headers

    async def test_non_2xx_is_failure(self, notification):
        channel = _webhook(lambda request: httpx.Response(500))

        result = await channel.send(notification)

        assert isinstance(result.error, ChannelUnavailable)
        assert "HTTP 500" in result.error.message

    async def test_transport_error_is_failure(self, notification):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        result = await _webhook(handler).send(notification)

        assert isinstance(result.error, ChannelUnavailable)

    async def test_timeout_is_failure(self, notification):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        result = await _webhook(handler, timeout_seconds=2.0).send(notification)

        assert "timed out after 2.0s" in result.error.message

    @pytest.mark.parametrize("url", ["http://[::1", "http://hooks.example.com:abc/notify"])
    async def test_malformed_url_is_failure(self, notification, url):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        channel = WebhookChannel(WebhookSettings(url=url), client=client)

        assert channel.is_available()
        result = await channel.send(notification)

        assert isinstance(result.error, ChannelUnavailable)
        assert "request failed" in result.error.message

    async def test_unconfigured_is_unavailable(self, notification):
        channel = WebhookChannel(WebhookSettings(url=None))

        assert not channel.is_available()
        result = await channel.send(notification)
        assert isinstance(result.error, ChannelUnavailable)


def _email_settings(**overrides) -> EmailSettings:
    values = {
        "smtp_host": "smtp.example.com",
        "smtp_username": "mailer@example.com",
        "smtp_password": "pw",
    }
    values.update(overrides)
    return EmailSettings(**values)


class TestEmailChannel:
    async def test_sends_message(self, notification, monkeypatch: pytest.MonkeyPatch):
        smtp = MagicMock()
        smtp.__aenter__ = AsyncMock(return_value=smtp)
        smtp.__aexit__ = AsyncMock(return_value=None)
        smtp.login = AsyncMock()
        smtp.send_message = AsyncMock()
        factory = MagicMock(return_value=smtp)
        monkeypatch.setattr(email_module.aiosmtplib, "SMTP", factory)

        result = await EmailChannel(_email_settings()).send(notification)

        assert result.is_ok
        assert factory.call_args.kwargs["hostname"] == "smtp.example.com"
        assert factory.call_args.kwargs["start_tls"] is True
        smtp.login.assert_awaited_once_with("mailer@example.com", "pw")
        message = smtp.send_message.await_args.args[0]
        assert message["To"] == "ops@example.com"
        assert message["Subject"] == "Deploy"
        assert message["X-Correlation-ID"] == "corr-1"

    async def test_smtp_error_is_failure(self, notification, monkeypatch: pytest.MonkeyPatch):
        smtp = MagicMock()
        smtp.__aenter__ = AsyncMock(side_effect=aiosmtplib.SMTPConnectError("refused"))
        smtp.__aexit__ = AsyncMock(return_value=None)
        monkeypatch.setattr(email_module.aiosmtplib, "SMTP", MagicMock(return_value=smtp))

        result = await EmailChannel(_email_settings()).send(notification)

        assert isinstance(result.error, ChannelUnavailable)
        assert result.error.channel == "email"

    async def test_missing_recipient(self, notification):
        record = NotificationRecord(
            id=notification.id,
            user_id="user-1",
            title="t",
            body="b",
            channel="email",
            status="pending",
            created_at=notification.created_at,
            updated_at=notification.updated_at,
        )

        result = await EmailChannel(_email_settings()).send(record)

        assert result.error.reason == "metadata.to is missing"

    def test_partial_credentials_are_unavailable(self):
        assert not EmailChannel(_email_settings(smtp_password=None)).is_available()
        assert EmailChannel(_email_settings()).is_available()

    def test_port_465_uses_implicit_tls(self):
        settings = _email_settings(smtp_port=465)
        assert settings.use_ssl is True
        assert settings.use_tls is False


class TestInAppChannel:
    async def test_always_succeeds(self, notification):
        channel = InAppChannel()

        assert channel.is_available()
        assert (await channel.send(notification)).is_ok


class TestChannelRegistry:
    def test_lookup_by_name(self, stub_channel):
        webhook = stub_channel("webhook")
        registry = ChannelRegistry([InAppChannel(), webhook])

        assert registry.get("webhook") is webhook
        assert registry.get("sms") is None
        assert registry.names() == ["in-app", "webhook"]

    def test_duplicate_names_rejected(self, stub_channel):
        with pytest.raises(ValueError, match="Duplicate channel name"):
            ChannelRegistry([stub_channel("webhook"), stub_channel("webhook")])

    def test_default_registry_has_all_channels(self):
        from notify_service.core.settings import get_settings

        registry = build_default_registry(get_settings())

        assert registry.names() == ["email", "webhook", "in-app"]
        assert all(isinstance(registry.get(n), NotificationChannel) for n in registry.names())
