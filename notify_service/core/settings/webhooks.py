"""Outbound webhook channel settings."""

from __future__ import annotations

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class WebhookSettings(BaseSettings):
    """Configuration for the outbound webhook channel.

    Environment variables use WEBHOOK_ prefix.
    Example: WEBHOOK_URL=https://hooks.example.com/notify
    """

    url: str | None = Field(
        default=None,
        max_length=2048,
        description="Target URL every webhook notification is POSTed to",
    )
    secret: SecretStr | None = Field(
        default=None,
        description="Sent as a bearer token in the Authorization header when set",
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=120.0,
        description="Total timeout for one webhook request (seconds)",
    )

    model_config = SettingsConfigDict(
        env_prefix="WEBHOOK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @property
    def is_configured(self) -> bool:
        """A target is configured when the URL looks like http(s)."""
        return bool(self.url) and self.url.startswith("http")


__all__ = ["WebhookSettings"]
