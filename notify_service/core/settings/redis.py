"""Redis configuration settings."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote, urlparse

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RedisSettings(BaseSettings):
    """Redis settings for the distributed rate limiter and job history.

    Environment variables use REDIS_ prefix, except the URL which is read
    from REDIS_URL directly.

    Supports bidirectional configuration:
    1. Provide REDIS_URL → components are parsed automatically
    2. Provide components (host, port, etc.) → URL is built automatically
    """

    # ──────────────────────────────────────────────────────────────
    # Connection configuration (bidirectional)
    # ──────────────────────────────────────────────────────────────

    redis_url: str | None = Field(
        default=None,
        alias="REDIS_URL",
        description="Redis connection URL (redis://[username:password@]host:port/db).",
    )
    enabled: bool = Field(
        default=True,
        description="Use Redis. When False the in-process fallbacks are used directly.",
    )
    host: str = Field(default="localhost")
    port: int = Field(default=6379, ge=1, le=65535)
    db: int = Field(default=0, ge=0, le=15)
    username: str | None = Field(default=None)
    password: SecretStr | None = Field(default=None)
    ssl_enabled: bool = Field(default=False, description="Use the rediss:// scheme")

    # ──────────────────────────────────────────────────────────────
    # Connection pool settings
    # ──────────────────────────────────────────────────────────────

    max_connections: int = Field(default=50, ge=1, le=1000)
    socket_timeout: float = Field(
        default=2.0,
        ge=0.1,
        le=30.0,
        description="Socket timeout in seconds; a slow Redis trips the in-memory fallback",
    )
    socket_connect_timeout: float = Field(default=2.0, ge=0.1, le=30.0)

    key_prefix: str = Field(
        default="notify:",
        min_length=1,
        max_length=100,
        pattern=r"^[a-zA-Z0-9_-]+:?$",
        description="Prefix for all keys written by this service",
    )

    @model_validator(mode="after")
    def _apply_url(self) -> RedisSettings:
        """Parse redis_url into component fields if provided."""
        if self.redis_url:
            parsed = urlparse(self.redis_url)
            if parsed.hostname:
                object.__setattr__(self, "host", parsed.hostname)
            if parsed.port:
                object.__setattr__(self, "port", parsed.port)
            if parsed.path and len(parsed.path) > 1:
                try:
                    object.__setattr__(self, "db", int(parsed.path.lstrip("/")))
                except ValueError:
                    pass
            if parsed.username:
                object.__setattr__(self, "username", parsed.username)
            if parsed.password:
                object.__setattr__(self, "password", SecretStr(parsed.password))
            if parsed.scheme == "rediss":
                object.__setattr__(self, "ssl_enabled", True)
        return self

    @property
    def url(self) -> str:
        """Build Redis URL from component fields."""
        scheme = "rediss" if self.ssl_enabled else "redis"
        auth = ""
        if self.username or self.password:
            username_part = quote(self.username) if self.username else ""
            password_part = quote(self.password.get_secret_value()) if self.password else ""
            if username_part and password_part:
                auth = f"{username_part}:{password_part}@"
            elif password_part:
                auth = f":{password_part}@"
        return f"{scheme}://{auth}{self.host}:{self.port}/{self.db}"

    @property
    def is_configured(self) -> bool:
        """Redis counts as configured once a URL or a non-default host is given."""
        return self.enabled and (self.redis_url is not None or self.host != "localhost")

    def connection_pool_kwargs(self) -> dict[str, Any]:
        """Return kwargs for redis.asyncio.ConnectionPool.from_url()."""
        return {
            "max_connections": self.max_connections,
            "socket_timeout": self.socket_timeout,
            "socket_connect_timeout": self.socket_connect_timeout,
            "decode_responses": True,
            "encoding": "utf-8",
        }

    def get_prefixed_key(self, key: str) -> str:
        """Get key with configured prefix."""
        return f"{self.key_prefix}{key}"

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        populate_by_name=True,
        extra="ignore",
        env_ignore_empty=True,
    )
