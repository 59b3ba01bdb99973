"""SMTP settings for the email delivery channel.

Environment variables use EMAIL_ prefix.
Example: EMAIL_SMTP_HOST=smtp.example.com, EMAIL_SMTP_USERNAME=mailer
"""

from __future__ import annotations

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EmailSettings(BaseSettings):
    """SMTP transport configuration.

    The email channel is only available when host, username and password
    are all present; a half-configured transport is treated as absent.
    """

    smtp_host: str | None = Field(
        default=None,
        max_length=255,
        description="SMTP server hostname",
    )
    smtp_port: int = Field(
        default=587,
        ge=1,
        le=65535,
        description="SMTP server port (587 for STARTTLS, 465 for implicit TLS)",
    )
    smtp_username: str | None = Field(
        default=None,
        max_length=255,
        description="SMTP authentication username",
    )
    smtp_password: SecretStr | None = Field(
        default=None,
        description="SMTP authentication password",
    )
    use_tls: bool = Field(
        default=True,
        description="Use STARTTLS after connecting",
    )
    use_ssl: bool = Field(
        default=False,
        description="Use implicit TLS. Forced on when smtp_port is 465",
    )
    from_email: str | None = Field(
        default=None,
        max_length=255,
        description="Sender address. Falls back to smtp_username when unset",
    )
    timeout: float = Field(
        default=10.0,
        ge=1.0,
        le=300.0,
        description="SMTP connection and command timeout in seconds",
    )

    model_config = SettingsConfigDict(
        env_prefix="EMAIL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @model_validator(mode="after")
    def _implicit_tls_port(self) -> EmailSettings:
        """Port 465 speaks TLS from the first byte, so STARTTLS must be off."""
        if self.smtp_port == 465:
            object.__setattr__(self, "use_ssl", True)
            object.__setattr__(self, "use_tls", False)
        return self

    @property
    def is_configured(self) -> bool:
        """True only when host, username and password are all set."""
        password = self.smtp_password.get_secret_value() if self.smtp_password else ""
        return bool(self.smtp_host and self.smtp_username and password)

    @property
    def sender(self) -> str | None:
        """Envelope sender address."""
        return self.from_email or self.smtp_username
