"""Notification transport configuration.

Selects how rendered digests leave the process and holds transport
credentials. All settings can be overridden via ``NOTIFICATIONS_*``
environment variables.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

NotifierBackend = Literal["smtp", "webhook", "log"]


class NotificationConfig(BaseSettings):
    """Configuration for digest delivery."""

    model_config = SettingsConfigDict(
        env_prefix="NOTIFICATIONS_",
        case_sensitive=False,
        extra="ignore",
    )

    backend: NotifierBackend = Field(
        default="log",
        description="Delivery transport: smtp, webhook, or log (development)",
    )

    from_address: str = Field(
        default="alerts@puretrack.app",
        description="Envelope and header sender address",
    )
    from_name: str = Field(
        default="PureTrack Alerts",
        description="Display name for the sender",
    )

    # SMTP
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = Field(default=587, ge=1, le=65535)
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = Field(
        default=True,
        description="Upgrade the connection with STARTTLS before login",
    )
    smtp_timeout_seconds: float = Field(default=30.0, gt=0.0)

    # Webhook mail relay
    webhook_url: str | None = Field(
        default=None,
        description="Mail relay endpoint receiving JSON POSTs",
    )
    webhook_token: str | None = Field(
        default=None,
        description="Bearer token sent to the mail relay",
    )
    webhook_timeout_seconds: float = Field(default=10.0, gt=0.0)
