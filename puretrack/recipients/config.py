"""Recipient resolution configuration.

All settings can be overridden via ``RECIPIENTS_*`` environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RecipientConfig(BaseSettings):
    """Configuration for recipient filtering."""

    model_config = SettingsConfigDict(
        env_prefix="RECIPIENTS_",
        case_sensitive=False,
        extra="ignore",
    )

    quiet_hours_minute_precision: bool = Field(
        default=False,
        description=(
            "Compare quiet-hours windows to the minute. When false only the "
            "hour component of start/end is used (22:30 behaves as 22:00)"
        ),
    )
