"""Digest aggregation and delivery configuration.

Caps, cooldowns and attempt budgets for alert digests. Defaults are the
long-standing production values; change them deliberately. All settings
can be overridden via ``DIGESTS_*`` environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from puretrack.retry import RetryPolicy


class DigestConfig(BaseSettings):
    """Configuration for digest aggregation, scheduling and rendering."""

    model_config = SettingsConfigDict(
        env_prefix="DIGESTS_",
        case_sensitive=False,
        extra="ignore",
    )

    # Record shape
    max_items: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Items kept per digest; the oldest is evicted beyond this",
    )
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Send attempts (successful or failed) before a digest stops",
    )
    cooldown_hours: float = Field(
        default=24.0,
        gt=0.0,
        description="Hours a digest waits after a send before it is eligible again",
    )

    # Scheduler
    page_size: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Maximum digests processed per scheduler run",
    )
    schedule_interval_hours: float = Field(
        default=6.0,
        gt=0.0,
        description="Hours between scheduler runs",
    )
    send_concurrency: int = Field(
        default=1,
        ge=1,
        le=16,
        description="Digests sent in parallel within a run (1 = sequential)",
    )

    # Optimistic upsert retries
    aggregation_max_attempts: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Tries per alert-to-digest upsert before giving up",
    )
    aggregation_base_delay: float = Field(
        default=0.05,
        ge=0.0,
        description="Seconds before the first upsert retry",
    )
    aggregation_max_delay: float = Field(
        default=1.0,
        ge=0.0,
        description="Upper bound on a single upsert retry delay",
    )

    # Rendering
    ack_base_url: str = Field(
        default="https://puretrack.app/acknowledge",
        description="Frontend route that forwards token and id to the acknowledge API",
    )
    product_name: str = "PureTrack"
    display_time_zone: str = Field(
        default="UTC",
        description="IANA zone used to format times in digest emails",
    )

    @property
    def aggregation_retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.aggregation_max_attempts,
            base_delay=self.aggregation_base_delay,
            max_delay=self.aggregation_max_delay,
        )
