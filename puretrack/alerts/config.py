"""Alert evaluation configuration.

Controls trend severity banding and the size of the history slice used
for trend detection. Threshold bounds themselves are operator-editable
data (see ``puretrack.thresholds``), not settings. All settings can be
overridden via ``ALERTS_*`` environment variables.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AlertConfig(BaseSettings):
    """Configuration for the threshold/trend evaluator."""

    model_config = SettingsConfigDict(
        env_prefix="ALERTS_",
        case_sensitive=False,
        extra="ignore",
    )

    # Trend severity bands on abs(change rate) in percent
    trend_critical_percentage: float = Field(
        default=30.0,
        gt=0.0,
        description="Change rate strictly above which a trend alert is Critical",
    )
    trend_warning_percentage: float = Field(
        default=20.0,
        gt=0.0,
        description="Change rate strictly above which a trend alert is Warning",
    )

    history_limit: int = Field(
        default=10,
        ge=2,
        le=100,
        description="Maximum history samples considered for trend detection",
    )

    @model_validator(mode="after")
    def _check_bands(self) -> "AlertConfig":
        if self.trend_warning_percentage > self.trend_critical_percentage:
            raise ValueError(
                "trend_warning_percentage must not exceed trend_critical_percentage"
            )
        return self
