"""Threshold configuration models.

Mirrors the single ``thresholds`` document operators edit through the
admin surface. Field names are snake_case in Python and camelCase in the
stored JSON document.
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class ParameterThreshold(_CamelModel):
    """Warning and critical bounds for one parameter. Any bound may be absent."""

    warning_min: float | None = None
    warning_max: float | None = None
    critical_min: float | None = None
    critical_max: float | None = None
    unit: str = ""


class TrendDetection(_CamelModel):
    """Percentage-change trend detection settings."""

    enabled: bool = True
    threshold_percentage: float = Field(default=15.0, gt=0.0)
    time_window_minutes: int = Field(default=30, ge=1)


class ThresholdConfig(_CamelModel):
    """Complete threshold configuration for all monitored parameters."""

    tds: ParameterThreshold
    ph: ParameterThreshold
    turbidity: ParameterThreshold
    trend_detection: TrendDetection = Field(default_factory=TrendDetection)

    @model_validator(mode="after")
    def _check_bounds(self) -> "ThresholdConfig":
        for name in ("tds", "ph", "turbidity"):
            bounds: ParameterThreshold = getattr(self, name)
            if (
                bounds.warning_min is not None
                and bounds.warning_max is not None
                and bounds.warning_min > bounds.warning_max
            ):
                raise ValueError(f"{name}: warningMin must not exceed warningMax")
            if (
                bounds.critical_min is not None
                and bounds.critical_max is not None
                and bounds.critical_min > bounds.critical_max
            ):
                raise ValueError(f"{name}: criticalMin must not exceed criticalMax")
        return self

    def for_parameter(self, parameter: str) -> ParameterThreshold:
        """Bounds for ``parameter`` (one of tds, ph, turbidity)."""
        if parameter not in ("tds", "ph", "turbidity"):
            raise KeyError(parameter)
        return getattr(self, parameter)


DEFAULT_THRESHOLDS = ThresholdConfig(
    tds=ParameterThreshold(
        warning_min=0, warning_max=500, critical_min=0, critical_max=1000, unit="ppm",
    ),
    ph=ParameterThreshold(
        warning_min=6.0, warning_max=8.5, critical_min=5.5, critical_max=9.0, unit="",
    ),
    turbidity=ParameterThreshold(
        warning_min=0, warning_max=5, critical_min=0, critical_max=10, unit="NTU",
    ),
    trend_detection=TrendDetection(
        enabled=True, threshold_percentage=15, time_window_minutes=30,
    ),
)
