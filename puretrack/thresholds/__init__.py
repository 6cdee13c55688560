"""Threshold configuration, its store, and digest categorisation."""

from puretrack.thresholds.categories import VALID_CATEGORIES, categorize_alert
from puretrack.thresholds.config import (
    DEFAULT_THRESHOLDS,
    ParameterThreshold,
    ThresholdConfig,
    TrendDetection,
)
from puretrack.thresholds.repository import ThresholdRepository

__all__ = [
    "DEFAULT_THRESHOLDS",
    "ParameterThreshold",
    "ThresholdConfig",
    "ThresholdRepository",
    "TrendDetection",
    "VALID_CATEGORIES",
    "categorize_alert",
]
