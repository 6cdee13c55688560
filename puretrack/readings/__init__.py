"""Sensor reading shapes and the history lookup used by trend detection."""

from puretrack.readings.repository import ReadingRepository
from puretrack.readings.schemas import (
    PARAMETER_LABELS,
    PARAMETER_UNITS,
    VALID_PARAMETERS,
    InvalidReadingError,
    Parameter,
    SensorReading,
    SensorSnapshot,
)

__all__ = [
    "InvalidReadingError",
    "PARAMETER_LABELS",
    "PARAMETER_UNITS",
    "Parameter",
    "ReadingRepository",
    "SensorReading",
    "SensorSnapshot",
    "VALID_PARAMETERS",
]
