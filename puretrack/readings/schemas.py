"""Schema definitions for sensor readings.

A ``SensorSnapshot`` is what a device publishes: one timestamped message
carrying all three water parameters. The evaluator works on
``SensorReading`` values, one parameter each, so a snapshot is fanned
out before evaluation.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal

Parameter = Literal["tds", "ph", "turbidity"]

VALID_PARAMETERS: frozenset[str] = frozenset({"tds", "ph", "turbidity"})

# Fan-out order for snapshots
PARAMETER_ORDER: tuple[str, ...] = ("tds", "ph", "turbidity")

PARAMETER_UNITS: dict[str, str] = {
    "tds": "ppm",
    "ph": "",
    "turbidity": "NTU",
}

PARAMETER_LABELS: dict[str, str] = {
    "tds": "TDS (Total Dissolved Solids)",
    "ph": "pH Level",
    "turbidity": "Turbidity",
}


class InvalidReadingError(ValueError):
    """Raised when a reading or snapshot fails validation."""


def _parse_timestamp(value: Any) -> datetime:
    """Accept epoch milliseconds, ISO strings or datetimes; always return UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError as e:
            raise InvalidReadingError(f"Invalid timestamp {value!r}") from e
    else:
        raise InvalidReadingError(f"Invalid timestamp {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class SensorReading:
    """A single parameter measurement from one device.

    Attributes:
        device_id: Reporting device.
        parameter: Which water parameter was measured.
        value: Measured value in the parameter's unit.
        observed_at: When the device took the measurement (UTC).
    """

    device_id: str
    parameter: str
    value: float
    observed_at: datetime

    def __post_init__(self) -> None:
        if not self.device_id:
            raise InvalidReadingError("Reading is missing device_id")
        if self.parameter not in VALID_PARAMETERS:
            raise InvalidReadingError(
                f"Invalid parameter {self.parameter!r}. "
                f"Must be one of: {sorted(VALID_PARAMETERS)}"
            )
        if isinstance(self.value, bool) or not isinstance(self.value, (int, float)):
            raise InvalidReadingError(f"Reading value must be numeric, got {self.value!r}")
        if not math.isfinite(self.value):
            raise InvalidReadingError(f"Reading value must be finite, got {self.value!r}")
        if self.observed_at.tzinfo is None:
            raise InvalidReadingError("observed_at must be timezone-aware")


@dataclass(frozen=True)
class SensorSnapshot:
    """One device message with every parameter it measured."""

    device_id: str
    observed_at: datetime
    tds: float | None = None
    ph: float | None = None
    turbidity: float | None = None

    def readings(self) -> list[SensorReading]:
        """Split into per-parameter readings, skipping absent values.

        Raises:
            InvalidReadingError: If any present value is malformed.
        """
        result: list[SensorReading] = []
        for parameter in PARAMETER_ORDER:
            value = getattr(self, parameter)
            if value is None:
                continue
            result.append(
                SensorReading(
                    device_id=self.device_id,
                    parameter=parameter,
                    value=value,
                    observed_at=self.observed_at,
                )
            )
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SensorSnapshot":
        """Build a snapshot from an ingestion payload.

        Accepts ``deviceId``/``device_id`` and ``timestamp``/``observed_at``
        (epoch milliseconds or ISO-8601).

        Raises:
            InvalidReadingError: If required fields are missing.
        """
        device_id = data.get("device_id") or data.get("deviceId")
        if not device_id:
            raise InvalidReadingError("Snapshot is missing deviceId")

        raw_ts = data.get("observed_at", data.get("timestamp"))
        if raw_ts is None:
            raise InvalidReadingError("Snapshot is missing timestamp")

        return cls(
            device_id=str(device_id),
            observed_at=_parse_timestamp(raw_ts),
            tds=data.get("tds"),
            ph=data.get("ph"),
            turbidity=data.get("turbidity"),
        )
