"""Schema definitions for alert candidates and persisted alert events.

An ``AlertCandidate`` is what the evaluator emits: a detected condition
without identity. The alert store turns each candidate into an
``AlertEvent``, which maps 1:1 to the ``alert_events`` table.
"""

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

from puretrack.readings.schemas import VALID_PARAMETERS

AlertKind = Literal["threshold", "trend"]

VALID_KINDS: frozenset[str] = frozenset({"threshold", "trend"})

AlertSeverity = Literal["Advisory", "Warning", "Critical"]

VALID_SEVERITIES: frozenset[str] = frozenset({"Advisory", "Warning", "Critical"})

TrendDirection = Literal["increasing", "decreasing"]


def _validate(parameter: str, kind: str, severity: str) -> None:
    if parameter not in VALID_PARAMETERS:
        raise ValueError(
            f"Invalid parameter {parameter!r}. "
            f"Must be one of: {sorted(VALID_PARAMETERS)}"
        )
    if kind not in VALID_KINDS:
        raise ValueError(
            f"Invalid kind {kind!r}. Must be one of: {sorted(VALID_KINDS)}"
        )
    if severity not in VALID_SEVERITIES:
        raise ValueError(
            f"Invalid severity {severity!r}. "
            f"Must be one of: {sorted(VALID_SEVERITIES)}"
        )


@dataclass(frozen=True)
class AlertCandidate:
    """A detected threshold breach or trend, not yet persisted.

    Attributes:
        device_id: Device the reading came from.
        parameter: Water parameter that triggered.
        kind: ``threshold`` or ``trend``.
        severity: Advisory, Warning or Critical.
        value: The reading value that triggered.
        threshold: The breached bound (threshold alerts only).
        trend_direction: increasing/decreasing (trend alerts only).
        change_rate: Absolute percentage change (trend alerts only).
        previous_value: Earliest value in the trend window (trend alerts only).
        observed_at: Reading timestamp.
    """

    device_id: str
    parameter: str
    kind: str
    severity: str
    value: float
    observed_at: datetime
    threshold: float | None = None
    trend_direction: str | None = None
    change_rate: float | None = None
    previous_value: float | None = None

    def __post_init__(self) -> None:
        _validate(self.parameter, self.kind, self.severity)
        if self.kind == "trend" and self.trend_direction not in ("increasing", "decreasing"):
            raise ValueError("Trend candidates require trend_direction")

    @property
    def metadata(self) -> dict[str, Any]:
        """Trend context persisted alongside the event."""
        if self.kind != "trend":
            return {}
        return {
            "previousValue": self.previous_value,
            "changeRate": self.change_rate,
        }


@dataclass
class AlertEvent:
    """A persisted alert record from the ``alert_events`` table.

    Attributes:
        id: UUID4 identifier, assigned only by the alert store.
        device_id: Device the reading came from.
        device_name: Display name, or "Unknown Device" if lookup failed.
        parameter: Water parameter.
        kind: threshold or trend.
        severity: Advisory, Warning or Critical.
        value: Reading value.
        threshold: Breached bound, if any.
        trend_direction: Trend direction, if any.
        message: Human-readable description.
        recommended_action: Suggested operator response.
        device_building: Optional location detail.
        device_floor: Optional location detail.
        status: Lifecycle status owned by the alert CRUD surface.
        metadata: Kind-specific context (trend change rate, ...).
        created_at: When the event was persisted.
    """

    device_id: str
    device_name: str
    parameter: str
    kind: str
    severity: str
    value: float
    message: str
    recommended_action: str
    threshold: float | None = None
    trend_direction: str | None = None
    device_building: str | None = None
    device_floor: str | None = None
    status: str = "Active"
    metadata: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def __post_init__(self) -> None:
        _validate(self.parameter, self.kind, self.severity)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "id": self.id,
            "device_id": self.device_id,
            "device_name": self.device_name,
            "device_building": self.device_building,
            "device_floor": self.device_floor,
            "parameter": self.parameter,
            "kind": self.kind,
            "severity": self.severity,
            "value": self.value,
            "threshold": self.threshold,
            "trend_direction": self.trend_direction,
            "message": self.message,
            "recommended_action": self.recommended_action,
            "status": self.status,
            "metadata": self.metadata,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AlertEvent":
        """Create an AlertEvent from a dictionary or database row."""
        created_at = data.get("created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        elif created_at is None:
            created_at = datetime.now(timezone.utc)

        metadata = data.get("metadata") or {}
        if isinstance(metadata, str):
            metadata = json.loads(metadata)

        return cls(
            id=data["id"],
            device_id=data["device_id"],
            device_name=data.get("device_name") or "Unknown Device",
            device_building=data.get("device_building"),
            device_floor=data.get("device_floor"),
            parameter=data["parameter"],
            kind=data["kind"],
            severity=data["severity"],
            value=float(data["value"]),
            threshold=data.get("threshold"),
            trend_direction=data.get("trend_direction"),
            message=data["message"],
            recommended_action=data["recommended_action"],
            status=data.get("status", "Active"),
            metadata=metadata,
            created_at=created_at,
        )
