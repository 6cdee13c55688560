"""Alert detection for water-quality readings.

Components:
- AlertCandidate / AlertEvent: Detected condition and its persisted form
- AlertConfig: Pydantic settings for trend severity bands and history size
- evaluate: Stateless threshold and trend checks
- AlertRepository / DeviceRepository: Persistence and device enrichment
- AlertService: Pipeline from reading to digest aggregation
- AlertKind / AlertSeverity: Literal types for type safety
- VALID_KINDS / VALID_SEVERITIES: Frozensets for runtime validation
"""

from puretrack.alerts.config import AlertConfig
from puretrack.alerts.devices import DeviceInfo, DeviceRepository
from puretrack.alerts.evaluator import check_threshold, check_trend, evaluate
from puretrack.alerts.repository import AlertRepository
from puretrack.alerts.schemas import (
    VALID_KINDS,
    VALID_SEVERITIES,
    AlertCandidate,
    AlertEvent,
    AlertKind,
    AlertSeverity,
)
from puretrack.alerts.service import AlertService, ProcessingResult

__all__ = [
    "AlertCandidate",
    "AlertConfig",
    "AlertEvent",
    "AlertKind",
    "AlertRepository",
    "AlertService",
    "AlertSeverity",
    "DeviceInfo",
    "DeviceRepository",
    "ProcessingResult",
    "VALID_KINDS",
    "VALID_SEVERITIES",
    "check_threshold",
    "check_trend",
    "evaluate",
]
