"""Alert service: the ingestion pipeline from reading to digest.

Stages, in order:
1. Validate and record the reading in history
2. Evaluate thresholds and trends (stateless, ``evaluator.py``)
3. Persist each candidate as an AlertEvent
4. Resolve recipients over the email-enabled preference snapshot
5. Fold the alert into each recipient's digest

Store failures are isolated per reading, per alert and per recipient
aggregation: they are logged and counted, never raised, so one bad
write cannot block the rest of a snapshot.
"""

import asyncio
import logging
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from puretrack.alerts.config import AlertConfig
from puretrack.alerts.content import summarize_for_digest
from puretrack.alerts.evaluator import evaluate
from puretrack.alerts.repository import AlertRepository
from puretrack.alerts.schemas import AlertEvent
from puretrack.digests.aggregator import DigestAggregator
from puretrack.digests.errors import AggregationConflictError
from puretrack.digests.schemas import DigestItem
from puretrack.observability.metrics import MetricsCollector
from puretrack.readings.repository import ReadingRepository
from puretrack.readings.schemas import InvalidReadingError, SensorReading, SensorSnapshot
from puretrack.recipients.config import RecipientConfig
from puretrack.recipients.repository import PreferenceRepository
from puretrack.recipients.resolver import resolve_recipients
from puretrack.recipients.schemas import NotificationPreference
from puretrack.thresholds.categories import categorize_alert
from puretrack.thresholds.config import ThresholdConfig
from puretrack.thresholds.repository import ThresholdRepository

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ProcessingResult:
    """What one ingestion call did."""

    readings: int = 0
    dropped: int = 0
    alerts: list[AlertEvent] = field(default_factory=list)
    aggregations: Counter = field(default_factory=Counter)
    failed_aggregations: int = 0
    failed_readings: int = 0
    failed_alerts: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "readings": self.readings,
            "dropped": self.dropped,
            "alerts": [a.id for a in self.alerts],
            "aggregations": dict(self.aggregations),
            "failed_aggregations": self.failed_aggregations,
            "failed_readings": self.failed_readings,
            "failed_alerts": self.failed_alerts,
        }


class AlertService:
    """Orchestrator for alert detection, persistence and digest routing.

    Every collaborator is injected; the service owns no connections.
    """

    def __init__(
        self,
        readings: ReadingRepository,
        thresholds: ThresholdRepository,
        alerts: AlertRepository,
        preferences: PreferenceRepository,
        aggregator: DigestAggregator,
        config: AlertConfig | None = None,
        recipient_config: RecipientConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._readings = readings
        self._thresholds = thresholds
        self._alerts = alerts
        self._preferences = preferences
        self._aggregator = aggregator
        self._config = config or AlertConfig()
        self._recipient_config = recipient_config or RecipientConfig()
        self._clock = clock
        self._metrics = metrics

    async def process_snapshot(
        self,
        snapshot: SensorSnapshot | dict[str, Any],
    ) -> ProcessingResult:
        """Main entry point: one device message with up to three parameters.

        Args:
            snapshot: Parsed snapshot or raw ingestion payload.

        Returns:
            ProcessingResult. Malformed input is dropped and counted.
        """
        result = ProcessingResult()
        try:
            if isinstance(snapshot, dict):
                snapshot = SensorSnapshot.from_dict(snapshot)
            readings = snapshot.readings()
        except InvalidReadingError as e:
            self._drop(result, "invalid_reading", e)
            return result

        await self._run(readings, result)
        return result

    async def process_reading(self, reading: SensorReading) -> ProcessingResult:
        """Process a single-parameter reading."""
        result = ProcessingResult()
        await self._run([reading], result)
        return result

    async def _run(self, readings: list[SensorReading], result: ProcessingResult) -> None:
        thresholds = await self._thresholds.get_config()

        events: list[AlertEvent] = []
        for reading in readings:
            result.readings += 1
            try:
                events.extend(await self._detect(reading, thresholds, result))
            except Exception as e:
                result.failed_readings += 1
                logger.error(
                    "Failed to process %s reading from %s: %s",
                    reading.parameter, reading.device_id, e,
                )

        if not events:
            return

        preferences = await self._preferences.list_email_enabled()
        for event in events:
            await self._route(event, preferences, thresholds, result)

        logger.info(
            "Processed %d reading(s): %d alert(s), aggregations %s, %d failed",
            result.readings,
            len(result.alerts),
            dict(result.aggregations),
            result.failed_aggregations,
        )

    async def _detect(
        self,
        reading: SensorReading,
        thresholds: ThresholdConfig,
        result: ProcessingResult,
    ) -> list[AlertEvent]:
        """Record history, evaluate, persist. Returns the created events."""
        await self._readings.add(reading)

        history: list[SensorReading] = []
        trend = thresholds.trend_detection
        if trend.enabled:
            since = reading.observed_at - timedelta(minutes=trend.time_window_minutes)
            history = await self._readings.get_recent(
                reading.device_id,
                reading.parameter,
                since,
                reading.observed_at,
                limit=self._config.history_limit,
            )

        try:
            candidates = evaluate(reading, thresholds, history, self._config)
        except ValueError as e:
            self._drop(result, "invalid_candidate", e)
            return []

        events = []
        for candidate in candidates:
            try:
                event = await self._alerts.create(candidate)
            except Exception as e:
                result.failed_alerts += 1
                logger.error(
                    "Failed to persist %s %s alert for %s: %s",
                    candidate.parameter, candidate.kind, candidate.device_id, e,
                )
                continue
            events.append(event)
            result.alerts.append(event)
            if self._metrics is not None:
                self._metrics.record_alert_created(event.parameter, event.kind, event.severity)
        return events

    async def _route(
        self,
        event: AlertEvent,
        preferences: list[NotificationPreference],
        thresholds: ThresholdConfig,
        result: ProcessingResult,
    ) -> None:
        """Aggregate one event into every matching recipient's digest."""
        recipients = resolve_recipients(
            event, preferences, self._clock(), self._recipient_config,
        )
        if not recipients:
            logger.debug("No recipients for alert %s", event.id)
            return

        category = categorize_alert(event.parameter, event.value, thresholds)
        item = DigestItem(
            event_id=event.id,
            summary=summarize_for_digest(
                event.parameter,
                event.value,
                event.severity,
                event.device_building,
                event.device_floor,
            ),
            severity=event.severity,
            parameter=event.parameter,
            device_name=event.device_name,
            value=event.value,
            observed_at=event.created_at,
        )

        outcomes = await asyncio.gather(
            *(self._aggregator.aggregate(r, category, item) for r in recipients),
            return_exceptions=True,
        )

        for recipient, outcome in zip(recipients, outcomes):
            if isinstance(outcome, AggregationConflictError):
                result.failed_aggregations += 1
                logger.error(
                    "Digest aggregation for %s lost alert %s: %s",
                    recipient.user_id, event.id, outcome,
                )
            elif isinstance(outcome, BaseException):
                result.failed_aggregations += 1
                if self._metrics is not None:
                    self._metrics.record_aggregation("failed")
                logger.error(
                    "Digest aggregation for %s failed for alert %s: %s",
                    recipient.user_id, event.id, outcome,
                )
            else:
                result.aggregations[outcome] += 1

    def _drop(self, result: ProcessingResult, reason: str, error: Exception) -> None:
        result.dropped += 1
        if self._metrics is not None:
            self._metrics.record_reading_dropped(reason)
        logger.warning("Dropped input (%s): %s", reason, error)
