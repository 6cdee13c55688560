"""Alert store: turns candidates into persisted alert events.

Sole writer of ``AlertEvent.id``. Enriches each event with the device's
display name and location; a failed lookup degrades to an "Unknown
Device" placeholder instead of failing the alert.
"""

import json
import logging
from typing import Any

from puretrack.alerts.content import generate_alert_content
from puretrack.alerts.devices import DeviceInfo, DeviceRepository
from puretrack.alerts.schemas import AlertCandidate, AlertEvent
from puretrack.storage.database import Database

logger = logging.getLogger(__name__)

UNKNOWN_DEVICE = "Unknown Device"


class AlertRepository:
    """Repository for alert event persistence.

    Provides create and read operations for AlertEvent records stored
    in the ``alert_events`` table.
    """

    def __init__(
        self,
        database: Database,
        devices: DeviceRepository | None = None,
    ) -> None:
        self._db = database
        self._devices = devices or DeviceRepository(database)

    async def create_tables(self) -> None:
        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS alert_events (
                id TEXT PRIMARY KEY,
                device_id TEXT NOT NULL,
                device_name TEXT NOT NULL,
                device_building TEXT,
                device_floor TEXT,
                parameter TEXT NOT NULL,
                kind TEXT NOT NULL,
                severity TEXT NOT NULL,
                value DOUBLE PRECISION NOT NULL,
                threshold DOUBLE PRECISION,
                trend_direction TEXT,
                message TEXT NOT NULL,
                recommended_action TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'Active',
                metadata JSONB NOT NULL DEFAULT '{}',
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            );
            CREATE INDEX IF NOT EXISTS idx_alert_events_device_created
                ON alert_events (device_id, created_at DESC);
        """)

    async def _lookup_device(self, device_id: str) -> DeviceInfo:
        """Best-effort device lookup."""
        try:
            device = await self._devices.get(device_id)
        except Exception as e:
            logger.warning("Failed to fetch device information for %s: %s", device_id, e)
            device = None

        if device is None:
            return DeviceInfo(device_id=device_id, name=UNKNOWN_DEVICE)
        return device

    async def create(self, candidate: AlertCandidate) -> AlertEvent:
        """Persist a candidate as a new alert event.

        Args:
            candidate: Detected condition from the evaluator.

        Returns:
            The created AlertEvent with its generated identity.
        """
        device = await self._lookup_device(candidate.device_id)
        message, action = generate_alert_content(
            parameter=candidate.parameter,
            value=candidate.value,
            severity=candidate.severity,
            kind=candidate.kind,
            trend_direction=candidate.trend_direction,
            building=device.building,
            floor=device.floor,
        )

        event = AlertEvent(
            device_id=candidate.device_id,
            device_name=device.name,
            device_building=device.building,
            device_floor=device.floor,
            parameter=candidate.parameter,
            kind=candidate.kind,
            severity=candidate.severity,
            value=candidate.value,
            threshold=candidate.threshold,
            trend_direction=candidate.trend_direction,
            message=message,
            recommended_action=action,
            metadata=candidate.metadata,
        )

        sql = """
            INSERT INTO alert_events (
                id, device_id, device_name, device_building, device_floor,
                parameter, kind, severity, value, threshold, trend_direction,
                message, recommended_action, status, metadata, created_at
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15, $16)
            RETURNING *
        """
        row = await self._db.fetchrow(
            sql,
            event.id,
            event.device_id,
            event.device_name,
            event.device_building,
            event.device_floor,
            event.parameter,
            event.kind,
            event.severity,
            event.value,
            event.threshold,
            event.trend_direction,
            event.message,
            event.recommended_action,
            event.status,
            json.dumps(event.metadata),
            event.created_at,
        )

        logger.info(
            "Alert created: %s (%s %s %s on %s)",
            event.id, event.severity, event.parameter, event.kind, event.device_id,
        )
        return _row_to_event(row) if row is not None else event


def _row_to_event(row: Any) -> AlertEvent:
    """Convert an asyncpg Record to an AlertEvent."""
    return AlertEvent.from_dict(dict(row))
