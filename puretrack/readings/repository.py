"""Reading history lookups for trend detection.

The ``sensor_readings`` table is written by the telemetry ingestion
service; this repository only needs the bounded, most-recent slice of a
device's history for one parameter.
"""

import logging
from datetime import datetime
from typing import Any

from puretrack.readings.schemas import SensorReading
from puretrack.storage.database import Database

logger = logging.getLogger(__name__)


class ReadingRepository:
    """Read access to per-device reading history."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_tables(self) -> None:
        """Create the history table if missing (development setups only)."""
        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS sensor_readings (
                id BIGSERIAL PRIMARY KEY,
                device_id TEXT NOT NULL,
                parameter TEXT NOT NULL,
                value DOUBLE PRECISION NOT NULL,
                observed_at TIMESTAMPTZ NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_sensor_readings_device_param_time
                ON sensor_readings (device_id, parameter, observed_at DESC);
        """)

    async def add(self, reading: SensorReading) -> None:
        """Append a reading to history."""
        await self._db.execute(
            """
            INSERT INTO sensor_readings (device_id, parameter, value, observed_at)
            VALUES ($1, $2, $3, $4)
            """,
            reading.device_id,
            reading.parameter,
            reading.value,
            reading.observed_at,
        )

    async def get_recent(
        self,
        device_id: str,
        parameter: str,
        since: datetime,
        until: datetime,
        limit: int = 10,
    ) -> list[SensorReading]:
        """Get the latest ``limit`` readings in ``[since, until]``, oldest first.

        Args:
            device_id: Device to look up.
            parameter: Parameter to look up.
            since: Window start (inclusive).
            until: Window end (inclusive), normally the current reading's time.
            limit: Maximum number of samples.

        Returns:
            Readings ordered by ``observed_at`` ascending.
        """
        sql = """
            SELECT device_id, parameter, value, observed_at FROM (
                SELECT device_id, parameter, value, observed_at
                FROM sensor_readings
                WHERE device_id = $1 AND parameter = $2
                  AND observed_at >= $3 AND observed_at <= $4
                ORDER BY observed_at DESC
                LIMIT $5
            ) recent
            ORDER BY observed_at ASC
        """
        rows = await self._db.fetch(sql, device_id, parameter, since, until, limit)
        return [_row_to_reading(row) for row in rows]


def _row_to_reading(row: Any) -> SensorReading:
    """Convert an asyncpg Record to a SensorReading."""
    return SensorReading(
        device_id=row["device_id"],
        parameter=row["parameter"],
        value=float(row["value"]),
        observed_at=row["observed_at"],
    )
