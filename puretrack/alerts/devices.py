"""Device directory lookups.

Devices are registered and owned by the device-management service. The
alert store only needs a display name and location to enrich events.
"""

import json
import logging
from dataclasses import dataclass

from puretrack.storage.database import Database

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeviceInfo:
    """Display details for a device."""

    device_id: str
    name: str
    building: str | None = None
    floor: str | None = None


class DeviceRepository:
    """Read-only access to the ``devices`` table."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_tables(self) -> None:
        """Create the devices table if missing (development setups only)."""
        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS devices (
                device_id TEXT PRIMARY KEY,
                name TEXT,
                metadata JSONB NOT NULL DEFAULT '{}'
            )
        """)

    async def get(self, device_id: str) -> DeviceInfo | None:
        """Look up a device.

        Args:
            device_id: Device identifier.

        Returns:
            DeviceInfo or None if the device is not registered.
        """
        row = await self._db.fetchrow(
            "SELECT device_id, name, metadata FROM devices WHERE device_id = $1",
            device_id,
        )
        if row is None:
            return None

        metadata = row["metadata"] or {}
        if isinstance(metadata, str):
            metadata = json.loads(metadata)
        location = metadata.get("location") or {}

        return DeviceInfo(
            device_id=row["device_id"],
            name=row["name"] or row["device_id"],
            building=location.get("building") or None,
            floor=location.get("floor") or None,
        )
