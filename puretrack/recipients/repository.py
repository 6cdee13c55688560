"""Preference snapshot lookups."""

import logging
from typing import Any

from puretrack.recipients.schemas import NotificationPreference
from puretrack.storage.database import Database

logger = logging.getLogger(__name__)


class PreferenceRepository:
    """Read-only access to the ``notification_preferences`` table."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_tables(self) -> None:
        """Create the preferences table if missing (development setups only)."""
        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS notification_preferences (
                user_id TEXT PRIMARY KEY,
                email TEXT NOT NULL,
                email_enabled BOOLEAN NOT NULL DEFAULT TRUE,
                severities TEXT[] NOT NULL DEFAULT '{}',
                parameters TEXT[] NOT NULL DEFAULT '{}',
                device_ids TEXT[] NOT NULL DEFAULT '{}',
                quiet_hours_enabled BOOLEAN NOT NULL DEFAULT FALSE,
                quiet_hours_start TEXT,
                quiet_hours_end TEXT,
                time_zone TEXT NOT NULL DEFAULT 'UTC'
            )
        """)

    async def list_email_enabled(self) -> list[NotificationPreference]:
        """Snapshot of every preference with email enabled.

        Rows that fail validation are skipped with a warning so one bad
        preference cannot block delivery to everyone else.
        """
        rows = await self._db.fetch(
            "SELECT * FROM notification_preferences WHERE email_enabled = TRUE"
        )
        preferences: list[NotificationPreference] = []
        for row in rows:
            try:
                preferences.append(_row_to_preference(row))
            except ValueError as e:
                logger.warning("Skipping invalid notification preference: %s", e)
        return preferences


def _row_to_preference(row: Any) -> NotificationPreference:
    """Convert an asyncpg Record to a NotificationPreference."""
    return NotificationPreference.from_dict(dict(row))
