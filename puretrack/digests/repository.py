"""Digest repository for persistence and scheduler queries.

Every mutation is a single conditional statement so a write never
holds a transaction open across more than one logical step:

- ``insert`` only succeeds if no digest exists at that id
- ``update_items`` is a compare-and-set on ``version``
- ``record_sent`` / ``record_failed_attempt`` only count while attempts remain
- ``acknowledge`` only flips an unacknowledged digest

A False return from ``insert`` or ``update_items`` means another writer
got there first; the aggregator re-reads and retries.
"""

import json
import logging
from datetime import datetime
from typing import Any

import asyncpg

from puretrack.digests.schemas import DigestItem, DigestRecord
from puretrack.storage.database import Database

logger = logging.getLogger(__name__)

# Store failures worth retrying within the aggregator's budget
TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    asyncpg.exceptions.SerializationError,
    asyncpg.exceptions.DeadlockDetectedError,
    asyncpg.exceptions.ConnectionDoesNotExistError,
    asyncpg.exceptions.TooManyConnectionsError,
    ConnectionError,
    TimeoutError,
)


class DigestRepository:
    """Repository for ``alert_digests`` records."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_tables(self) -> None:
        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS alert_digests (
                digest_id TEXT PRIMARY KEY,
                recipient_id TEXT NOT NULL,
                recipient_email TEXT NOT NULL,
                category TEXT NOT NULL,
                items JSONB NOT NULL DEFAULT '[]',
                created_at TIMESTAMPTZ NOT NULL,
                last_updated_at TIMESTAMPTZ NOT NULL,
                last_sent_at TIMESTAMPTZ,
                cooldown_until TIMESTAMPTZ NOT NULL,
                send_attempts INTEGER NOT NULL DEFAULT 0,
                max_attempts INTEGER NOT NULL DEFAULT 3,
                is_acknowledged BOOLEAN NOT NULL DEFAULT FALSE,
                acknowledged_at TIMESTAMPTZ,
                acknowledged_by TEXT,
                ack_token TEXT NOT NULL,
                version INTEGER NOT NULL DEFAULT 0,
                CHECK (send_attempts <= max_attempts)
            );
            CREATE INDEX IF NOT EXISTS idx_alert_digests_eligible
                ON alert_digests (cooldown_until)
                WHERE NOT is_acknowledged AND send_attempts < max_attempts;
        """)

    async def get(self, digest_id: str) -> DigestRecord | None:
        """Get a digest by id.

        Args:
            digest_id: Digest identity string.

        Returns:
            DigestRecord or None if not found.
        """
        row = await self._db.fetchrow(
            "SELECT * FROM alert_digests WHERE digest_id = $1", digest_id,
        )
        if row is None:
            return None
        return _row_to_digest(row)

    async def insert(self, record: DigestRecord) -> bool:
        """Create a digest if none exists at its id.

        Returns:
            True if inserted, False if the id was already taken.
        """
        sql = """
            INSERT INTO alert_digests (
                digest_id, recipient_id, recipient_email, category, items,
                created_at, last_updated_at, last_sent_at, cooldown_until,
                send_attempts, max_attempts, is_acknowledged, ack_token, version
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, 0)
            ON CONFLICT (digest_id) DO NOTHING
            RETURNING digest_id
        """
        return await self._db.conditional_write(
            sql,
            record.digest_id,
            record.recipient_id,
            record.recipient_email,
            record.category,
            record.items_json(),
            record.created_at,
            record.last_updated_at,
            record.last_sent_at,
            record.cooldown_until,
            record.send_attempts,
            record.max_attempts,
            record.is_acknowledged,
            record.ack_token,
        )

    async def update_items(
        self,
        digest_id: str,
        items: list[DigestItem],
        updated_at: datetime,
        expected_version: int,
    ) -> bool:
        """Replace the item list if nobody wrote since ``expected_version``.

        Returns:
            True if written, False on version conflict.
        """
        sql = """
            UPDATE alert_digests
            SET items = $2, last_updated_at = $3, version = version + 1
            WHERE digest_id = $1 AND version = $4
            RETURNING digest_id
        """
        return await self._db.conditional_write(
            sql,
            digest_id,
            json.dumps([item.to_dict() for item in items]),
            updated_at,
            expected_version,
        )

    async def find_eligible(self, now: datetime, limit: int = 50) -> list[DigestRecord]:
        """Digests ready to send, longest-waiting first.

        Eligible means unacknowledged, out of cooldown, and with send
        attempts remaining.

        Args:
            now: Current time.
            limit: Page size.

        Returns:
            Up to ``limit`` eligible digests.
        """
        sql = """
            SELECT * FROM alert_digests
            WHERE is_acknowledged = FALSE
              AND cooldown_until <= $1
              AND send_attempts < max_attempts
            ORDER BY cooldown_until ASC, digest_id ASC
            LIMIT $2
        """
        rows = await self._db.fetch(sql, now, limit)
        return [_row_to_digest(row) for row in rows]

    async def record_sent(
        self,
        digest_id: str,
        sent_at: datetime,
        cooldown_until: datetime,
    ) -> bool:
        """Bookkeeping after a successful send.

        Returns:
            True if updated, False if the digest was missing or exhausted.
        """
        sql = """
            UPDATE alert_digests
            SET last_sent_at = $2,
                cooldown_until = $3,
                send_attempts = send_attempts + 1,
                version = version + 1
            WHERE digest_id = $1 AND send_attempts < max_attempts
            RETURNING digest_id
        """
        return await self._db.conditional_write(sql, digest_id, sent_at, cooldown_until)

    async def record_failed_attempt(self, digest_id: str) -> bool:
        """Count a failed send against the attempt budget.

        Returns:
            True if updated, False if the digest was missing or exhausted.
        """
        sql = """
            UPDATE alert_digests
            SET send_attempts = send_attempts + 1, version = version + 1
            WHERE digest_id = $1 AND send_attempts < max_attempts
            RETURNING digest_id
        """
        return await self._db.conditional_write(sql, digest_id)

    async def acknowledge(
        self,
        digest_id: str,
        acknowledged_at: datetime,
        acknowledged_by: str | None = None,
    ) -> bool:
        """Mark a digest acknowledged.

        Returns:
            True if this call flipped the flag, False if it was already set
            or the digest does not exist.
        """
        sql = """
            UPDATE alert_digests
            SET is_acknowledged = TRUE,
                acknowledged_at = $2,
                acknowledged_by = $3,
                version = version + 1
            WHERE digest_id = $1 AND is_acknowledged = FALSE
            RETURNING digest_id
        """
        return await self._db.conditional_write(sql, digest_id, acknowledged_at, acknowledged_by)


def _row_to_digest(row: Any) -> DigestRecord:
    """Convert an asyncpg Record to a DigestRecord."""
    items = row["items"] or []
    if isinstance(items, str):
        items = json.loads(items)

    return DigestRecord(
        digest_id=row["digest_id"],
        recipient_id=row["recipient_id"],
        recipient_email=row["recipient_email"],
        category=row["category"],
        items=[DigestItem.from_dict(item) for item in items],
        created_at=row["created_at"],
        last_updated_at=row["last_updated_at"],
        last_sent_at=row["last_sent_at"],
        cooldown_until=row["cooldown_until"],
        send_attempts=row["send_attempts"],
        max_attempts=row["max_attempts"],
        is_acknowledged=row["is_acknowledged"],
        acknowledged_at=row["acknowledged_at"],
        acknowledged_by=row["acknowledged_by"],
        ack_token=row["ack_token"],
        version=row["version"],
    )
