"""Threshold configuration store.

The configuration is a single JSON document in ``alert_settings``. Reads
never fail: a missing row, an invalid document, or an unreachable
database all fall back to ``DEFAULT_THRESHOLDS``.
"""

import json
import logging

from pydantic import ValidationError

from puretrack.storage.database import Database
from puretrack.thresholds.config import DEFAULT_THRESHOLDS, ThresholdConfig

logger = logging.getLogger(__name__)

SETTINGS_KEY = "thresholds"


class ThresholdRepository:
    """Load and save the threshold configuration document."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_tables(self) -> None:
        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS alert_settings (
                key TEXT PRIMARY KEY,
                document JSONB NOT NULL,
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            )
        """)

    async def get_config(self) -> ThresholdConfig:
        """Current configuration, or the built-in defaults.

        Returns:
            ThresholdConfig (never raises).
        """
        try:
            document = await self._db.fetchval(
                "SELECT document FROM alert_settings WHERE key = $1",
                SETTINGS_KEY,
            )
        except Exception as e:
            logger.warning("Failed to load threshold config, using defaults: %s", e)
            return DEFAULT_THRESHOLDS

        if document is None:
            return DEFAULT_THRESHOLDS

        if isinstance(document, str):
            try:
                document = json.loads(document)
            except json.JSONDecodeError as e:
                logger.warning("Threshold config is not valid JSON, using defaults: %s", e)
                return DEFAULT_THRESHOLDS

        try:
            return ThresholdConfig.model_validate(document)
        except ValidationError as e:
            logger.warning("Threshold config failed validation, using defaults: %s", e)
            return DEFAULT_THRESHOLDS

    async def save_config(self, config: ThresholdConfig) -> None:
        """Upsert the configuration document."""
        await self._db.execute(
            """
            INSERT INTO alert_settings (key, document, updated_at)
            VALUES ($1, $2, NOW())
            ON CONFLICT (key) DO UPDATE
            SET document = EXCLUDED.document, updated_at = NOW()
            """,
            SETTINGS_KEY,
            json.dumps(config.model_dump(by_alias=True)),
        )
        logger.info("Threshold config saved")
