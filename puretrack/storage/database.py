"""
PostgreSQL access for puretrack stores.

Every repository mutation is a single statement, so the wrapper only
hands out pooled connections per call; nothing here holds a connection
or transaction across more than one logical step.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import asyncpg

from puretrack.config.settings import get_settings

logger = logging.getLogger(__name__)


class Database:
    """
    Async PostgreSQL connection pool shared by the repositories.

    One instance is created by the process entry point (CLI command or
    API lifespan) and handed to every repository that needs it.

    Usage:
        db = Database()
        await db.connect()

        acknowledged = await db.conditional_write(
            "UPDATE alert_digests SET is_acknowledged = TRUE "
            "WHERE digest_id = $1 AND is_acknowledged = FALSE RETURNING digest_id",
            digest_id,
        )

        await db.close()
    """

    def __init__(
        self,
        database_url: str | None = None,
        min_size: int | None = None,
        max_size: int | None = None,
    ):
        settings = get_settings()

        self._database_url = database_url or str(settings.database_url)
        self._min_size = min_size or settings.db_pool_min_size
        self._max_size = max_size or settings.db_pool_max_size

        self._pool: asyncpg.Pool | None = None

    async def connect(self) -> None:
        """Open the connection pool."""
        try:
            self._pool = await asyncpg.create_pool(
                self._database_url,
                min_size=self._min_size,
                max_size=self._max_size,
                command_timeout=60,
            )
            logger.info(
                "Database connected (pool: %d-%d)", self._min_size, self._max_size,
            )
        except Exception as e:
            logger.error("Failed to connect to database: %s", e)
            raise

    async def close(self) -> None:
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("Database connection closed")

    @property
    def pool(self) -> asyncpg.Pool:
        """Get connection pool, raising if not connected."""
        if self._pool is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._pool

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        async with self.pool.acquire() as conn:
            yield conn

    async def execute(self, query: str, *args: Any) -> str:
        """Run a statement; returns the PostgreSQL status string."""
        async with self.acquire() as conn:
            return await conn.execute(query, *args)

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        async with self.acquire() as conn:
            return await conn.fetch(query, *args)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        async with self.acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        async with self.acquire() as conn:
            return await conn.fetchval(query, *args)

    async def conditional_write(self, query: str, *args: Any) -> bool:
        """
        Run a guarded single-row write.

        ``query`` must end in a ``RETURNING`` clause. The guard lives in
        the statement itself (``ON CONFLICT DO NOTHING``, a version
        compare, ``WHERE NOT is_acknowledged``), so a row comes back only
        when the guard held.

        Returns:
            True if a row was written, False if the guard rejected it.
        """
        return await self.fetchval(query, *args) is not None

    async def health_check(self) -> bool:
        """True if ``SELECT 1`` succeeds."""
        try:
            result = await self.fetchval("SELECT 1")
            return result == 1
        except Exception:
            return False
