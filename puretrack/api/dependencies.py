"""
Dependency injection for FastAPI endpoints.
"""

from puretrack.digests.acknowledgement import AcknowledgementHandler
from puretrack.digests.repository import DigestRepository
from puretrack.observability.metrics import get_metrics
from puretrack.storage.database import Database

# Global instances (initialized on first request)
_database: Database | None = None
_acknowledgement_handler: AcknowledgementHandler | None = None


async def get_database() -> Database:
    """Get the shared database, connecting on first use."""
    global _database

    if _database is None:
        _database = Database()
        await _database.connect()

    return _database


async def get_acknowledgement_handler() -> AcknowledgementHandler:
    """
    Get acknowledgement handler instance.

    Creates a singleton handler over the shared database.
    """
    global _acknowledgement_handler

    if _acknowledgement_handler is None:
        database = await get_database()
        _acknowledgement_handler = AcknowledgementHandler(
            repository=DigestRepository(database),
            metrics=get_metrics(),
        )

    return _acknowledgement_handler


async def cleanup_dependencies() -> None:
    """Clean up global dependencies on shutdown."""
    global _database, _acknowledgement_handler

    _acknowledgement_handler = None

    if _database is not None:
        await _database.close()
        _database = None
