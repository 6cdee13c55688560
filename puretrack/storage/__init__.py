"""PostgreSQL connection management."""

from puretrack.storage.database import Database

__all__ = ["Database"]
