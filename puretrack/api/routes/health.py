"""
Health check endpoint.
"""

import time

from fastapi import APIRouter, Depends
import structlog

from puretrack import __version__
from puretrack.api.dependencies import get_database
from puretrack.api.models import ComponentHealth, HealthResponse
from puretrack.storage.database import Database

router = APIRouter()
logger = structlog.get_logger(__name__)


async def _check_database(db: Database) -> ComponentHealth:
    """Check database connectivity and measure latency."""
    start = time.perf_counter()
    try:
        healthy = await db.health_check()
        latency_ms = (time.perf_counter() - start) * 1000
        return ComponentHealth(
            status="healthy" if healthy else "unhealthy",
            latency_ms=round(latency_ms, 2),
        )
    except Exception as e:
        latency_ms = (time.perf_counter() - start) * 1000
        return ComponentHealth(
            status="unhealthy",
            latency_ms=round(latency_ms, 2),
            details={"error": str(e)},
        )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Check the health of the service and its database.",
)
async def health_check(db: Database = Depends(get_database)) -> HealthResponse:
    database = await _check_database(db)
    if database.status != "healthy":
        logger.warning("Health check failed", component="database", details=database.details)

    return HealthResponse(
        status=database.status,
        components={"database": database},
        version=__version__,
    )
