"""
Service health endpoint.
"""

import time

import structlog
from fastapi import APIRouter

from regtrack import __version__
from regtrack.api.dependencies import get_database
from regtrack.api.models import ComponentHealth, HealthResponse
from regtrack.config.settings import get_settings

router = APIRouter()
logger = structlog.get_logger(__name__)


async def _check_database() -> ComponentHealth:
    """Check database connectivity and measure latency."""
    start = time.perf_counter()
    try:
        db = await get_database()
        healthy = await db.health_check()
        latency_ms = (time.perf_counter() - start) * 1000
        return ComponentHealth(
            status="healthy" if healthy else "unhealthy",
            latency_ms=round(latency_ms, 2),
        )
    except Exception as e:
        latency_ms = (time.perf_counter() - start) * 1000
        logger.warning("Database health check failed", error=str(e))
        return ComponentHealth(
            status="unhealthy",
            latency_ms=round(latency_ms, 2),
            details={"error": str(e)},
        )


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness plus database reachability. No authentication."""
    settings = get_settings()
    database = await _check_database()

    return HealthResponse(
        status="healthy" if database.status == "healthy" else "degraded",
        version=__version__,
        environment=settings.environment,
        components={"database": database},
    )
