"""URL health check endpoints."""

import time

import structlog
from fastapi import APIRouter, Depends, Query

from regtrack.api.auth import verify_api_key
from regtrack.api.dependencies import get_health_check_repository, get_health_check_service
from regtrack.api.models import (
    ErrorResponse,
    HealthCheckItem,
    HealthCheckRunResponse,
    LatestHealthChecksResponse,
)
from regtrack.config.settings import get_settings
from regtrack.healthcheck.repository import HealthCheckRepository
from regtrack.healthcheck.service import HealthCheckService

logger = structlog.get_logger(__name__)
router = APIRouter()

# Probing stops at this share of the request timeout so results are persisted
# before the timeout middleware answers 504
REQUEST_PROBE_SHARE = 0.8


@router.post(
    "/health-checks/run",
    response_model=HealthCheckRunResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid API key"},
        500: {"model": ErrorResponse, "description": "Server error"},
    },
    summary="Run a URL health check now",
    description="Probe every active monitored URL, persist results and notify on breakage.",
)
async def run_health_check(
    api_key: str = Depends(verify_api_key),
    service: HealthCheckService = Depends(get_health_check_service),
) -> HealthCheckRunResponse:
    timeout = get_settings().request_timeout_seconds
    deadline = timeout * REQUEST_PROBE_SHARE if timeout > 0 else None
    summary = await service.run_health_check(deadline=deadline)
    return HealthCheckRunResponse(**summary.to_dict())


@router.get(
    "/health-checks/latest",
    response_model=LatestHealthChecksResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid API key"},
    },
    summary="Latest result per URL",
    description="Newest health check record for each URL, broken links first.",
)
async def latest_health_checks(
    limit: int = Query(default=100, ge=1, le=5000, description="Maximum URLs to return"),
    api_key: str = Depends(verify_api_key),
    repo: HealthCheckRepository = Depends(get_health_check_repository),
) -> LatestHealthChecksResponse:
    start_time = time.perf_counter()
    records = await repo.latest_per_url(limit)

    checks = [
        HealthCheckItem(**{k: v for k, v in r.to_dict().items() if k != "id"})
        for r in records
    ]
    return LatestHealthChecksResponse(
        checks=checks,
        total=len(checks),
        broken=sum(1 for c in checks if not c.reachable),
        latency_ms=round((time.perf_counter() - start_time) * 1000, 2),
    )
