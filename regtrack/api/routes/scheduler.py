"""Scheduler tick endpoint, called hourly by an external cron."""

import structlog
from fastapi import APIRouter, Depends

from regtrack.api.auth import verify_api_key
from regtrack.api.dependencies import get_dispatcher
from regtrack.api.models import ErrorResponse, JobRunItem, TickResponse
from regtrack.scheduler.dispatcher import JobDispatcher

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post(
    "/scheduler/tick",
    response_model=TickResponse,
    response_model_by_alias=True,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid API key"},
    },
    summary="Run one scheduler tick",
    description=(
        "Runs every job due at the current UTC hour and reports on all "
        "configured jobs. Job failures are reported, not raised."
    ),
)
async def run_tick(
    api_key: str = Depends(verify_api_key),
    dispatcher: JobDispatcher = Depends(get_dispatcher),
) -> TickResponse:
    report = await dispatcher.tick()

    return TickResponse(
        execution_time_ms=report.execution_time_ms,
        executed_at=report.executed_at,
        current_hour=report.current_hour,
        skipped=report.skipped,
        jobs=[JobRunItem(**job.to_dict()) for job in report.jobs],
    )
