"""
Request and response models for the regtrack API.
"""

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """Response model for errors."""

    detail: str = Field(
        ...,
        description="Error message",
    )
    error_type: str = Field(
        default="error",
        description="Error type",
    )


class ComponentHealth(BaseModel):
    """Health of one infrastructure component."""

    status: str = Field(..., description="healthy or unhealthy")
    latency_ms: float | None = Field(default=None, description="Check latency")
    details: dict = Field(default_factory=dict)


class HealthResponse(BaseModel):
    """Response model for service health."""

    status: str = Field(
        ...,
        description="Overall service status: healthy, degraded, or unhealthy",
    )
    version: str
    environment: str
    components: dict[str, ComponentHealth] = Field(default_factory=dict)


# Rate limit models


class RateLimitCheckRequest(BaseModel):
    """Attempt to record against a subject's window."""

    subject: str = Field(
        ...,
        description="IP address or email being limited",
    )
    action: str = Field(
        ...,
        description="One of: signup, email_verification, password_reset",
    )


class RateLimitCheckResponse(BaseModel):
    """Decision for one attempt."""

    allowed: bool
    retry_after_minutes: int | None = Field(
        default=None,
        description="Minutes until the window resets (denials only)",
    )
    message: str


class ClearSubjectResponse(BaseModel):
    subject: str
    cleared: int = Field(..., description="Number of windows removed")


# Health check models


class HealthCheckRunResponse(BaseModel):
    """Summary of a health check run."""

    run_id: str
    total: int
    valid: int
    invalid: int
    not_attempted: int
    notified: bool = False


class HealthCheckItem(BaseModel):
    url: str
    title: str
    category: str
    owner_tag: str
    reachable: bool
    status_code: int | None = None
    latency_ms: float
    error_kind: str
    error_message: str | None = None
    run_id: str
    checked_at: dt.datetime


class LatestHealthChecksResponse(BaseModel):
    checks: list[HealthCheckItem]
    total: int
    broken: int
    latency_ms: float


# Scheduler models


class JobRunItem(BaseModel):
    job_name: str
    triggered: bool
    success: bool
    message: str
    duration_ms: float
    records_affected: int


class TickResponse(BaseModel):
    """Report of one scheduler tick."""

    model_config = ConfigDict(populate_by_name=True)

    execution_time_ms: float = Field(..., alias="executionTimeMs")
    executed_at: dt.datetime = Field(..., alias="executedAt")
    current_hour: int = Field(..., alias="currentHour")
    skipped: bool = False
    jobs: list[JobRunItem] = Field(default_factory=list)
