"""Scheduler configuration.

All settings can be overridden via ``SCHEDULER_*`` environment variables.
``SCHEDULER_JOBS`` takes a JSON list of job specs.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ScheduleKind = Literal["always", "daily", "weekly", "hours"]


class JobSpec(BaseModel):
    """One backend function the scheduler triggers over HTTP."""

    name: str = Field(min_length=1)
    function: str = Field(min_length=1, description="Function name appended to functions_base_url")
    schedule: ScheduleKind = "always"
    hours: list[int] = Field(default_factory=list, description="UTC hours for 'hours' schedules")
    body: dict[str, Any] | None = Field(default=None, description="Optional JSON body")
    count_fields: list[str] = Field(
        default_factory=lambda: ["recordsAdded"],
        description="Response fields read, in order, for the affected record count",
    )

    @model_validator(mode="after")
    def _hours_required(self) -> "JobSpec":
        if self.schedule == "hours" and not self.hours:
            raise ValueError(f"job {self.name!r}: 'hours' schedule needs a non-empty hours list")
        return self


def default_jobs() -> list[JobSpec]:
    return [
        JobSpec(name="federal-register", function="federal-register-poller"),
        JobSpec(name="regulations-gov", function="regulations-gov-poller"),
        JobSpec(
            name="cannabis-hemp",
            function="cannabis-hemp-poller",
            schedule="hours",
            hours=[0, 6, 12, 18],
            body={"pollAll": True},
            count_fields=["totalRecords", "recordsAdded"],
        ),
        JobSpec(
            name="comment-reminders",
            function="process-comment-deadline-reminders",
            schedule="daily",
            count_fields=["remindersSent"],
        ),
    ]


class SchedulerConfig(BaseSettings):
    """Configuration for the tick dispatcher and its jobs."""

    model_config = SettingsConfigDict(
        env_prefix="SCHEDULER_",
        case_sensitive=False,
        extra="ignore",
    )

    daily_hour: int = Field(
        default=9,
        ge=0,
        le=23,
        description="UTC hour for daily jobs",
    )
    weekly_day: int = Field(
        default=0,
        ge=0,
        le=6,
        description="Weekday for weekly jobs (0 = Monday)",
    )
    weekly_hour: int = Field(
        default=6,
        ge=0,
        le=23,
        description="UTC hour for weekly jobs",
    )
    tick_timeout_seconds: float = Field(
        default=240.0,
        gt=0.0,
        description="Deadline for all jobs of one tick; unfinished jobs are cancelled",
    )
    health_check_share: float = Field(
        default=0.8,
        gt=0.0,
        lt=1.0,
        description="Share of the tick timeout the health check may spend probing; "
        "the rest is left for persisting results and notifying",
    )
    job_timeout_seconds: float = Field(
        default=60.0,
        gt=0.0,
        description="HTTP timeout for one backend function call",
    )
    functions_base_url: str = Field(
        default="http://localhost:54321/functions/v1",
        description="Base URL the function names are appended to",
    )
    functions_token: str | None = Field(
        default=None,
        description="Bearer token sent to backend functions",
    )
    health_check_enabled: bool = Field(
        default=True,
        description="Register the built-in weekly URL health check job",
    )
    jobs: list[JobSpec] = Field(default_factory=default_jobs)
