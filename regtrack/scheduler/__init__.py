"""Hourly tick dispatcher for polling, reminder and health check jobs.

Components:
- Schedule: Always / DailyAt / WeeklyAt / HoursOfDay
- Job: EdgeFunctionJob (HTTP backend function) / HealthCheckJob
- SchedulerConfig / JobSpec: Pydantic settings and the static job table
- JobDispatcher: Concurrent, fault-isolated tick execution
"""

from regtrack.scheduler.config import JobSpec, SchedulerConfig, default_jobs
from regtrack.scheduler.dispatcher import JobDispatcher
from regtrack.scheduler.jobs import (
    HEALTH_CHECK_JOB_NAME,
    EdgeFunctionJob,
    HealthCheckJob,
    Job,
    build_jobs,
)
from regtrack.scheduler.schedules import Always, DailyAt, HoursOfDay, Schedule, WeeklyAt
from regtrack.scheduler.schemas import JobOutcome, JobRunReport, TickReport

__all__ = [
    "Always",
    "DailyAt",
    "EdgeFunctionJob",
    "HEALTH_CHECK_JOB_NAME",
    "HealthCheckJob",
    "HoursOfDay",
    "Job",
    "JobDispatcher",
    "JobOutcome",
    "JobRunReport",
    "JobSpec",
    "Schedule",
    "SchedulerConfig",
    "TickReport",
    "WeeklyAt",
    "build_jobs",
    "default_jobs",
]
