"""Jobs the scheduler can run.

A job is a name, a schedule and an async ``run()`` returning a
``JobOutcome``. Jobs may raise; the dispatcher turns exceptions into
failed reports.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from regtrack.healthcheck.service import HealthCheckService
from regtrack.scheduler.config import JobSpec, SchedulerConfig
from regtrack.scheduler.schedules import Always, DailyAt, HoursOfDay, Schedule, WeeklyAt
from regtrack.scheduler.schemas import JobOutcome

logger = logging.getLogger(__name__)

HEALTH_CHECK_JOB_NAME = "url-health-check"


class Job(ABC):
    def __init__(self, name: str, schedule: Schedule) -> None:
        self.name = name
        self.schedule = schedule

    @abstractmethod
    async def run(self) -> JobOutcome:
        """Do the work. May raise."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, schedule={self.schedule.describe()!r})"


def _read_count(data: dict[str, Any], fields: list[str]) -> int:
    # First truthy field wins
    for name in fields:
        value = data.get(name)
        if value:
            try:
                return int(value)
            except (TypeError, ValueError):
                continue
    return 0


class EdgeFunctionJob(Job):
    """POSTs to a backend function and reports its message and record count."""

    def __init__(
        self,
        name: str,
        schedule: Schedule,
        url: str,
        token: str | None = None,
        body: dict[str, Any] | None = None,
        count_fields: list[str] | None = None,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(name, schedule)
        self.url = url
        self._token = token
        self._body = body
        self._count_fields = count_fields or ["recordsAdded"]
        self._timeout = timeout
        self._transport = transport

    async def run(self) -> JobOutcome:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport,
        ) as client:
            resp = await client.post(self.url, json=self._body, headers=headers)

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if not resp.is_success:
            message = data.get("message") or data.get("error") or f"HTTP {resp.status_code}"
            logger.warning("Job %s: %s returned %d", self.name, self.url, resp.status_code)
            return JobOutcome(success=False, message=str(message))

        return JobOutcome(
            success=True,
            message=str(data.get("message") or "Completed"),
            records_affected=_read_count(data, self._count_fields),
        )


class HealthCheckJob(Job):
    """Runs the URL health check in-process."""

    def __init__(
        self,
        schedule: Schedule,
        service: HealthCheckService,
        deadline: float | None = None,
    ) -> None:
        super().__init__(HEALTH_CHECK_JOB_NAME, schedule)
        self._service = service
        self.deadline = deadline

    async def run(self) -> JobOutcome:
        summary = await self._service.run_health_check(deadline=self.deadline)
        message = (
            f"Checked {summary.total} URLs: {summary.valid} valid, "
            f"{summary.invalid} invalid"
        )
        if summary.not_attempted:
            message += f", {summary.not_attempted} not attempted"
        return JobOutcome(success=True, message=message, records_affected=summary.invalid)


def schedule_for(spec: JobSpec, config: SchedulerConfig) -> Schedule:
    if spec.schedule == "daily":
        return DailyAt(config.daily_hour)
    if spec.schedule == "weekly":
        return WeeklyAt(config.weekly_day, config.weekly_hour)
    if spec.schedule == "hours":
        return HoursOfDay(spec.hours)
    return Always()


def build_jobs(
    config: SchedulerConfig,
    health_service: HealthCheckService | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[Job]:
    """Static job list: configured functions plus the weekly health check."""
    base_url = config.functions_base_url.rstrip("/")
    jobs: list[Job] = [
        EdgeFunctionJob(
            name=spec.name,
            schedule=schedule_for(spec, config),
            url=f"{base_url}/{spec.function}",
            token=config.functions_token,
            body=spec.body,
            count_fields=spec.count_fields,
            timeout=config.job_timeout_seconds,
            transport=transport,
        )
        for spec in config.jobs
    ]

    if config.health_check_enabled and health_service is not None:
        # Probing must stop before the tick deadline cancels the job
        jobs.append(HealthCheckJob(
            WeeklyAt(config.weekly_day, config.weekly_hour),
            health_service,
            deadline=config.tick_timeout_seconds * config.health_check_share,
        ))

    names = [job.name for job in jobs]
    duplicates = {n for n in names if names.count(n) > 1}
    if duplicates:
        raise ValueError(f"Duplicate job names: {sorted(duplicates)}")
    return jobs
