"""
Tick dispatcher for scheduled jobs.

An external trigger (cron, Cloud Scheduler, ``regtrack tick``) calls
``tick()`` once an hour. Each tick decides from the tick time alone which
jobs are due, runs the due ones concurrently and reports on every job.

Guarantees:
- One job's failure or hang never affects its siblings
- Every configured job appears exactly once in the report
- Unfinished jobs are cancelled at ``tick_timeout_seconds``
- A tick that starts while another tick of this dispatcher is running runs nothing
"""

import asyncio
import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone

from regtrack.observability.metrics import get_metrics
from regtrack.scheduler.config import SchedulerConfig
from regtrack.scheduler.jobs import Job
from regtrack.scheduler.schedules import as_utc
from regtrack.scheduler.schemas import JobRunReport, TickReport

logger = logging.getLogger(__name__)

OVERLAP_MESSAGE = "Skipped - previous tick still running"
TIMED_OUT_MESSAGE = "timed out"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


class JobDispatcher:
    """Runs the due subset of a static job list on each tick.

    Example:
        dispatcher = JobDispatcher(build_jobs(config, health_service), config)
        report = await dispatcher.tick()
    """

    def __init__(
        self,
        jobs: list[Job],
        config: SchedulerConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._jobs = list(jobs)
        self._config = config or SchedulerConfig()
        self._clock = clock or _utcnow
        self._running = asyncio.Lock()

    @property
    def jobs(self) -> list[Job]:
        return list(self._jobs)

    @property
    def is_running(self) -> bool:
        return self._running.locked()

    async def tick(self, now: datetime | None = None) -> TickReport:
        """Run every job due at ``now`` (default: current UTC time)."""
        now = as_utc(now or self._clock())
        start = time.perf_counter()
        metrics = get_metrics()

        if self._running.locked():
            return self.overlap_report(now)

        async with self._running:
            reports = await self._run_due(now)

        report = TickReport(
            executed_at=now,
            current_hour=now.hour,
            execution_time_ms=_elapsed_ms(start),
            jobs=reports,
        )

        metrics.record_tick(skipped=False)
        for job_report in reports:
            metrics.record_job(
                job_report.job_name,
                job_report.triggered,
                job_report.success,
                job_report.duration_ms / 1000,
            )

        triggered = [r for r in reports if r.triggered]
        logger.info(
            "Tick at hour %d: %d/%d jobs triggered, %d failed in %.0fms",
            now.hour, len(triggered), len(reports), len(report.failed),
            report.execution_time_ms,
        )
        return report

    def overlap_report(self, now: datetime | None = None) -> TickReport:
        """Report for a tick that ran nothing because another tick holds the guard.

        ``tick()`` uses it for overlaps inside this process. Callers guarding
        across processes (``regtrack tick`` under cron) use it when their own
        lock is taken.
        """
        now = as_utc(now or self._clock())
        logger.warning("Tick at %s skipped: previous tick still running", now.isoformat())
        get_metrics().record_tick(skipped=True)
        return TickReport(
            executed_at=now,
            current_hour=now.hour,
            skipped=True,
            jobs=[JobRunReport.skipped(job.name, OVERLAP_MESSAGE) for job in self._jobs],
        )

    async def _run_due(self, now: datetime) -> list[JobRunReport]:
        reports: dict[str, JobRunReport] = {}
        tasks: dict[str, asyncio.Task[JobRunReport]] = {}

        for job in self._jobs:
            if job.schedule.is_due(now):
                tasks[job.name] = asyncio.create_task(self._run_job(job), name=job.name)
            else:
                reports[job.name] = JobRunReport.skipped(
                    job.name,
                    f"Skipped - only runs {job.schedule.describe()} (current hour: {now.hour})",
                )

        if tasks:
            start = time.perf_counter()
            _done, pending = await asyncio.wait(
                tasks.values(), timeout=self._config.tick_timeout_seconds,
            )
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

            for name, task in tasks.items():
                if task in pending:
                    logger.error(
                        "Job %s timed out after %gs", name, self._config.tick_timeout_seconds,
                    )
                    reports[name] = JobRunReport(
                        job_name=name,
                        triggered=True,
                        success=False,
                        message=TIMED_OUT_MESSAGE,
                        duration_ms=_elapsed_ms(start),
                    )
                else:
                    reports[name] = task.result()

        return [reports[job.name] for job in self._jobs]

    async def _run_job(self, job: Job) -> JobRunReport:
        """Run one job, converting any exception into a failed report."""
        start = time.perf_counter()
        try:
            outcome = await job.run()
        except Exception as e:
            logger.error("Job %s failed: %s", job.name, e)
            return JobRunReport(
                job_name=job.name,
                triggered=True,
                success=False,
                message=str(e) or type(e).__name__,
                duration_ms=_elapsed_ms(start),
            )

        if not outcome.success:
            logger.warning("Job %s reported failure: %s", job.name, outcome.message)
        return JobRunReport(
            job_name=job.name,
            triggered=True,
            success=outcome.success,
            message=outcome.message,
            duration_ms=_elapsed_ms(start),
            records_affected=outcome.records_affected,
        )
