"""Schema definitions for scheduler ticks."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class JobOutcome:
    """What a job's ``run()`` returns."""

    success: bool
    message: str = "Completed"
    records_affected: int = 0


@dataclass(frozen=True)
class JobRunReport:
    """One job's entry in a tick report. Every configured job gets one."""

    job_name: str
    triggered: bool
    success: bool
    message: str
    duration_ms: float = 0.0
    records_affected: int = 0

    @classmethod
    def skipped(cls, job_name: str, message: str) -> "JobRunReport":
        return cls(job_name=job_name, triggered=False, success=False, message=message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_name": self.job_name,
            "triggered": self.triggered,
            "success": self.success,
            "message": self.message,
            "duration_ms": self.duration_ms,
            "records_affected": self.records_affected,
        }


@dataclass
class TickReport:
    """Aggregate of one scheduler tick."""

    executed_at: datetime
    current_hour: int
    execution_time_ms: float = 0.0
    skipped: bool = False
    jobs: list[JobRunReport] = field(default_factory=list)

    def job(self, name: str) -> JobRunReport | None:
        return next((j for j in self.jobs if j.job_name == name), None)

    @property
    def failed(self) -> list[JobRunReport]:
        return [j for j in self.jobs if j.triggered and not j.success]

    def to_dict(self) -> dict[str, Any]:
        return {
            "executionTimeMs": self.execution_time_ms,
            "executedAt": self.executed_at.isoformat(),
            "currentHour": self.current_hour,
            "skipped": self.skipped,
            "jobs": [j.to_dict() for j in self.jobs],
        }
