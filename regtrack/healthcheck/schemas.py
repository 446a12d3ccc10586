"""Schema definitions for URL health checks."""

import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from regtrack.probing.schemas import ProbeResult, ProbeTarget


def generate_run_id() -> str:
    return f"run_{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class HealthCheckRecord:
    """One persisted probe outcome. Append-only; never updated.

    A newer record for the same URL supersedes older ones.
    """

    run_id: str
    checked_at: datetime
    url: str
    title: str
    category: str
    owner_tag: str
    reachable: bool
    status_code: int | None
    latency_ms: float
    error_kind: str = "none"
    error_message: str | None = None
    id: int | None = None

    @classmethod
    def from_probe(
        cls,
        run_id: str,
        checked_at: datetime,
        target: ProbeTarget,
        result: ProbeResult,
    ) -> "HealthCheckRecord":
        return cls(
            run_id=run_id,
            checked_at=checked_at,
            url=target.url,
            title=target.title,
            category=target.category,
            owner_tag=target.owner_tag,
            reachable=result.reachable,
            status_code=result.status_code,
            latency_ms=result.latency_ms,
            error_kind=result.error_kind,
            error_message=result.error_message,
        )

    @property
    def error(self) -> str:
        """Human-readable failure reason for reports."""
        if self.error_message:
            return self.error_message
        if self.status_code is not None:
            return f"HTTP {self.status_code}"
        return self.error_kind

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "run_id": self.run_id,
            "checked_at": self.checked_at.isoformat(),
            "url": self.url,
            "title": self.title,
            "category": self.category,
            "owner_tag": self.owner_tag,
            "reachable": self.reachable,
            "status_code": self.status_code,
            "latency_ms": self.latency_ms,
            "error_kind": self.error_kind,
            "error_message": self.error_message,
        }


@dataclass(frozen=True)
class BrokenLink:
    """Wire shape of one entry in a broken-link notification."""

    title: str
    url: str
    jurisdiction: str
    error: str

    @classmethod
    def from_record(cls, record: HealthCheckRecord) -> "BrokenLink":
        return cls(
            title=record.title,
            url=record.url,
            jurisdiction=record.owner_tag,
            error=record.error,
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "title": self.title,
            "url": self.url,
            "jurisdiction": self.jurisdiction,
            "error": self.error,
        }


@dataclass
class BrokenLinkReport:
    """What notification channels receive after a run with broken links."""

    run_id: str
    checked_at: datetime
    total: int
    links: list[BrokenLink] = field(default_factory=list)

    def by_jurisdiction(self) -> dict[str, list[BrokenLink]]:
        grouped: dict[str, list[BrokenLink]] = defaultdict(list)
        for link in self.links:
            grouped[link.jurisdiction].append(link)
        return dict(sorted(grouped.items()))

    def to_payload(self) -> dict[str, Any]:
        return {"broken_links": [link.to_dict() for link in self.links]}


@dataclass
class HealthSummary:
    """Result of one health check run."""

    run_id: str
    total: int
    valid: int
    invalid: int
    not_attempted: int = 0
    broken: list[HealthCheckRecord] = field(default_factory=list)
    notified: bool = False
    checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def broken_by_owner(self) -> dict[str, list[HealthCheckRecord]]:
        grouped: dict[str, list[HealthCheckRecord]] = defaultdict(list)
        for record in self.broken:
            grouped[record.owner_tag].append(record)
        return dict(grouped)

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "total": self.total,
            "valid": self.valid,
            "invalid": self.invalid,
            "not_attempted": self.not_attempted,
            "notified": self.notified,
        }
