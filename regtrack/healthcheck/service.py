"""Health check orchestration: probe, persist, notify.

Flow for one run:
1. Load active targets (or use the ones given), collapsing duplicate URLs
2. Probe them with ``URLProber``
3. Append one ``HealthCheckRecord`` per result in a single batch insert
4. If more than ``alert_threshold`` URLs are broken, hand a report to
   every configured channel exactly once

Notification failures never fail the run. Persistence failures propagate.
"""

import logging
from collections.abc import Sequence
from datetime import datetime, timezone

from regtrack.healthcheck.channels import NotificationChannel
from regtrack.healthcheck.config import HealthCheckConfig
from regtrack.healthcheck.repository import HealthCheckRepository
from regtrack.healthcheck.schemas import (
    BrokenLink,
    BrokenLinkReport,
    HealthCheckRecord,
    HealthSummary,
    generate_run_id,
)
from regtrack.observability.metrics import get_metrics
from regtrack.probing.prober import URLProber
from regtrack.probing.schemas import ProbeTarget

logger = logging.getLogger(__name__)


def dedupe_targets(targets: Sequence[ProbeTarget]) -> list[ProbeTarget]:
    """Drop repeated URLs, keeping the first occurrence."""
    seen: set[str] = set()
    unique: list[ProbeTarget] = []
    for target in targets:
        if target.url in seen:
            continue
        seen.add(target.url)
        unique.append(target)
    return unique


class HealthCheckService:
    """Runs URL health checks against the monitored URL list."""

    def __init__(
        self,
        repository: HealthCheckRepository,
        prober: URLProber | None = None,
        channels: list[NotificationChannel] | None = None,
        config: HealthCheckConfig | None = None,
    ) -> None:
        self._repo = repository
        self._prober = prober or URLProber()
        self._channels = channels or []
        self._config = config or HealthCheckConfig()

    @property
    def channels(self) -> list[NotificationChannel]:
        return self._channels

    async def run_health_check(
        self,
        targets: Sequence[ProbeTarget] | None = None,
        deadline: float | None = None,
    ) -> HealthSummary:
        """Probe every target, persist the results, and notify on breakage.

        Args:
            targets: URLs to check. Loads active monitored URLs when None.
            deadline: Seconds the caller can wait for probing. The tighter of
                this and ``run_deadline_seconds`` applies, so a caller with its
                own timeout still gets the finished probes persisted.

        Returns:
            HealthSummary for the run.
        """
        if targets is None:
            targets = await self._repo.get_targets()
        targets = dedupe_targets(targets)

        run_id = generate_run_id()
        checked_at = datetime.now(timezone.utc)

        if not targets:
            logger.info("Health check %s: no targets to check", run_id)
            return HealthSummary(
                run_id=run_id, total=0, valid=0, invalid=0, checked_at=checked_at,
            )

        logger.info("Health check %s: probing %d URLs", run_id, len(targets))
        batch = await self._prober.probe_all(
            targets, deadline=self._probe_deadline(deadline),
        )

        by_url = {t.url: t for t in targets}
        records = [
            HealthCheckRecord.from_probe(run_id, checked_at, by_url[r.url], r)
            for r in batch.results
        ]
        await self._repo.insert_batch(records)

        broken = [r for r in records if not r.reachable]
        summary = HealthSummary(
            run_id=run_id,
            total=len(targets),
            valid=len(records) - len(broken),
            invalid=len(broken),
            not_attempted=batch.not_attempted,
            broken=broken,
            checked_at=checked_at,
        )

        if summary.invalid > self._config.alert_threshold:
            summary.notified = await self._notify(summary)

        logger.info(
            "Health check %s complete: %d valid, %d invalid, %d not attempted",
            run_id, summary.valid, summary.invalid, summary.not_attempted,
        )
        return summary

    def _probe_deadline(self, deadline: float | None) -> float | None:
        bounds = [d for d in (deadline, self._config.run_deadline_seconds) if d is not None]
        return min(bounds) if bounds else None

    async def _notify(self, summary: HealthSummary) -> bool:
        """Send the report to each channel once. True if any delivery succeeded."""
        if not self._channels:
            logger.warning(
                "Health check %s found %d broken URLs but no channels are configured",
                summary.run_id, summary.invalid,
            )
            return False

        report = BrokenLinkReport(
            run_id=summary.run_id,
            checked_at=summary.checked_at,
            total=summary.total,
            links=[BrokenLink.from_record(r) for r in summary.broken],
        )

        delivered = False
        metrics = get_metrics()
        for channel in self._channels:
            try:
                sent = await channel.send(report)
            except Exception as e:
                logger.error("Channel %s raised for run %s: %s", channel.name, summary.run_id, e)
                sent = False
            metrics.record_notification(channel.name, sent)
            delivered = delivered or sent
        return delivered
