"""
Prometheus metrics for the background-operations service.

Defines and exposes metrics for:
- Dispatcher ticks and per-job outcomes
- URL probe outcomes and latency
- Rate limiter decisions
- Broken-link notification delivery

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    REGISTRY,
    Counter,
    Histogram,
    start_http_server,
)

from regtrack.config.settings import get_settings

logger = logging.getLogger(__name__)

# Buckets for job durations (in seconds); jobs call remote pollers
JOB_BUCKETS = (0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0)

# Buckets for single URL probes (in seconds)
PROBE_BUCKETS = (0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)


class MetricsCollector:
    """
    Prometheus metrics collector for regtrack.

    Usage:
        metrics = get_metrics()
        metrics.start_server()

        metrics.record_job("federal-register", triggered=True, success=True, duration=1.2)
        metrics.record_probe(reachable=False, error_kind="timeout", latency=10.0)
    """

    def __init__(self):
        """Initialize Prometheus metrics."""

        self.ticks = Counter(
            "regtrack_ticks_total",
            "Dispatcher ticks received",
            ["status"],  # status: ran, skipped
        )

        self.job_runs = Counter(
            "regtrack_job_runs_total",
            "Job outcomes per tick",
            ["job", "status"],  # status: success, failure, not_triggered
        )

        self.job_duration = Histogram(
            "regtrack_job_duration_seconds",
            "Wall-clock duration of triggered jobs",
            ["job"],
            buckets=JOB_BUCKETS,
        )

        self.probes = Counter(
            "regtrack_probes_total",
            "URL probes by outcome",
            ["reachable", "error_kind"],
        )

        self.probe_latency = Histogram(
            "regtrack_probe_latency_seconds",
            "Latency of individual URL probes",
            buckets=PROBE_BUCKETS,
        )

        self.rate_limit_decisions = Counter(
            "regtrack_rate_limit_decisions_total",
            "Rate limiter decisions",
            ["action", "decision"],  # decision: allowed, denied, error
        )

        self.notifications = Counter(
            "regtrack_notifications_total",
            "Broken-link report deliveries",
            ["channel", "status"],  # status: sent, failed
        )

        logger.info("Prometheus metrics initialized")

    def start_server(self, port: int | None = None) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to expose metrics on (default from settings)
        """
        settings = get_settings()
        port = port or settings.metrics_port

        start_http_server(port, registry=REGISTRY)
        logger.info("Prometheus metrics server started on port %d", port)

    # Convenience methods

    def record_tick(self, skipped: bool) -> None:
        self.ticks.labels(status="skipped" if skipped else "ran").inc()

    def record_job(
        self,
        job: str,
        triggered: bool,
        success: bool,
        duration: float = 0.0,
    ) -> None:
        """Record one job report from a tick."""
        if not triggered:
            self.job_runs.labels(job=job, status="not_triggered").inc()
            return
        status = "success" if success else "failure"
        self.job_runs.labels(job=job, status=status).inc()
        self.job_duration.labels(job=job).observe(duration)

    def record_probe(self, reachable: bool, error_kind: str, latency: float) -> None:
        self.probes.labels(
            reachable="true" if reachable else "false",
            error_kind=error_kind,
        ).inc()
        self.probe_latency.observe(latency)

    def record_rate_limit(self, action: str, decision: str) -> None:
        self.rate_limit_decisions.labels(action=action, decision=decision).inc()

    def record_notification(self, channel: str, sent: bool) -> None:
        self.notifications.labels(
            channel=channel, status="sent" if sent else "failed",
        ).inc()


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
