"""Scheduled URL health checks with broken-link notifications.

Components:
- HealthCheckRecord / HealthSummary / BrokenLinkReport: Value types
- HealthCheckConfig / NotificationConfig: Pydantic settings
- HealthCheckRepository: monitored_urls and url_health_checks tables
- NotificationChannel: Webhook and Resend email delivery
- HealthCheckService: probe, persist, notify
"""

from regtrack.healthcheck.channels import (
    NotificationChannel,
    ReportWebhookChannel,
    ResendEmailChannel,
    build_channels,
    render_report_html,
)
from regtrack.healthcheck.config import HealthCheckConfig, NotificationConfig
from regtrack.healthcheck.repository import HealthCheckRepository
from regtrack.healthcheck.schemas import (
    BrokenLink,
    BrokenLinkReport,
    HealthCheckRecord,
    HealthSummary,
)
from regtrack.healthcheck.service import HealthCheckService, dedupe_targets

__all__ = [
    "BrokenLink",
    "BrokenLinkReport",
    "HealthCheckConfig",
    "HealthCheckRecord",
    "HealthCheckRepository",
    "HealthCheckService",
    "HealthSummary",
    "NotificationChannel",
    "NotificationConfig",
    "ReportWebhookChannel",
    "ResendEmailChannel",
    "build_channels",
    "dedupe_targets",
    "render_report_html",
]
