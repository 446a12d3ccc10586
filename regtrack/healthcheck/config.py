"""Health check and broken-link notification configuration.

Health check settings use ``HEALTHCHECK_*`` environment variables,
notification delivery uses ``NOTIFICATIONS_*``.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class HealthCheckConfig(BaseSettings):
    """Configuration for scheduled URL health checks."""

    model_config = SettingsConfigDict(
        env_prefix="HEALTHCHECK_",
        case_sensitive=False,
        extra="ignore",
    )

    alert_threshold: int = Field(
        default=0,
        ge=0,
        description="Notify only when more than this many URLs are broken",
    )
    run_deadline_seconds: float | None = Field(
        default=600.0,
        gt=0.0,
        description="Outer deadline for probing one run (None = unbounded)",
    )
    latest_default_limit: int = Field(
        default=100,
        ge=1,
        le=5000,
        description="Default number of rows for latest-per-URL queries",
    )


class NotificationConfig(BaseSettings):
    """Where broken-link reports are delivered.

    Each channel is enabled by setting its endpoint or key. With nothing
    configured the health check still runs and persists, it just does
    not notify anyone.
    """

    model_config = SettingsConfigDict(
        env_prefix="NOTIFICATIONS_",
        case_sensitive=False,
        extra="ignore",
    )

    report_webhook_url: str | None = Field(
        default=None,
        description="Endpoint receiving {broken_links: [...]} (e.g. send-url-validation-report)",
    )
    report_webhook_token: str | None = Field(
        default=None,
        description="Bearer token sent to the report webhook",
    )
    resend_api_key: str | None = Field(
        default=None,
        description="Resend API key; enables the email channel",
    )
    resend_api_url: str = Field(
        default="https://api.resend.com/emails",
        description="Resend send-email endpoint",
    )
    email_from: str = Field(
        default="Regulation Tracker <noreply@regulationtracker.com>",
        description="Sender address for report emails",
    )
    email_to: list[str] = Field(
        default_factory=list,
        description="Recipients for report emails",
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        le=120.0,
        description="HTTP timeout for each delivery attempt",
    )
