"""URL prober configuration.

All settings can be overridden via ``PROBE_*`` environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProbeConfig(BaseSettings):
    """Defaults for bounded-concurrency URL probing."""

    model_config = SettingsConfigDict(
        env_prefix="PROBE_",
        case_sensitive=False,
        extra="ignore",
    )

    concurrency: int = Field(
        default=10,
        ge=1,
        le=200,
        description="Maximum probes in flight at once",
    )
    per_request_timeout: float = Field(
        default=10.0,
        gt=0.0,
        le=120.0,
        description="Deadline in seconds for one probe, including HEAD->GET fallback",
    )
    outer_deadline: float | None = Field(
        default=None,
        gt=0.0,
        description="Optional deadline in seconds for a whole batch",
    )
    user_agent: str = Field(
        default="RegTrackLinkChecker/1.0 (+https://thynkflow.io)",
        description="User-Agent header sent with every probe",
    )
    follow_redirects: bool = Field(
        default=True,
        description="Follow redirects before classifying the final status",
    )
