"""Rate limiter configuration.

Per-action attempt limits and window lengths for the signup and
verification flows. All settings can be overridden via ``RATE_LIMIT_*``
environment variables.
"""

from datetime import timedelta

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from regtrack.ratelimit.schemas import ActionLimits, RateLimitAction


class RateLimitConfig(BaseSettings):
    """Per-action limits for the fixed-window rate limiter."""

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
        extra="ignore",
    )

    signup_max_attempts: int = Field(
        default=3,
        ge=1,
        description="Signup attempts allowed per subject per window",
    )
    signup_window_minutes: int = Field(
        default=60,
        ge=1,
        description="Signup window length in minutes",
    )

    email_verification_max_attempts: int = Field(
        default=5,
        ge=1,
        description="Verification emails allowed per subject per window",
    )
    email_verification_window_minutes: int = Field(
        default=60,
        ge=1,
        description="Verification window length in minutes",
    )

    password_reset_max_attempts: int = Field(
        default=5,
        ge=1,
        description="Password reset requests allowed per subject per window",
    )
    password_reset_window_minutes: int = Field(
        default=60,
        ge=1,
        description="Password reset window length in minutes",
    )

    max_subject_length: int = Field(
        default=320,
        ge=1,
        description="Longest accepted subject (RFC 5321 email length)",
    )

    def limits_for(self, action: RateLimitAction) -> ActionLimits:
        """Return the configured limits for an action."""
        prefix = action.value
        return ActionLimits(
            max_attempts=getattr(self, f"{prefix}_max_attempts"),
            window=timedelta(minutes=getattr(self, f"{prefix}_window_minutes")),
        )
