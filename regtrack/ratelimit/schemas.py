"""Schema definitions for rate limiting.

A ``RateLimitWindow`` maps 1:1 to a row of the ``rate_limit_windows``
table, keyed by ``(subject, action)``. Decisions are plain values returned
to request handlers; a denial is a normal outcome, not an exception.
"""

import enum
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any


class RateLimitAction(str, enum.Enum):
    """Actions protected by the rate limiter."""

    SIGNUP = "signup"
    EMAIL_VERIFICATION = "email_verification"
    PASSWORD_RESET = "password_reset"


VALID_ACTIONS: frozenset[str] = frozenset(a.value for a in RateLimitAction)


class InvalidInputError(ValueError):
    """Raised for requests rejected before any state is touched."""


class InvalidActionError(InvalidInputError):
    """Raised when the action is not a known ``RateLimitAction``."""

    def __init__(self, action: Any) -> None:
        super().__init__(
            f"Invalid action {action!r}. Must be one of: {sorted(VALID_ACTIONS)}"
        )
        self.action = action


class InvalidSubjectError(InvalidInputError):
    """Raised when the subject is empty or malformed."""


class RateLimitPersistenceError(Exception):
    """Raised when the window store cannot be read or written.

    Callers must treat this as a denial (fail closed).
    """


@dataclass(frozen=True)
class ActionLimits:
    """Attempt budget for one action."""

    max_attempts: int
    window: timedelta

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.window <= timedelta(0):
            raise ValueError(f"window must be positive, got {self.window}")


@dataclass(frozen=True)
class RateLimitWindow:
    """Attempt counter for one (subject, action) pair.

    Attributes:
        subject: Rate-limited identity (IP address or email).
        action: Protected action.
        attempt_count: Attempts recorded in the current window.
        window_reset_at: When the current window expires (UTC).
    """

    subject: str
    action: RateLimitAction
    attempt_count: int
    window_reset_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.window_reset_at

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "subject": self.subject,
            "action": self.action.value,
            "attempt_count": self.attempt_count,
            "window_reset_at": self.window_reset_at.isoformat(),
        }


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a check-and-record call."""

    allowed: bool
    action: RateLimitAction
    attempt_count: int
    message: str
    retry_after: timedelta | None = None

    @property
    def retry_after_minutes(self) -> int | None:
        """Whole minutes until the window resets, rounded up."""
        if self.retry_after is None:
            return None
        return minutes_until(self.retry_after)


def minutes_until(delta: timedelta) -> int:
    """Round a positive wait up to whole minutes (at least 1)."""
    return max(1, math.ceil(delta.total_seconds() / 60))
