"""Fixed-window rate limiter for signup and verification flows.

Windows are forget-and-restart: once a window's reset time has passed the
next attempt replaces it with a fresh window counting 1. The previous
count is discarded, so a subject can make up to ``2 * max_attempts``
attempts straddling a window boundary.
"""

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timezone

from regtrack.observability.metrics import get_metrics
from regtrack.ratelimit.config import RateLimitConfig
from regtrack.ratelimit.schemas import (
    ActionLimits,
    InvalidActionError,
    InvalidSubjectError,
    RateLimitAction,
    RateLimitDecision,
    RateLimitPersistenceError,
    RateLimitWindow,
    minutes_until,
)
from regtrack.ratelimit.store import RateLimitStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def evaluate_window(
    window: RateLimitWindow | None,
    subject: str,
    action: RateLimitAction,
    limits: ActionLimits,
    now: datetime,
) -> tuple[RateLimitDecision, RateLimitWindow | None]:
    """Decide one attempt against the current window.

    Pure function: returns the decision and the window to persist, or
    None when nothing must be written (denials).
    """
    label = action.value.replace("_", " ")

    if window is None or window.is_expired(now):
        fresh = RateLimitWindow(
            subject=subject,
            action=action,
            attempt_count=1,
            window_reset_at=now + limits.window,
        )
        decision = RateLimitDecision(
            allowed=True,
            action=action,
            attempt_count=1,
            message="Rate limit check passed",
        )
        return decision, fresh

    if window.attempt_count < limits.max_attempts:
        updated = replace(window, attempt_count=window.attempt_count + 1)
        decision = RateLimitDecision(
            allowed=True,
            action=action,
            attempt_count=updated.attempt_count,
            message="Rate limit check passed",
        )
        return decision, updated

    retry_after = window.window_reset_at - now
    denied = RateLimitDecision(
        allowed=False,
        action=action,
        attempt_count=window.attempt_count,
        retry_after=retry_after,
        message=(
            f"Too many {label} attempts. "
            f"Try again in {minutes_until(retry_after)} min."
        ),
    )
    return denied, None


class RateLimiter:
    """Checks and records attempts per (subject, action).

    The read-decide-write sequence for a key runs while the store holds
    that key's lock, so concurrent callers for the same key can never
    exceed ``max_attempts`` allowed outcomes in one window.
    """

    def __init__(
        self,
        store: RateLimitStore,
        config: RateLimitConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._config = config or RateLimitConfig()
        self._clock = clock or _utcnow

    @property
    def store(self) -> RateLimitStore:
        return self._store

    def _validate(self, subject: str, action: str | RateLimitAction) -> tuple[str, RateLimitAction]:
        if not isinstance(subject, str):
            raise InvalidSubjectError("Subject must be a string")
        normalized = subject.strip().lower()
        if not normalized:
            raise InvalidSubjectError("Subject must not be empty")
        if len(normalized) > self._config.max_subject_length:
            raise InvalidSubjectError(
                f"Subject longer than {self._config.max_subject_length} characters"
            )
        try:
            parsed = RateLimitAction(action)
        except ValueError:
            raise InvalidActionError(action) from None
        return normalized, parsed

    async def check_and_record(
        self,
        subject: str,
        action: str | RateLimitAction,
        limits: ActionLimits | None = None,
    ) -> RateLimitDecision:
        """Check whether an attempt is allowed and record it if so.

        Args:
            subject: IP address or email being limited.
            action: One of the ``RateLimitAction`` values.
            limits: Override for the configured limits of this action.

        Returns:
            The decision. Denials carry ``retry_after``.

        Raises:
            InvalidActionError: Unknown action (nothing is read or written).
            InvalidSubjectError: Empty or oversized subject.
            RateLimitPersistenceError: The store failed; treat as denied.
        """
        subject, parsed = self._validate(subject, action)
        limits = limits or self._config.limits_for(parsed)
        metrics = get_metrics()

        try:
            async with self._store.locked(subject, parsed) as slot:
                now = self._clock()
                decision, to_write = evaluate_window(
                    slot.window, subject, parsed, limits, now,
                )
                if to_write is not None:
                    await slot.write(to_write)
        except Exception as e:
            metrics.record_rate_limit(parsed.value, "error")
            logger.error("Rate limit store failure for %s: %s", parsed.value, e)
            raise RateLimitPersistenceError(str(e)) from e

        metrics.record_rate_limit(
            parsed.value, "allowed" if decision.allowed else "denied",
        )
        if not decision.allowed:
            logger.info(
                "Rate limit exceeded for %s (attempts=%d, retry in %s min)",
                parsed.value, decision.attempt_count, decision.retry_after_minutes,
            )
        return decision

    async def clear_subject(self, subject: str) -> int:
        """Delete all windows for a subject across every action.

        Support-staff escape hatch; not itself rate limited.

        Raises:
            InvalidSubjectError: Empty subject.
            RateLimitPersistenceError: The store failed.
        """
        if not isinstance(subject, str) or not subject.strip():
            raise InvalidSubjectError("Subject must not be empty")
        try:
            return await self._store.clear_subject(subject.strip().lower())
        except Exception as e:
            logger.error("Failed to clear rate limits: %s", e)
            raise RateLimitPersistenceError(str(e)) from e
