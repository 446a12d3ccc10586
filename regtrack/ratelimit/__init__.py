"""Fixed-window rate limiting for signup and verification flows.

Components:
- RateLimitAction: Enum of protected actions
- RateLimitWindow / RateLimitDecision / ActionLimits: Value types
- RateLimitConfig: Pydantic settings for per-action limits
- RateLimitStore / InMemoryRateLimitStore: Per-key locked window storage
- PostgresRateLimitStore: Advisory-lock + upsert storage in PostgreSQL
- RateLimiter: check_and_record / clear_subject
"""

from regtrack.ratelimit.config import RateLimitConfig
from regtrack.ratelimit.repository import PostgresRateLimitStore
from regtrack.ratelimit.schemas import (
    VALID_ACTIONS,
    ActionLimits,
    InvalidActionError,
    InvalidInputError,
    InvalidSubjectError,
    RateLimitAction,
    RateLimitDecision,
    RateLimitPersistenceError,
    RateLimitWindow,
)
from regtrack.ratelimit.service import RateLimiter, evaluate_window
from regtrack.ratelimit.store import InMemoryRateLimitStore, RateLimitStore, WindowSlot

__all__ = [
    "ActionLimits",
    "InMemoryRateLimitStore",
    "InvalidActionError",
    "InvalidInputError",
    "InvalidSubjectError",
    "PostgresRateLimitStore",
    "RateLimitAction",
    "RateLimitConfig",
    "RateLimitDecision",
    "RateLimitPersistenceError",
    "RateLimitStore",
    "RateLimitWindow",
    "RateLimiter",
    "VALID_ACTIONS",
    "WindowSlot",
    "evaluate_window",
]
