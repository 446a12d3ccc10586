"""Bounded-concurrency URL reachability probing.

Components:
- ProbeTarget / ProbeResult / ProbeBatch: Value types
- ProbeConfig: Pydantic settings for concurrency and timeouts
- URLProber: HEAD-then-GET prober over a worker pool
"""

from regtrack.probing.config import ProbeConfig
from regtrack.probing.prober import URLProber, is_reachable_status
from regtrack.probing.schemas import (
    VALID_CATEGORIES,
    VALID_ERROR_KINDS,
    ErrorKind,
    ProbeBatch,
    ProbeResult,
    ProbeTarget,
    TargetCategory,
)

__all__ = [
    "ErrorKind",
    "ProbeBatch",
    "ProbeConfig",
    "ProbeResult",
    "ProbeTarget",
    "TargetCategory",
    "URLProber",
    "VALID_CATEGORIES",
    "VALID_ERROR_KINDS",
    "is_reachable_status",
]
