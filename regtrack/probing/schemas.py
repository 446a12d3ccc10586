"""Schema definitions for URL probing."""

from dataclasses import dataclass, field
from typing import Any, Literal

ErrorKind = Literal["timeout", "connection", "protocol", "none"]

VALID_ERROR_KINDS: frozenset[str] = frozenset({
    "timeout",
    "connection",
    "protocol",
    "none",
})

TargetCategory = Literal["news_page", "regulation_page", "agency_root"]

VALID_CATEGORIES: frozenset[str] = frozenset({
    "news_page",
    "regulation_page",
    "agency_root",
})


@dataclass(frozen=True)
class ProbeTarget:
    """A URL to check.

    Attributes:
        url: Absolute http(s) URL.
        category: What kind of page the URL points at.
        owner_tag: Owning jurisdiction (e.g. ``CA`` or ``Federal``).
        title: Display label for reports; defaults to the URL.
    """

    url: str
    category: str = "regulation_page"
    owner_tag: str = "Unknown"
    title: str = ""

    def __post_init__(self) -> None:
        if self.category not in VALID_CATEGORIES:
            raise ValueError(
                f"Invalid category {self.category!r}. "
                f"Must be one of: {sorted(VALID_CATEGORIES)}"
            )
        if not self.title:
            object.__setattr__(self, "title", self.url)


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of probing one target. Never mutated after creation."""

    url: str
    reachable: bool
    status_code: int | None
    latency_ms: float
    error_kind: str = "none"
    error_message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "reachable": self.reachable,
            "status_code": self.status_code,
            "latency_ms": self.latency_ms,
            "error_kind": self.error_kind,
            "error_message": self.error_message,
        }


@dataclass
class ProbeBatch:
    """Results of one ``probe_all`` call.

    ``not_attempted`` counts targets without a result because the outer
    deadline elapsed first.
    """

    results: list[ProbeResult] = field(default_factory=list)
    not_attempted: int = 0
    deadline_exceeded: bool = False

    @property
    def unreachable(self) -> list[ProbeResult]:
        return [r for r in self.results if not r.reachable]
