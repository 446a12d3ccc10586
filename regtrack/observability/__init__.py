"""Observability layer - logging and metrics."""

from regtrack.observability.logging import setup_logging
from regtrack.observability.metrics import MetricsCollector, get_metrics

__all__ = ["setup_logging", "MetricsCollector", "get_metrics"]
