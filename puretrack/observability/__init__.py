"""Logging and metrics for the alerting pipeline."""

from puretrack.observability.logging import bind_context, clear_context, setup_logging
from puretrack.observability.metrics import MetricsCollector, get_metrics

__all__ = [
    "MetricsCollector",
    "bind_context",
    "clear_context",
    "get_metrics",
    "setup_logging",
]
