"""
Prometheus metrics for monitoring the alerting pipeline.

Defines and exposes metrics for:
- Alert events created per parameter and kind
- Digest aggregation outcomes (created, appended, duplicate, conflict, failed)
- Digest deliveries and scheduler run duration
- Acknowledgements

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    start_http_server,
)

from puretrack.config.settings import get_settings

logger = logging.getLogger(__name__)

# Buckets for scheduler run duration (in seconds)
RUN_DURATION_BUCKETS = (0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0)


class MetricsCollector:
    """
    Prometheus metrics collector for the alerting pipeline.

    Usage:
        metrics = MetricsCollector()
        metrics.start_server()

        metrics.record_alert_created("ph", "threshold", "Critical")
        metrics.record_digest_send("sent")
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        self._registry = registry or REGISTRY

        self.alerts_created = Counter(
            "puretrack_alerts_created_total",
            "Total alert events persisted",
            ["parameter", "kind", "severity"],
            registry=self._registry,
        )

        self.readings_dropped = Counter(
            "puretrack_readings_dropped_total",
            "Readings rejected by validation",
            ["reason"],
            registry=self._registry,
        )

        self.digest_aggregations = Counter(
            "puretrack_digest_aggregations_total",
            "Alert-to-digest aggregation outcomes",
            ["outcome"],  # created, appended, duplicate, conflict, failed
            registry=self._registry,
        )

        self.digest_sends = Counter(
            "puretrack_digest_sends_total",
            "Digest delivery attempts",
            ["status"],  # sent, failed
            registry=self._registry,
        )

        self.acknowledgements = Counter(
            "puretrack_digest_acknowledgements_total",
            "Digest acknowledgement requests",
            ["outcome"],  # acknowledged, already_acknowledged, or an error code
            registry=self._registry,
        )

        self.scheduler_run_duration = Histogram(
            "puretrack_digest_run_duration_seconds",
            "Wall time of one digest scheduler run",
            buckets=RUN_DURATION_BUCKETS,
            registry=self._registry,
        )

    def start_server(self, port: int | None = None) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to expose metrics on (default from settings)
        """
        settings = get_settings()
        port = port or settings.metrics_port

        start_http_server(port, registry=self._registry)
        logger.info("Prometheus metrics server started on port %d", port)

    def record_alert_created(self, parameter: str, kind: str, severity: str) -> None:
        self.alerts_created.labels(
            parameter=parameter, kind=kind, severity=severity,
        ).inc()

    def record_reading_dropped(self, reason: str) -> None:
        self.readings_dropped.labels(reason=reason).inc()

    def record_aggregation(self, outcome: str) -> None:
        self.digest_aggregations.labels(outcome=outcome).inc()

    def record_digest_send(self, status: str) -> None:
        self.digest_sends.labels(status=status).inc()

    def record_acknowledgement(self, outcome: str) -> None:
        self.acknowledgements.labels(outcome=outcome).inc()

    def record_run_duration(self, seconds: float) -> None:
        self.scheduler_run_duration.observe(seconds)


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
