"""Tests for Prometheus metrics collection."""

import pytest
from prometheus_client import CollectorRegistry

from puretrack.observability.metrics import MetricsCollector


@pytest.fixture
def registry():
    return CollectorRegistry()


@pytest.fixture
def metrics(registry):
    return MetricsCollector(registry=registry)


def _value(registry, name, labels=None):
    return registry.get_sample_value(name, labels or {})


class TestMetricsCollector:
    def test_alert_created(self, metrics, registry):
        metrics.record_alert_created("ph", "threshold", "Critical")
        metrics.record_alert_created("ph", "threshold", "Critical")

        assert _value(
            registry,
            "puretrack_alerts_created_total",
            {"parameter": "ph", "kind": "threshold", "severity": "Critical"},
        ) == 2

    def test_aggregation_outcomes(self, metrics, registry):
        metrics.record_aggregation("created")
        metrics.record_aggregation("conflict")

        assert _value(registry, "puretrack_digest_aggregations_total", {"outcome": "created"}) == 1
        assert _value(registry, "puretrack_digest_aggregations_total", {"outcome": "conflict"}) == 1

    def test_sends_and_acknowledgements(self, metrics, registry):
        metrics.record_digest_send("failed")
        metrics.record_acknowledgement("permission_denied")
        metrics.record_reading_dropped("invalid_reading")

        assert _value(registry, "puretrack_digest_sends_total", {"status": "failed"}) == 1
        assert _value(
            registry, "puretrack_digest_acknowledgements_total", {"outcome": "permission_denied"},
        ) == 1
        assert _value(registry, "puretrack_readings_dropped_total", {"reason": "invalid_reading"}) == 1

    def test_run_duration(self, metrics, registry):
        metrics.record_run_duration(1.5)
        assert _value(registry, "puretrack_digest_run_duration_seconds_count") == 1
        assert _value(registry, "puretrack_digest_run_duration_seconds_sum") == 1.5

    def test_separate_registries_do_not_collide(self):
        MetricsCollector(registry=CollectorRegistry())
        MetricsCollector(registry=CollectorRegistry())
