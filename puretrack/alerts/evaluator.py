"""Stateless threshold and trend evaluation.

Each function checks a single condition for one reading and returns an
AlertCandidate if the condition is met, or None otherwise. No I/O, no
state: loading configuration and history, persistence and fan-out live
in AlertService.
"""

from datetime import timedelta

from puretrack.alerts.config import AlertConfig
from puretrack.alerts.schemas import AlertCandidate
from puretrack.readings.schemas import SensorReading
from puretrack.thresholds.config import ParameterThreshold, ThresholdConfig, TrendDetection


def check_threshold(
    reading: SensorReading,
    bounds: ParameterThreshold,
) -> AlertCandidate | None:
    """Check a reading against its parameter's bounds.

    Priority order: criticalMax, criticalMin, warningMax, warningMin. The
    first breached bound wins and fixes the severity. Bounds are strict:
    a value equal to a bound is not a breach.

    Args:
        reading: Reading to check.
        bounds: Bounds for the reading's parameter.

    Returns:
        AlertCandidate or None.
    """
    value = reading.value
    checks = (
        (bounds.critical_max, "Critical", lambda b: value > b),
        (bounds.critical_min, "Critical", lambda b: value < b),
        (bounds.warning_max, "Warning", lambda b: value > b),
        (bounds.warning_min, "Warning", lambda b: value < b),
    )

    for bound, severity, breached in checks:
        if bound is not None and breached(bound):
            return AlertCandidate(
                device_id=reading.device_id,
                parameter=reading.parameter,
                kind="threshold",
                severity=severity,
                value=value,
                threshold=bound,
                observed_at=reading.observed_at,
            )

    return None


def trend_severity(change_rate: float, config: AlertConfig) -> str:
    """Band an absolute change rate into a severity."""
    if change_rate > config.trend_critical_percentage:
        return "Critical"
    if change_rate > config.trend_warning_percentage:
        return "Warning"
    return "Advisory"


def check_trend(
    reading: SensorReading,
    history: list[SensorReading],
    trend: TrendDetection,
    config: AlertConfig,
) -> AlertCandidate | None:
    """Check for an abnormal percentage change across the trend window.

    Uses at most ``config.history_limit`` of the most recent samples for
    the same device and parameter observed within
    ``trend.time_window_minutes`` before the reading. Requires at least
    two samples. Compares the current value against the earliest sample
    in that slice.

    Args:
        reading: Current reading.
        history: Recent readings for the same device, any order.
        trend: Trend detection settings.
        config: Alert configuration with severity bands.

    Returns:
        AlertCandidate or None.
    """
    if not trend.enabled:
        return None

    window_start = reading.observed_at - timedelta(minutes=trend.time_window_minutes)
    samples = sorted(
        (
            r for r in history
            if r.device_id == reading.device_id
            and r.parameter == reading.parameter
            and window_start <= r.observed_at <= reading.observed_at
        ),
        key=lambda r: r.observed_at,
    )[-config.history_limit:]

    if len(samples) < 2:
        return None

    previous_value = samples[0].value
    if previous_value == 0:
        # Percentage change from zero is undefined
        return None

    change_rate = (reading.value - previous_value) / previous_value * 100
    magnitude = abs(change_rate)

    if magnitude < trend.threshold_percentage:
        return None

    return AlertCandidate(
        device_id=reading.device_id,
        parameter=reading.parameter,
        kind="trend",
        severity=trend_severity(magnitude, config),
        value=reading.value,
        trend_direction="increasing" if change_rate > 0 else "decreasing",
        change_rate=round(magnitude, 4),
        previous_value=previous_value,
        observed_at=reading.observed_at,
    )


def evaluate(
    reading: SensorReading,
    thresholds: ThresholdConfig,
    recent_history: list[SensorReading],
    config: AlertConfig | None = None,
) -> list[AlertCandidate]:
    """Run the threshold and trend checks for one reading.

    Both checks are independent: a reading can produce a threshold
    candidate and a trend candidate at the same time.

    Args:
        reading: Reading to evaluate.
        thresholds: Active threshold configuration.
        recent_history: Recent readings for the same device and parameter.
        config: Alert configuration (defaults from environment).

    Returns:
        List of candidates (may be empty).
    """
    config = config or AlertConfig()
    candidates: list[AlertCandidate] = []

    candidate = check_threshold(reading, thresholds.for_parameter(reading.parameter))
    if candidate is not None:
        candidates.append(candidate)

    candidate = check_trend(reading, recent_history, thresholds.trend_detection, config)
    if candidate is not None:
        candidates.append(candidate)

    return candidates
