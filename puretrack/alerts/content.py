"""Human-readable alert text.

Builds the message and recommended action stored on each alert event,
and the one-line summary shown in digest tables.
"""

from puretrack.readings.schemas import PARAMETER_LABELS, PARAMETER_UNITS

SHORT_NAMES: dict[str, str] = {
    "tds": "TDS",
    "ph": "pH",
    "turbidity": "Turbidity",
}


def _format_value(parameter: str, value: float) -> str:
    unit = PARAMETER_UNITS.get(parameter, "")
    return f"{value:.2f}{' ' + unit if unit else ''}"


def _location_context(building: str | None, floor: str | None) -> str:
    if building and floor:
        return f" at {building}, {floor}"
    if building:
        return f" at {building}"
    return ""


def _location_prefix(building: str | None, floor: str | None) -> str:
    if building and floor:
        return f"[{building}, {floor}] "
    if building:
        return f"[{building}] "
    return ""


def generate_alert_content(
    parameter: str,
    value: float,
    severity: str,
    kind: str,
    trend_direction: str | None = None,
    building: str | None = None,
    floor: str | None = None,
) -> tuple[str, str]:
    """Build ``(message, recommended_action)`` for an alert.

    Args:
        parameter: Water parameter.
        value: Reading value.
        severity: Advisory, Warning or Critical.
        kind: threshold or trend.
        trend_direction: increasing/decreasing for trend alerts.
        building: Optional device building.
        floor: Optional device floor.

    Returns:
        Tuple of message and recommended action.
    """
    name = PARAMETER_LABELS.get(parameter, parameter)
    value_str = _format_value(parameter, value)
    prefix = _location_prefix(building, floor)
    where = _location_context(building, floor)

    if kind == "trend":
        direction = "increasing" if trend_direction == "increasing" else "decreasing"
        message = f"{prefix}{name} is {direction} abnormally: {value_str}"
        action = (
            f"Investigate cause of {direction} trend{where}. "
            "Check system calibration and recent changes to water source or treatment."
        )
        return message, action

    message = f"{prefix}{name} has reached {severity.lower()} level: {value_str}"
    if severity == "Critical":
        action = (
            f"Immediate action required{where}. "
            "Investigate water source and treatment system. "
            "Consider temporary shutdown if necessary."
        )
    elif severity == "Warning":
        action = (
            f"Monitor closely{where} and prepare corrective actions. "
            "Schedule system inspection within 24 hours."
        )
    else:
        action = f"Continue monitoring{where}. Note for regular maintenance schedule."
    return message, action


def summarize_for_digest(
    parameter: str,
    value: float,
    severity: str,
    building: str | None = None,
    floor: str | None = None,
) -> str:
    """One-line digest summary, e.g. ``"Critical: pH 9.20 at Main, 2F"``."""
    name = SHORT_NAMES.get(parameter, parameter)
    unit = PARAMETER_UNITS.get(parameter, "")
    unit_str = f" {unit}" if unit else ""
    return f"{severity}: {name} {value:.2f}{unit_str}{_location_context(building, floor)}"
