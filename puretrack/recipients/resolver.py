"""Recipient resolution.

Pure functions over a snapshot of notification preferences: given an
alert event and the current time, decide who should eventually hear
about it. No I/O.
"""

import logging
from datetime import datetime, timezone, tzinfo
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from puretrack.recipients.config import RecipientConfig
from puretrack.recipients.schemas import NotificationPreference, parse_clock

if TYPE_CHECKING:
    from puretrack.alerts.schemas import AlertEvent

logger = logging.getLogger(__name__)


def _zone(name: str) -> tzinfo:
    if name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown time zone %r, using UTC for quiet hours", name)
        return timezone.utc


def is_in_quiet_hours(
    preference: NotificationPreference,
    now: datetime,
    minute_precision: bool = False,
) -> bool:
    """Whether ``now`` falls inside the preference's quiet window.

    The window is ``[start, end)`` in the preference's time zone. A
    window with ``start > end`` wraps past midnight; ``start == end`` is
    empty. With ``minute_precision`` off only the hour components are
    compared.

    Args:
        preference: Preference to check.
        now: Current time (timezone-aware).
        minute_precision: Compare minutes as well as hours.

    Returns:
        True if notifications should be suppressed.
    """
    if not preference.quiet_hours_enabled:
        return False
    if not preference.quiet_hours_start or not preference.quiet_hours_end:
        return False

    local = now.astimezone(_zone(preference.time_zone))
    start_h, start_m = parse_clock(preference.quiet_hours_start)
    end_h, end_m = parse_clock(preference.quiet_hours_end)

    if minute_precision:
        current = local.hour * 60 + local.minute
        start = start_h * 60 + start_m
        end = end_h * 60 + end_m
    else:
        current, start, end = local.hour, start_h, end_h

    if start < end:
        return start <= current < end
    if start > end:
        return current >= start or current < end
    return False


def matches(
    alert: "AlertEvent",
    preference: NotificationPreference,
    now: datetime,
    config: RecipientConfig | None = None,
) -> bool:
    """Whether a single preference wants to hear about ``alert`` right now."""
    config = config or RecipientConfig()

    if not preference.email_enabled:
        return False
    if alert.severity not in preference.severities:
        return False
    if preference.parameters and alert.parameter not in preference.parameters:
        return False
    if preference.device_ids and alert.device_id not in preference.device_ids:
        return False
    if is_in_quiet_hours(preference, now, config.quiet_hours_minute_precision):
        return False
    return True


def resolve_recipients(
    alert: "AlertEvent",
    preferences: list[NotificationPreference],
    now: datetime | None = None,
    config: RecipientConfig | None = None,
) -> list[NotificationPreference]:
    """Filter a preference snapshot down to the alert's recipients.

    Args:
        alert: The alert event being routed.
        preferences: Snapshot of email-enabled preferences.
        now: Evaluation time (defaults to current UTC time).
        config: Recipient configuration.

    Returns:
        Matching preferences, in snapshot order.
    """
    now = now or datetime.now(timezone.utc)
    config = config or RecipientConfig()
    return [p for p in preferences if matches(alert, p, now, config)]
