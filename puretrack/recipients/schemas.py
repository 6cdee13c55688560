"""Schema definitions for notification preferences.

Preferences are owned by the user-management service; this package only
reads them. Empty ``parameters`` or ``device_ids`` mean "no filter".
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any

_TIME_RE = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


def parse_clock(value: str) -> tuple[int, int]:
    """Parse ``"HH:MM"`` into ``(hour, minute)``.

    Raises:
        ValueError: If the string is not a valid 24h clock time.
    """
    match = _TIME_RE.match(value.strip())
    if match is None:
        raise ValueError(f"Invalid clock time {value!r}, expected HH:MM")
    return int(match.group(1)), int(match.group(2))


@dataclass(frozen=True)
class NotificationPreference:
    """A user's alert notification settings.

    Attributes:
        user_id: Owning user (one preference per user).
        email: Delivery address.
        email_enabled: Whether the user wants email at all.
        severities: Severities the user wants to hear about.
        parameters: Parameters to include (empty = all).
        device_ids: Devices to include (empty = all).
        quiet_hours_enabled: Whether to suppress during the quiet window.
        quiet_hours_start: Window start, ``HH:MM``.
        quiet_hours_end: Window end, ``HH:MM``. ``start > end`` wraps midnight.
        time_zone: IANA zone the quiet window is expressed in.
    """

    user_id: str
    email: str
    email_enabled: bool = True
    severities: frozenset[str] = field(default_factory=frozenset)
    parameters: frozenset[str] = field(default_factory=frozenset)
    device_ids: frozenset[str] = field(default_factory=frozenset)
    quiet_hours_enabled: bool = False
    quiet_hours_start: str | None = None
    quiet_hours_end: str | None = None
    time_zone: str = "UTC"

    def __post_init__(self) -> None:
        if not self.user_id:
            raise ValueError("Preference is missing user_id")
        for name in ("quiet_hours_start", "quiet_hours_end"):
            value = getattr(self, name)
            if value is not None:
                parse_clock(value)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NotificationPreference":
        """Create a preference from a database row or document.

        Accepts both snake_case columns and the camelCase document
        fields used by the user-management service.
        """

        def pick(*keys: str, default: Any = None) -> Any:
            for key in keys:
                if key in data and data[key] is not None:
                    return data[key]
            return default

        def as_set(value: Any) -> frozenset[str]:
            if isinstance(value, str):
                value = json.loads(value)
            return frozenset(value or ())

        return cls(
            user_id=pick("user_id", "userId"),
            email=pick("email", default=""),
            email_enabled=bool(pick("email_enabled", "emailNotifications", default=False)),
            severities=as_set(pick("severities", "alertSeverities", default=())),
            parameters=as_set(pick("parameters", default=())),
            device_ids=as_set(pick("device_ids", "devices", default=())),
            quiet_hours_enabled=bool(pick("quiet_hours_enabled", "quietHoursEnabled", default=False)),
            quiet_hours_start=pick("quiet_hours_start", "quietHoursStart"),
            quiet_hours_end=pick("quiet_hours_end", "quietHoursEnd"),
            time_zone=pick("time_zone", "timeZone", default="UTC"),
        )
