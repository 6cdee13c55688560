"""Notification preferences and recipient resolution."""

from puretrack.recipients.config import RecipientConfig
from puretrack.recipients.repository import PreferenceRepository
from puretrack.recipients.resolver import is_in_quiet_hours, matches, resolve_recipients
from puretrack.recipients.schemas import NotificationPreference

__all__ = [
    "NotificationPreference",
    "PreferenceRepository",
    "RecipientConfig",
    "is_in_quiet_hours",
    "matches",
    "resolve_recipients",
]
