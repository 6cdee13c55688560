"""Delivery transports for rendered digests."""

from puretrack.notifications.channels import (
    DeliveryError,
    LogNotifier,
    Notifier,
    SmtpNotifier,
    WebhookNotifier,
    build_notifier,
)
from puretrack.notifications.config import NotificationConfig

__all__ = [
    "DeliveryError",
    "LogNotifier",
    "NotificationConfig",
    "Notifier",
    "SmtpNotifier",
    "WebhookNotifier",
    "build_notifier",
]
