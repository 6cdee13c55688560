"""Schema definitions for alert digests.

A ``DigestRecord`` batches the alerts one recipient receives for one
category on one UTC day. Its identity string
``{recipient_id}_{category}_{YYYY-MM-DD}`` is what makes re-aggregation
idempotent and lookup-by-day possible, so its format must not change.
"""

import json
import re
import secrets
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any

ACK_TOKEN_BYTES = 32

# Shared by make_digest_id and is_valid_digest_id; recipient ids are opaque
MAX_DIGEST_ID_LENGTH = 1024

_TOKEN_RE = re.compile(rf"^[0-9a-f]{{{ACK_TOKEN_BYTES * 2}}}$")
_DAY_SUFFIX_RE = re.compile(r"_\d{4}-\d{2}-\d{2}$")


def make_digest_id(recipient_id: str, category: str, day: date) -> str:
    """Digest identity for a recipient, category and UTC day.

    Raises:
        ValueError: Empty recipient id, or an identity longer than
            ``MAX_DIGEST_ID_LENGTH``.
    """
    if not recipient_id:
        raise ValueError("Digest identity requires a recipient id")
    digest_id = f"{recipient_id}_{category}_{day.isoformat()}"
    if len(digest_id) > MAX_DIGEST_ID_LENGTH:
        raise ValueError(
            f"Digest identity exceeds {MAX_DIGEST_ID_LENGTH} characters"
        )
    return digest_id


def utc_day(moment: datetime) -> date:
    """Calendar day of ``moment`` in UTC."""
    return moment.astimezone(timezone.utc).date()


def generate_ack_token() -> str:
    """Fresh acknowledgement token: 32 random bytes, hex-encoded."""
    return secrets.token_hex(ACK_TOKEN_BYTES)


def is_valid_token_format(token: str) -> bool:
    return isinstance(token, str) and _TOKEN_RE.match(token) is not None


def is_valid_digest_id(digest_id: str) -> bool:
    """Shape check matching what make_digest_id can produce."""
    return (
        isinstance(digest_id, str)
        and len(digest_id) <= MAX_DIGEST_ID_LENGTH
        and _DAY_SUFFIX_RE.search(digest_id) is not None
    )


@dataclass(frozen=True)
class DigestItem:
    """One alert inside a digest.

    Attributes:
        event_id: Alert event id; unique within a digest.
        summary: One-line description shown in the digest table.
        severity: Alert severity.
        parameter: Water parameter.
        device_name: Device display name.
        value: Reading value, if any.
        observed_at: When the alert was raised.
    """

    event_id: str
    summary: str
    severity: str
    parameter: str
    device_name: str
    observed_at: datetime
    value: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "eventId": self.event_id,
            "summary": self.summary,
            "severity": self.severity,
            "parameter": self.parameter,
            "deviceName": self.device_name,
            "value": self.value,
            "timestamp": self.observed_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DigestItem":
        observed_at = data["timestamp"]
        if isinstance(observed_at, str):
            observed_at = datetime.fromisoformat(observed_at)
        return cls(
            event_id=data["eventId"],
            summary=data["summary"],
            severity=data["severity"],
            parameter=data["parameter"],
            device_name=data.get("deviceName") or "Unknown",
            value=data.get("value"),
            observed_at=observed_at,
        )


def append_item(
    items: list[DigestItem],
    item: DigestItem,
    max_items: int,
) -> list[DigestItem] | None:
    """Append ``item`` with dedup and FIFO eviction.

    Args:
        items: Current items, oldest first.
        item: Item to add.
        max_items: Capacity.

    Returns:
        New item list, or None if ``item.event_id`` is already present.
    """
    if any(existing.event_id == item.event_id for existing in items):
        return None
    updated = [*items, item]
    if len(updated) > max_items:
        updated = updated[len(updated) - max_items:]
    return updated


@dataclass
class DigestRecord:
    """A persisted digest from the ``alert_digests`` table.

    ``version`` increments on every write and backs the optimistic
    compare-and-set used by the aggregator.
    """

    digest_id: str
    recipient_id: str
    recipient_email: str
    category: str
    created_at: datetime
    last_updated_at: datetime
    cooldown_until: datetime
    ack_token: str
    items: list[DigestItem] = field(default_factory=list)
    last_sent_at: datetime | None = None
    send_attempts: int = 0
    max_attempts: int = 3
    is_acknowledged: bool = False
    acknowledged_at: datetime | None = None
    acknowledged_by: str | None = None
    version: int = 0

    @classmethod
    def new(
        cls,
        recipient_id: str,
        recipient_email: str,
        category: str,
        item: DigestItem,
        now: datetime,
        max_attempts: int = 3,
        ack_token: str | None = None,
    ) -> "DigestRecord":
        """First digest of the day for this recipient and category.

        Eligible for sending immediately (``cooldown_until == now``).
        """
        return cls(
            digest_id=make_digest_id(recipient_id, category, utc_day(now)),
            recipient_id=recipient_id,
            recipient_email=recipient_email,
            category=category,
            items=[item],
            created_at=now,
            last_updated_at=now,
            cooldown_until=now,
            send_attempts=0,
            max_attempts=max_attempts,
            is_acknowledged=False,
            ack_token=ack_token or generate_ack_token(),
        )

    @property
    def remaining_attempts(self) -> int:
        return max(self.max_attempts - self.send_attempts, 0)

    def is_eligible(self, now: datetime) -> bool:
        """Same predicate as the scheduler's eligibility query."""
        return (
            not self.is_acknowledged
            and self.cooldown_until <= now
            and self.send_attempts < self.max_attempts
        )

    def items_json(self) -> str:
        return json.dumps([item.to_dict() for item in self.items])
