"""Digest aggregator: folds alert items into per-recipient daily digests.

One call per (recipient, alert). The record at
``{recipient_id}_{category}_{YYYY-MM-DD}`` is read, modified in memory
and written back with a compare-and-set on its ``version``. A lost race
re-reads and tries again, bounded by the configured retry policy.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Literal

from puretrack.digests.config import DigestConfig
from puretrack.digests.errors import AggregationConflictError
from puretrack.digests.repository import TRANSIENT_ERRORS, DigestRepository
from puretrack.digests.schemas import (
    DigestItem,
    DigestRecord,
    append_item,
    generate_ack_token,
    make_digest_id,
    utc_day,
)
from puretrack.observability.metrics import MetricsCollector
from puretrack.recipients.schemas import NotificationPreference

logger = logging.getLogger(__name__)

AggregationOutcome = Literal["created", "appended", "duplicate"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DigestAggregator:
    """Optimistic read-modify-write of digest records.

    Safe under concurrent calls for the same digest identity: every
    write is conditional, and unrelated digests never contend.
    """

    def __init__(
        self,
        repository: DigestRepository,
        config: DigestConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
        token_factory: Callable[[], str] = generate_ack_token,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._repo = repository
        self._config = config or DigestConfig()
        self._clock = clock
        self._token_factory = token_factory
        self._metrics = metrics

    async def aggregate(
        self,
        recipient: NotificationPreference,
        category: str,
        item: DigestItem,
    ) -> AggregationOutcome:
        """Add ``item`` to today's digest for ``recipient`` and ``category``.

        Args:
            recipient: Resolved recipient preference.
            category: Digest category (see ``categorize_alert``).
            item: Item built from the alert event.

        Returns:
            "created" for a new digest, "appended" for an added item, or
            "duplicate" when ``item.event_id`` was already aggregated.

        Raises:
            AggregationConflictError: Retries exhausted on conflicts or
                transient store errors.
        """
        policy = self._config.aggregation_retry_policy
        backoff = policy.backoff()
        digest_id = make_digest_id(recipient.user_id, category, utc_day(self._clock()))

        for attempt in range(1, policy.max_attempts + 1):
            try:
                outcome = await self._try_once(recipient, category, item)
            except TRANSIENT_ERRORS as e:
                logger.warning(
                    "Transient store error aggregating into %s (attempt %d/%d): %s",
                    digest_id, attempt, policy.max_attempts, e,
                )
                outcome = None

            if outcome is not None:
                self._record(outcome)
                return outcome

            if attempt < policy.max_attempts:
                await asyncio.sleep(backoff.next_delay())

        self._record("conflict")
        raise AggregationConflictError(digest_id, policy.max_attempts)

    async def _try_once(
        self,
        recipient: NotificationPreference,
        category: str,
        item: DigestItem,
    ) -> AggregationOutcome | None:
        """One read-modify-write pass. Returns None on a lost race."""
        now = self._clock()
        digest_id = make_digest_id(recipient.user_id, category, utc_day(now))
        existing = await self._repo.get(digest_id)

        if existing is None:
            record = DigestRecord.new(
                recipient_id=recipient.user_id,
                recipient_email=recipient.email,
                category=category,
                item=item,
                now=now,
                max_attempts=self._config.max_attempts,
                ack_token=self._token_factory(),
            )
            if await self._repo.insert(record):
                logger.info("Digest created: %s (event %s)", digest_id, item.event_id)
                return "created"
            logger.debug("Digest %s created concurrently, retrying", digest_id)
            return None

        items = append_item(existing.items, item, self._config.max_items)
        if items is None:
            logger.debug("Event %s already in digest %s", item.event_id, digest_id)
            return "duplicate"

        if await self._repo.update_items(digest_id, items, now, existing.version):
            logger.debug(
                "Digest %s appended event %s (%d items)",
                digest_id, item.event_id, len(items),
            )
            return "appended"

        logger.debug("Version conflict on digest %s, retrying", digest_id)
        return None

    def _record(self, outcome: str) -> None:
        if self._metrics is not None:
            self._metrics.record_aggregation(outcome)
