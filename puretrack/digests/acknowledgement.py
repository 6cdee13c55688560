"""Digest acknowledgement.

The token embedded in the digest email is the only credential: no login
is needed. Validation order is fixed so that malformed input never
reaches the store: shape, then existence, then token match.
"""

import hmac
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from puretrack.digests.errors import (
    DigestNotFoundError,
    InvalidArgumentError,
    PermissionDeniedError,
)
from puretrack.digests.repository import DigestRepository
from puretrack.digests.schemas import is_valid_digest_id, is_valid_token_format
from puretrack.observability.metrics import MetricsCollector

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AcknowledgementResult:
    digest_id: str
    already_acknowledged: bool


class AcknowledgementHandler:
    """Validates acknowledgement links and closes digests."""

    def __init__(
        self,
        repository: DigestRepository,
        clock: Callable[[], datetime] = _utcnow,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._repo = repository
        self._clock = clock
        self._metrics = metrics

    async def acknowledge(
        self,
        digest_id: str,
        token: str,
        acknowledged_by: str | None = None,
    ) -> AcknowledgementResult:
        """Acknowledge a digest, stopping all future sends.

        Idempotent: acknowledging an acknowledged digest with the right
        token succeeds without writing.

        Args:
            digest_id: Digest identity from the link.
            token: Acknowledgement token from the link.
            acknowledged_by: Optional caller identity for the audit fields.

        Returns:
            AcknowledgementResult.

        Raises:
            InvalidArgumentError: Malformed token or digest id.
            DigestNotFoundError: No digest at ``digest_id``.
            PermissionDeniedError: Token does not match.
        """
        if not is_valid_token_format(token) or not is_valid_digest_id(digest_id):
            self._record("invalid_argument")
            raise InvalidArgumentError()

        digest = await self._repo.get(digest_id)
        if digest is None:
            self._record("not_found")
            raise DigestNotFoundError()

        if not hmac.compare_digest(token.encode(), digest.ack_token.encode()):
            self._record("permission_denied")
            logger.warning("Acknowledgement token mismatch for digest %s", digest_id)
            raise PermissionDeniedError()

        if digest.is_acknowledged:
            self._record("already_acknowledged")
            logger.info("Digest %s already acknowledged", digest_id)
            return AcknowledgementResult(digest_id=digest_id, already_acknowledged=True)

        flipped = await self._repo.acknowledge(digest_id, self._clock(), acknowledged_by)
        if not flipped:
            # A concurrent request got there first
            self._record("already_acknowledged")
            return AcknowledgementResult(digest_id=digest_id, already_acknowledged=True)

        self._record("acknowledged")
        logger.info("Digest %s acknowledged", digest_id)
        return AcknowledgementResult(digest_id=digest_id, already_acknowledged=False)

    def _record(self, outcome: str) -> None:
        if self._metrics is not None:
            self._metrics.record_acknowledgement(outcome)
