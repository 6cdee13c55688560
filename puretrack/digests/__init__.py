"""Alert digests: aggregation, scheduled delivery and acknowledgement.

Components:
- DigestRecord / DigestItem: Per-recipient, per-category, per-day batches
- DigestRepository: Conditional single-statement persistence
- DigestAggregator: Optimistic, idempotent, FIFO-capped upsert
- DigestSender / DigestScheduler: Periodic rendering and delivery
- AcknowledgementHandler: Token-checked, idempotent closing of a digest
- render_digest: Subject, HTML and plaintext for one digest
"""

from puretrack.digests.acknowledgement import AcknowledgementHandler, AcknowledgementResult
from puretrack.digests.aggregator import DigestAggregator
from puretrack.digests.config import DigestConfig
from puretrack.digests.errors import (
    AcknowledgementError,
    AggregationConflictError,
    DigestError,
    DigestNotFoundError,
    InvalidArgumentError,
    PermissionDeniedError,
)
from puretrack.digests.renderer import RenderedDigest, render_digest
from puretrack.digests.repository import DigestRepository
from puretrack.digests.schemas import (
    DigestItem,
    DigestRecord,
    generate_ack_token,
    make_digest_id,
)
from puretrack.digests.sender import DigestRunResult, DigestScheduler, DigestSender

__all__ = [
    "AcknowledgementError",
    "AcknowledgementHandler",
    "AcknowledgementResult",
    "AggregationConflictError",
    "DigestAggregator",
    "DigestConfig",
    "DigestError",
    "DigestItem",
    "DigestNotFoundError",
    "DigestRecord",
    "DigestRepository",
    "DigestRunResult",
    "DigestScheduler",
    "DigestSender",
    "InvalidArgumentError",
    "PermissionDeniedError",
    "RenderedDigest",
    "generate_ack_token",
    "make_digest_id",
    "render_digest",
]
