"""Digest error taxonomy.

Acknowledgement errors carry a fixed, public ``message`` so callers can
show an accurate reason without leaking internal detail.
"""


class DigestError(Exception):
    """Base class for digest errors."""


class AggregationConflictError(DigestError):
    """Optimistic upsert kept conflicting (or the store kept failing)."""

    def __init__(self, digest_id: str, attempts: int) -> None:
        self.digest_id = digest_id
        self.attempts = attempts
        super().__init__(
            f"Digest {digest_id} aggregation failed after {attempts} attempt(s)"
        )


class AcknowledgementError(DigestError):
    """Base class for acknowledgement failures."""

    code = "internal"
    message = "Acknowledgement failed"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.message)


class InvalidArgumentError(AcknowledgementError):
    """Token or digest id is malformed."""

    code = "invalid_argument"
    message = "Invalid acknowledgement link"


class DigestNotFoundError(AcknowledgementError):
    """No digest exists at the given id."""

    code = "not_found"
    message = "Digest not found"


class PermissionDeniedError(AcknowledgementError):
    """Token does not match the digest's token."""

    code = "permission_denied"
    message = "Invalid acknowledgement token"
