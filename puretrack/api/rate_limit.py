"""
Rate limiting for the public acknowledgement endpoint using slowapi.

The endpoint is unauthenticated, so requests are keyed by client IP.
Enable via RATE_LIMIT_ENABLED=true.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from puretrack.config.settings import get_settings


def create_limiter() -> Limiter:
    """Create a configured Limiter instance."""
    settings = get_settings()
    return Limiter(
        key_func=get_remote_address,
        enabled=settings.rate_limit_enabled,
        storage_uri=settings.rate_limit_storage_uri,
    )


limiter = create_limiter()
