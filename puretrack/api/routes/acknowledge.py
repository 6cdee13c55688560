"""Digest acknowledgement endpoints.

Unauthenticated: the token in the query string or
body is the credential. Failures map to fixed messages so nothing about
the stored digest leaks to the caller.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
import structlog

from puretrack.api.dependencies import get_acknowledgement_handler
from puretrack.api.models import AcknowledgeRequest, AcknowledgeResponse, ErrorResponse
from puretrack.api.rate_limit import limiter
from puretrack.config.settings import get_settings
from puretrack.digests.acknowledgement import AcknowledgementHandler
from puretrack.digests.errors import (
    AcknowledgementError,
    DigestNotFoundError,
    InvalidArgumentError,
    PermissionDeniedError,
)

logger = structlog.get_logger(__name__)
router = APIRouter()

_STATUS_CODES: dict[type[AcknowledgementError], int] = {
    InvalidArgumentError: status.HTTP_400_BAD_REQUEST,
    DigestNotFoundError: status.HTTP_404_NOT_FOUND,
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
}

_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Malformed token or digest id"},
    403: {"model": ErrorResponse, "description": "Token does not match"},
    404: {"model": ErrorResponse, "description": "Digest not found"},
    429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
    500: {"model": ErrorResponse, "description": "Server error"},
}


async def _acknowledge(
    handler: AcknowledgementHandler,
    digest_id: str,
    token: str,
) -> AcknowledgeResponse:
    try:
        result = await handler.acknowledge(digest_id, token)
    except AcknowledgementError as e:
        logger.info(
            "Acknowledgement rejected",
            digest_id=digest_id,
            error_type=e.code,
        )
        raise HTTPException(
            status_code=_STATUS_CODES.get(type(e), status.HTTP_500_INTERNAL_SERVER_ERROR),
            detail=e.message,
        )
    except Exception as e:
        logger.error(f"Failed to acknowledge digest: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to acknowledge digest",
        )

    message = (
        "Digest was already acknowledged"
        if result.already_acknowledged
        else "Digest acknowledged. You will not receive further reminders."
    )
    logger.info(
        "Digest acknowledged",
        digest_id=result.digest_id,
        already_acknowledged=result.already_acknowledged,
    )
    return AcknowledgeResponse(
        digest_id=result.digest_id,
        already_acknowledged=result.already_acknowledged,
        message=message,
    )


@router.get(
    "/acknowledge",
    response_model=AcknowledgeResponse,
    responses=_RESPONSES,
    summary="Acknowledge a digest via email link",
    description=(
        "Stops all future sends of a digest. Idempotent: repeated clicks "
        "on the same link succeed without changes."
    ),
)
@limiter.limit(lambda: get_settings().rate_limit_acknowledge)
async def acknowledge_link(
    request: Request,
    token: str = Query(..., description="Acknowledgement token"),
    digest_id: str = Query(..., alias="id", description="Digest identity"),
    handler: AcknowledgementHandler = Depends(get_acknowledgement_handler),
) -> AcknowledgeResponse:
    return await _acknowledge(handler, digest_id, token)


@router.post(
    "/acknowledge",
    response_model=AcknowledgeResponse,
    responses=_RESPONSES,
    summary="Acknowledge a digest",
    description="JSON variant of the acknowledgement link for frontends.",
)
@limiter.limit(lambda: get_settings().rate_limit_acknowledge)
async def acknowledge_body(
    request: Request,
    body: AcknowledgeRequest,
    handler: AcknowledgementHandler = Depends(get_acknowledgement_handler),
) -> AcknowledgeResponse:
    return await _acknowledge(handler, body.digest_id, body.token)
