"""
Pydantic models for API request/response validation.
"""

from pydantic import BaseModel, ConfigDict, Field


class AcknowledgeRequest(BaseModel):
    """Request body for POST /acknowledge."""

    model_config = ConfigDict(populate_by_name=True)

    token: str = Field(
        ...,
        description="Acknowledgement token from the digest email",
    )
    digest_id: str = Field(
        ...,
        alias="digestId",
        description="Digest identity from the digest email",
    )


class AcknowledgeResponse(BaseModel):
    """Response model for a successful acknowledgement."""

    success: bool = True
    digest_id: str = Field(..., description="Acknowledged digest")
    already_acknowledged: bool = Field(
        default=False,
        description="True if the digest had been acknowledged before this request",
    )
    message: str = Field(..., description="Human-readable outcome")


class ErrorResponse(BaseModel):
    """Response model for errors."""

    detail: str = Field(
        ...,
        description="Error message",
    )
    error_type: str = Field(
        default="error",
        description="Error type",
    )


class ComponentHealth(BaseModel):
    """Health of one infrastructure dependency."""

    status: str = Field(..., description="healthy or unhealthy")
    latency_ms: float | None = Field(default=None, description="Check latency")
    details: dict | None = Field(default=None, description="Failure details")


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(
        ...,
        description="Overall service status: healthy or unhealthy",
    )
    components: dict[str, ComponentHealth] = Field(default_factory=dict)
    version: str = Field(..., description="Service version")
