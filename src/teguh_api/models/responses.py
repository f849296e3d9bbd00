"""Standard API response models."""

from datetime import UTC, date, datetime
from typing import Any

from pydantic import BaseModel, Field


class QuotaBlock(BaseModel):
    """Daily quota status of the API key that made the call."""

    daily_limit: int
    remaining: int
    reset_date: date = Field(..., description="UTC date on which the counter rolls over")


class Envelope(BaseModel):
    """Uniform success envelope."""

    status: bool = True
    creator: str
    message: str
    data: Any | None = None
    quota: QuotaBlock | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ErrorEnvelope(BaseModel):
    """Uniform error envelope: the success shape without ``data``."""

    status: bool = False
    creator: str
    message: str
    code: str = Field(..., description="Machine-readable error code")
    details: dict[str, Any] | None = Field(default=None, description="Additional error details")
    request_id: str | None = Field(default=None, description="Request ID for tracking")
    quota: QuotaBlock | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Overall health status")
    version: str = Field(..., description="API version")
    components: dict[str, dict[str, Any]] = Field(
        default_factory=dict, description="Component health status"
    )
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
