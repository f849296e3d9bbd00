"""API key models."""

from datetime import datetime

from pydantic import BaseModel, Field

from teguh_api.models.responses import QuotaBlock


class ApiKeyCreateRequest(BaseModel):
    name: str = Field(default="API Key", min_length=1, max_length=255)
    expires_in_days: int | None = Field(default=None, ge=1, le=3650)


class ApiKeyOut(BaseModel):
    """An API key as shown to its owner."""

    id: str
    name: str
    key: str
    is_active: bool
    daily_limit: int
    requests_today: int
    created_at: datetime
    expires_at: datetime | None
    quota: QuotaBlock | None = None
