"""Account request and response models."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from teguh_api.config import Plan
from teguh_api.models.api_key import ApiKeyOut


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    full_name: str | None = Field(default=None, max_length=255)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class LogoutRequest(BaseModel):
    session_id: str | None = None


class ProfileUpdateRequest(BaseModel):
    full_name: str | None = Field(default=None, min_length=2, max_length=255)
    current_password: str | None = None
    new_password: str | None = Field(default=None, min_length=6)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)


class DeleteAccountRequest(BaseModel):
    confirm_text: str | None = None


class PlanChangeRequest(BaseModel):
    plan: Plan


class UserActiveRequest(BaseModel):
    is_active: bool


class UserOut(BaseModel):
    """Public view of a user."""

    id: str
    email: str
    full_name: str | None
    plan: str
    is_active: bool
    is_verified: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class AuthData(BaseModel):
    """Payload of a successful register or login."""

    user: UserOut
    token: str
    session_id: str
    api_key: str | None = None
    api_key_info: ApiKeyOut | None = None


class TodayUsage(BaseModel):
    total_requests: int
    limit: int


class MeData(BaseModel):
    user: UserOut
    api_key: ApiKeyOut | None = None
    usage: TodayUsage
