"""Pydantic models for the Teguh API."""

from teguh_api.models.api_key import ApiKeyCreateRequest, ApiKeyOut
from teguh_api.models.media import ChatModel, ChatReply, MediaItem, MediaResult, Platform
from teguh_api.models.responses import Envelope, ErrorEnvelope, HealthResponse, QuotaBlock
from teguh_api.models.usage import DailyUsage, UsageReport
from teguh_api.models.user import AuthData, MeData, RegisterRequest, UserOut

__all__ = [
    "ApiKeyCreateRequest",
    "ApiKeyOut",
    "AuthData",
    "ChatModel",
    "ChatReply",
    "DailyUsage",
    "Envelope",
    "ErrorEnvelope",
    "HealthResponse",
    "MediaItem",
    "MediaResult",
    "MeData",
    "Platform",
    "QuotaBlock",
    "RegisterRequest",
    "UsageReport",
    "UserOut",
]
