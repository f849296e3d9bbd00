"""Authentication module."""

from teguh_api.auth.dependencies import (
    optional_api_key,
    require_admin,
    require_api_key,
    require_session,
    require_user,
)
from teguh_api.auth.gate import (
    Anonymous,
    ApiKeyPrincipal,
    AuthenticationGate,
    Principal,
    UserSession,
)

__all__ = [
    "Anonymous",
    "ApiKeyPrincipal",
    "AuthenticationGate",
    "Principal",
    "UserSession",
    "optional_api_key",
    "require_admin",
    "require_api_key",
    "require_session",
    "require_user",
]
