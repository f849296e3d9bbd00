"""FastAPI authentication dependencies."""

import logging

from fastapi import Depends, Request

from teguh_api.auth.gate import (
    ANONYMOUS,
    ApiKeyPrincipal,
    AuthenticationGate,
    Principal,
    UserSession,
)
from teguh_api.config import Plan
from teguh_api.errors.exceptions import (
    MissingCredentialError,
    PermissionDeniedError,
    QuotaExceededError,
    TeguhAPIError,
)

logger = logging.getLogger(__name__)


def get_gate(request: Request) -> AuthenticationGate:
    return request.app.state.gate


async def get_principal(
    request: Request,
    gate: AuthenticationGate = Depends(get_gate),
) -> Principal:
    """
    Resolve the request's principal and remember it on ``request.state``.

    The usage middleware reads ``request.state.principal`` after the handler
    has run.
    """
    principal = await gate.resolve(request)
    request.state.principal = principal
    return principal


async def require_api_key(principal: Principal = Depends(get_principal)) -> ApiKeyPrincipal:
    """Metered endpoints: only an API key is accepted."""
    if not isinstance(principal, ApiKeyPrincipal):
        raise MissingCredentialError(message="API key required")
    return principal


async def require_user(
    principal: Principal = Depends(get_principal),
) -> UserSession | ApiKeyPrincipal:
    """Either credential scheme, resolved in precedence order."""
    if isinstance(principal, (UserSession, ApiKeyPrincipal)):
        return principal
    raise MissingCredentialError(message="Access token or API key required")


async def require_session(
    request: Request,
    gate: AuthenticationGate = Depends(get_gate),
) -> UserSession:
    """Account self-service: bearer token only, API keys are ignored."""
    session = await gate.authenticate_bearer(request)
    if session is None:
        raise MissingCredentialError(message="Access token required")
    request.state.principal = session
    return session


async def require_admin(session: UserSession = Depends(require_session)) -> UserSession:
    if session.user.plan != Plan.ADMIN.value:
        raise PermissionDeniedError()
    return session


async def optional_api_key(
    request: Request,
    gate: AuthenticationGate = Depends(get_gate),
) -> Principal:
    """
    Degrade to anonymous access on any resolution failure.

    Missing, unknown, inactive or expired keys and store errors all fall
    through to ``Anonymous``. An exhausted quota still answers 429.
    """
    try:
        principal = await gate.resolve(request)
    except QuotaExceededError:
        raise
    except TeguhAPIError as e:
        logger.info("Optional credential rejected (%s), continuing anonymously", e.error_code)
        principal = ANONYMOUS
    request.state.principal = principal
    return principal
