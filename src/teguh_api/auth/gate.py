"""Authentication gate: turns an inbound request into a principal or an error.

Credentials are looked up in a fixed order and the first one present decides
the scheme, regardless of whether a later one would have been valid:

    1. ``?api_key=`` query parameter
    2. ``x-api-key`` header
    3. ``Authorization: Bearer <token>``

API-key principals consume one unit of daily quota during resolution.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from fastapi import Request

from teguh_api.auth.tokens import TokenService
from teguh_api.errors.exceptions import (
    ExpiredKeyError,
    InactiveAccountError,
    InactiveKeyError,
    InvalidAPIKeyError,
    InvalidTokenError,
    QuotaExceededError,
)
from teguh_api.services.quota_ledger import QuotaDecision, QuotaLedger
from teguh_api.storage.credential_store import CredentialStore
from teguh_api.storage.tables import ApiKeyRecord, UserRecord
from teguh_api.utils.timeutils import as_utc, now_utc

logger = logging.getLogger(__name__)


class CredentialScheme(str, Enum):
    API_KEY = "api_key"
    BEARER = "bearer"


@dataclass(frozen=True)
class Credential:
    scheme: CredentialScheme
    value: str
    source: str


@dataclass(frozen=True)
class Anonymous:
    pass


@dataclass(frozen=True)
class UserSession:
    user: UserRecord
    session_id: str | None = None


@dataclass(frozen=True)
class ApiKeyPrincipal:
    user: UserRecord
    api_key: ApiKeyRecord
    quota: QuotaDecision


Principal = Anonymous | UserSession | ApiKeyPrincipal

ANONYMOUS = Anonymous()


def _bearer_token(request: Request) -> str | None:
    authorization = request.headers.get("authorization")
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def extract_credential(request: Request) -> Credential | None:
    """Return the first credential present, in precedence order."""
    query_key = request.query_params.get("api_key")
    if query_key:
        return Credential(CredentialScheme.API_KEY, query_key, "query")

    header_key = request.headers.get("x-api-key")
    if header_key:
        return Credential(CredentialScheme.API_KEY, header_key, "header")

    token = _bearer_token(request)
    if token:
        return Credential(CredentialScheme.BEARER, token, "authorization")

    return None


class AuthenticationGate:
    """Resolves credentials against the store and the quota ledger."""

    def __init__(
        self,
        store: CredentialStore,
        ledger: QuotaLedger,
        tokens: TokenService,
    ):
        self._store = store
        self._ledger = ledger
        self._tokens = tokens

    async def resolve(self, request: Request) -> Principal:
        """
        Classify the request's credential.

        Returns ``Anonymous`` when no credential is present. Endpoint policy
        (reject anonymous or not) is applied by the FastAPI dependencies.
        """
        credential = extract_credential(request)
        if credential is None:
            return ANONYMOUS

        if credential.scheme is CredentialScheme.BEARER:
            return await self.authenticate_token(credential.value)
        return await self.authenticate_api_key(credential.value)

    async def authenticate_bearer(self, request: Request) -> UserSession | None:
        """Resolve only the ``Authorization`` header, ignoring any API key."""
        token = _bearer_token(request)
        if token is None:
            return None
        return await self.authenticate_token(token)

    async def authenticate_token(self, token: str) -> UserSession:
        claims = self._tokens.verify(token)

        # Claims may be stale (plan, active flag); always reload the user.
        user = await self._store.find_user_by_id(claims.user_id)
        if user is None:
            logger.warning("Token for unknown user %s", claims.user_id)
            raise InvalidTokenError(message="Invalid or inactive user")
        if not user.is_active:
            logger.warning("Token for inactive user %s", user.id)
            raise InactiveAccountError()

        return UserSession(user=user, session_id=claims.session_id)

    async def authenticate_api_key(self, key_value: str) -> ApiKeyPrincipal:
        api_key = await self._store.find_api_key_by_value(key_value)
        if api_key is None:
            raise InvalidAPIKeyError()
        if not api_key.is_active:
            logger.warning("Inactive API key %s presented", api_key.id)
            raise InactiveKeyError()

        expires_at = as_utc(api_key.expires_at)
        if expires_at is not None and expires_at < now_utc():
            logger.warning("Expired API key %s presented", api_key.id)
            raise ExpiredKeyError()

        quota = await self._ledger.check_and_consume(api_key.id)
        if not quota.allowed:
            logger.warning("Daily limit exceeded for API key %s", api_key.id)
            raise QuotaExceededError(
                limit=quota.limit,
                remaining=quota.remaining,
                reset_date=quota.reset_date,
            )

        user = await self._store.find_user_by_id(api_key.user_id)
        if user is None or not user.is_active:
            logger.warning("API key %s belongs to an inactive account", api_key.id)
            raise InactiveAccountError()

        return ApiKeyPrincipal(user=user, api_key=api_key, quota=quota)
