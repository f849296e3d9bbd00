"""Tests for credential extraction and resolution."""

from datetime import timedelta

import pytest
from sqlalchemy import update
from starlette.requests import Request

from teguh_api.auth.gate import (
    ANONYMOUS,
    ApiKeyPrincipal,
    CredentialScheme,
    UserSession,
    extract_credential,
)
from teguh_api.errors.exceptions import (
    ExpiredKeyError,
    InactiveAccountError,
    InactiveKeyError,
    InvalidAPIKeyError,
    InvalidTokenError,
    QuotaExceededError,
)
from teguh_api.storage.tables import ApiKeyRecord
from teguh_api.utils.timeutils import now_utc


def make_request(query: str = "", headers: dict[str, str] | None = None) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/api/ping",
        "query_string": query.encode(),
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
    }
    return Request(scope)


class TestExtractCredential:
    def test_no_credential(self):
        assert extract_credential(make_request()) is None

    def test_query_beats_header_and_bearer(self):
        request = make_request(
            "api_key=from-query",
            {"x-api-key": "from-header", "Authorization": "Bearer tok"},
        )

        credential = extract_credential(request)

        assert credential.scheme is CredentialScheme.API_KEY
        assert credential.value == "from-query"
        assert credential.source == "query"

    def test_header_beats_bearer(self):
        request = make_request(headers={"x-api-key": "from-header", "Authorization": "Bearer tok"})

        credential = extract_credential(request)

        assert credential.value == "from-header"
        assert credential.source == "header"

    def test_bearer(self):
        credential = extract_credential(make_request(headers={"Authorization": "Bearer abc"}))

        assert credential.scheme is CredentialScheme.BEARER
        assert credential.value == "abc"

    @pytest.mark.parametrize("authorization", ["Basic dXNlcjpwdw==", "Bearer ", "Bearer"])
    def test_non_bearer_authorization_ignored(self, authorization):
        assert extract_credential(make_request(headers={"Authorization": authorization})) is None

    def test_empty_query_key_falls_through(self):
        credential = extract_credential(make_request("api_key=", {"x-api-key": "h"}))

        assert credential.value == "h"


class TestResolve:
    @pytest.mark.asyncio
    async def test_anonymous(self, gate):
        assert await gate.resolve(make_request()) is ANONYMOUS

    @pytest.mark.asyncio
    async def test_valid_query_key_wins_over_invalid_header(self, gate, api_key):
        request = make_request(f"api_key={api_key.key_value}", {"x-api-key": "bogus"})

        principal = await gate.resolve(request)

        assert isinstance(principal, ApiKeyPrincipal)
        assert principal.api_key.id == api_key.id
        assert principal.quota.remaining == 99

    @pytest.mark.asyncio
    async def test_invalid_query_key_is_not_rescued_by_valid_header(self, gate, api_key):
        request = make_request("api_key=bogus", {"x-api-key": api_key.key_value})

        with pytest.raises(InvalidAPIKeyError):
            await gate.resolve(request)

    @pytest.mark.asyncio
    async def test_invalid_header_key_is_not_rescued_by_valid_token(self, gate, tokens, user):
        token = tokens.issue(user)
        request = make_request(headers={"x-api-key": "bogus", "Authorization": f"Bearer {token}"})

        with pytest.raises(InvalidAPIKeyError):
            await gate.resolve(request)

    @pytest.mark.asyncio
    async def test_bearer_token(self, gate, tokens, user):
        token = tokens.issue(user, session_id="sess_abc")

        principal = await gate.resolve(make_request(headers={"Authorization": f"Bearer {token}"}))

        assert isinstance(principal, UserSession)
        assert principal.user.id == user.id
        assert principal.session_id == "sess_abc"

    @pytest.mark.asyncio
    async def test_bearer_only_ignores_api_key(self, gate, tokens, user, store, api_key):
        token = tokens.issue(user)
        request = make_request(
            f"api_key={api_key.key_value}", {"Authorization": f"Bearer {token}"}
        )

        session = await gate.authenticate_bearer(request)

        assert session.user.id == user.id
        requests_today, _, _ = await store.get_quota_state(api_key.id)
        assert requests_today == 0


class TestApiKeyChecks:
    @pytest.mark.asyncio
    async def test_inactive_key(self, gate, store, user, api_key):
        await store.set_api_key_active(api_key.id, user.id, False)

        with pytest.raises(InactiveKeyError):
            await gate.authenticate_api_key(api_key.key_value)

        requests_today, _, _ = await store.get_quota_state(api_key.id)
        assert requests_today == 0

    @pytest.mark.asyncio
    async def test_expired_key(self, gate, db, api_key):
        async with db.session() as session:
            await session.execute(
                update(ApiKeyRecord)
                .where(ApiKeyRecord.id == api_key.id)
                .values(expires_at=now_utc() - timedelta(minutes=1))
            )
            await session.commit()

        with pytest.raises(ExpiredKeyError):
            await gate.authenticate_api_key(api_key.key_value)

    @pytest.mark.asyncio
    async def test_inactive_owner(self, gate, store, user, api_key):
        await store.set_user_active(user.id, False)

        with pytest.raises(InactiveAccountError):
            await gate.authenticate_api_key(api_key.key_value)

    @pytest.mark.asyncio
    async def test_quota_exceeded(self, gate, store, user):
        key = await store.create_api_key(user.id, "one", daily_limit=1)
        await gate.authenticate_api_key(key.key_value)

        with pytest.raises(QuotaExceededError) as exc_info:
            await gate.authenticate_api_key(key.key_value)

        assert exc_info.value.limit == 1
        assert exc_info.value.remaining == 0
        assert exc_info.value.details["reset_date"] == exc_info.value.reset_date.isoformat()


class TestTokenChecks:
    @pytest.mark.asyncio
    async def test_deleted_user(self, gate, tokens, store, user):
        token = tokens.issue(user)
        await store.delete_user_cascade(user.id)

        with pytest.raises(InvalidTokenError):
            await gate.authenticate_token(token)

    @pytest.mark.asyncio
    async def test_inactive_user(self, gate, tokens, store, user):
        token = tokens.issue(user)
        await store.set_user_active(user.id, False)

        with pytest.raises(InactiveAccountError):
            await gate.authenticate_token(token)

    @pytest.mark.asyncio
    async def test_user_is_reloaded(self, gate, tokens, store, user):
        token = tokens.issue(user)
        await store.set_user_plan(user.id, "premium", 5000)

        session = await gate.authenticate_token(token)

        assert session.user.plan == "premium"
