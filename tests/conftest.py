"""Pytest configuration and fixtures."""

from collections.abc import AsyncIterator, Generator
from datetime import date, timedelta
from typing import Any
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from teguh_api.auth.gate import AuthenticationGate
from teguh_api.auth.tokens import TokenService
from teguh_api.config import Settings
from teguh_api.main import create_app
from teguh_api.services.quota_ledger import QuotaLedger
from teguh_api.services.usage_recorder import UsageRecorder
from teguh_api.storage.credential_store import CredentialStore
from teguh_api.storage.database import DatabaseManager
from teguh_api.storage.lua_scripts import lua_scripts
from teguh_api.utils.timeutils import utc_today

TEST_PASSWORD = "secret123"


class FrozenClock:
    """Controllable UTC date source; starts at the real date."""

    def __init__(self, today: date | None = None):
        self.today = today or utc_today()

    def __call__(self) -> date:
        return self.today

    def advance(self, days: int = 1) -> None:
        self.today += timedelta(days=days)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing at a fresh SQLite file, without Redis."""
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'teguh-test.db'}",
        redis_enabled=False,
        jwt_secret="test-jwt-secret",
        creator="Tester",
    )


# Storage-level fixtures


@pytest_asyncio.fixture
async def db(settings) -> AsyncIterator[DatabaseManager]:
    manager = DatabaseManager(settings)
    manager.connect()
    await manager.create_schema()
    yield manager
    await manager.disconnect()


@pytest.fixture
def store(db, clock) -> CredentialStore:
    return CredentialStore(db, clock=clock)


@pytest.fixture
def ledger(store, clock) -> QuotaLedger:
    return QuotaLedger(store, clock=clock)


@pytest.fixture
def recorder(store, clock) -> UsageRecorder:
    return UsageRecorder(store, clock=clock)


@pytest.fixture
def tokens(settings) -> TokenService:
    return TokenService(settings)


@pytest.fixture
def gate(store, ledger, tokens) -> AuthenticationGate:
    return AuthenticationGate(store, ledger, tokens)


@pytest_asyncio.fixture
async def user(store):
    """A free-plan user (password hash is not a real hash)."""
    return await store.create_user("owner@example.com", "not-a-hash", "Owner")


@pytest_asyncio.fixture
async def api_key(store, user):
    return await store.create_api_key(user.id, "Default API Key", daily_limit=100)


# HTTP-level fixtures


@pytest.fixture
def app(settings, clock):
    """Create FastAPI app for testing."""
    return create_app(settings=settings, clock=clock)


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """Create test client."""
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    lua_scripts.reset()


def register(client: TestClient, email: str = "user@example.com") -> dict[str, Any]:
    """Register an account and return the response ``data``."""
    response = client.post(
        "/auth/register",
        json={"email": email, "password": TEST_PASSWORD, "full_name": "Test User"},
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.fixture
def register_user(client):
    """Factory registering extra accounts."""

    def _register(email: str) -> dict[str, Any]:
        return register(client, email)

    return _register


@pytest.fixture
def account(client) -> dict[str, Any]:
    """A freshly registered free-plan account."""
    return register(client)


@pytest.fixture
def bearer_headers(account) -> dict[str, str]:
    return {"Authorization": f"Bearer {account['token']}"}


@pytest.fixture
def api_key_headers(account) -> dict[str, str]:
    return {"x-api-key": account["api_key"]}


@pytest.fixture
def mock_redis():
    """Create a mock Redis client."""
    redis = AsyncMock()
    redis.ping = AsyncMock(return_value=True)
    redis.eval = AsyncMock(return_value=[1, 9, 1700000000])
    redis.evalsha = AsyncMock(return_value=[1, 9, 1700000000])
    redis.script_load = AsyncMock(return_value="sha256hash")
    return redis
