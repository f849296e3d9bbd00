"""Integration tests for the per-IP throttle."""

import pytest
from fastapi.testclient import TestClient

from teguh_api.main import create_app
from teguh_api.storage.lua_scripts import lua_scripts


@pytest.fixture
def throttled_client(settings, clock):
    """App allowing three requests per minute per address."""
    app = create_app(
        settings=settings.model_copy(update={"ip_rate_limit_per_minute": 3}),
        clock=clock,
    )
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    lua_scripts.reset()


class TestIPThrottle:
    """Tests for throttle behavior."""

    def test_requests_under_limit_pass(self, throttled_client):
        for _ in range(3):
            response = throttled_client.get("/api/ping")
            assert response.status_code == 200

    def test_rate_limit_enforced(self, throttled_client):
        for _ in range(3):
            throttled_client.get("/api/ping")

        response = throttled_client.get("/api/ping")

        assert response.status_code == 429
        data = response.json()
        assert data["status"] is False
        assert data["code"] == "RATE_LIMIT_EXCEEDED"
        assert data["creator"] == "Tester"
        assert data["details"]["limit"] == 3
        assert "retry_after" in data["details"]
        assert "Retry-After" in response.headers
        assert response.headers["X-Request-ID"] == data["request_id"]

    def test_throttle_runs_before_authentication(self, throttled_client):
        for _ in range(3):
            throttled_client.get("/api/ping")

        response = throttled_client.get("/api/ping", params={"api_key": "bogus"})

        assert response.status_code == 429

    def test_forwarded_header_ignored_by_default(self, throttled_client):
        for i in range(3):
            throttled_client.get("/api/ping", headers={"X-Forwarded-For": f"203.0.113.{i}"})

        response = throttled_client.get("/api/ping", headers={"X-Forwarded-For": "198.51.100.1"})

        assert response.status_code == 429
        assert throttled_client.app.state.ip_rate_limiter.tracked_clients() == 1

    def test_limit_is_per_address_behind_trusted_proxy(self, settings, clock):
        app = create_app(
            settings=settings.model_copy(
                update={"ip_rate_limit_per_minute": 3, "trust_proxy_headers": True}
            ),
            clock=clock,
        )
        with TestClient(app) as test_client:
            for _ in range(3):
                test_client.get("/api/ping", headers={"X-Forwarded-For": "203.0.113.7"})

            blocked = test_client.get("/api/ping", headers={"X-Forwarded-For": "203.0.113.7"})
            other = test_client.get("/api/ping", headers={"X-Forwarded-For": "203.0.113.8"})

        assert blocked.status_code == 429
        assert other.status_code == 200

    def test_health_is_not_throttled(self, throttled_client):
        for _ in range(5):
            response = throttled_client.get("/health")
            assert response.status_code == 200

    def test_throttle_can_be_disabled(self, settings, clock):
        app = create_app(
            settings=settings.model_copy(
                update={"ip_rate_limit_per_minute": 1, "ip_rate_limit_enabled": False}
            ),
            clock=clock,
        )
        with TestClient(app) as test_client:
            for _ in range(3):
                assert test_client.get("/api/ping").status_code == 200

    def test_request_id_header_present(self, client):
        response = client.get("/api/ping")

        assert "X-Request-ID" in response.headers
