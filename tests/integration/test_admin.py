"""Integration tests for admin endpoints."""

import pytest

from teguh_api.config import PLAN_CONFIGS, Plan


@pytest.fixture
def admin_headers(client, app, register_user):
    admin = register_user("admin@example.com")
    client.portal.call(
        app.state.store.set_user_plan,
        admin["user"]["id"],
        Plan.ADMIN.value,
        PLAN_CONFIGS[Plan.ADMIN].daily_limit,
    )
    return {"Authorization": f"Bearer {admin['token']}"}


class TestAdminAccess:
    def test_non_admin_forbidden(self, client, bearer_headers):
        response = client.get("/admin/stats", headers=bearer_headers)

        assert response.status_code == 403
        assert response.json()["code"] == "AUTH_PERMISSION_DENIED"

    def test_api_key_not_accepted(self, client, api_key_headers):
        assert client.get("/admin/stats", headers=api_key_headers).status_code == 401

    def test_stats(self, client, account, admin_headers):
        response = client.get("/admin/stats", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["users"] == 2
        assert data["api_keys"] == 2
        assert data["sessions"] == 2


class TestPlanChange:
    def test_upgrade_rederives_key_limits(
        self, client, account, admin_headers, bearer_headers, api_key_headers
    ):
        client.get("/api/ping", headers=api_key_headers)

        response = client.put(
            f"/admin/users/{account['user']['id']}/plan",
            headers=admin_headers,
            json={"plan": "premium"},
        )

        assert response.status_code == 200
        assert response.json()["data"]["user"]["plan"] == "premium"
        ping = client.get("/api/ping", headers=api_key_headers).json()
        assert ping["quota"]["daily_limit"] == 5000
        assert ping["quota"]["remaining"] == 4998
        created = client.post("/api-keys", headers=bearer_headers, json={"name": "x"})
        assert created.json()["data"]["daily_limit"] == 5000

    def test_unknown_plan(self, client, account, admin_headers):
        response = client.put(
            f"/admin/users/{account['user']['id']}/plan",
            headers=admin_headers,
            json={"plan": "platinum"},
        )

        assert response.status_code == 400

    def test_unknown_user(self, client, admin_headers):
        response = client.put(
            "/admin/users/missing/plan", headers=admin_headers, json={"plan": "basic"}
        )

        assert response.status_code == 404


class TestUserActivation:
    def test_deactivate_and_reactivate(
        self, client, account, admin_headers, bearer_headers, api_key_headers
    ):
        url = f"/admin/users/{account['user']['id']}/active"

        response = client.put(url, headers=admin_headers, json={"is_active": False})
        assert response.status_code == 200
        assert response.json()["message"] == "User deactivated"
        assert client.get("/auth/me", headers=bearer_headers).status_code == 403
        assert client.get("/auth/me", headers=api_key_headers).status_code == 403

        client.put(url, headers=admin_headers, json={"is_active": True})
        assert client.get("/auth/me", headers=bearer_headers).status_code == 200


class TestSessionCleanup:
    def test_cleanup_keeps_fresh_sessions(self, client, account, admin_headers):
        response = client.post("/admin/sessions/cleanup", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["data"]["removed"] == 0
