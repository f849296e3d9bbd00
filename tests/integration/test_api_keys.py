"""Integration tests for API key management."""


class TestApiKeys:
    def test_list_keys(self, client, account, bearer_headers):
        response = client.get("/api-keys", headers=bearer_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["total"] == 1
        assert data["api_keys"][0]["key"] == account["api_key"]
        assert data["api_keys"][0]["quota"]["remaining"] == 100

    def test_requires_session_token(self, client, api_key_headers):
        response = client.get("/api-keys", headers=api_key_headers)

        assert response.status_code == 401

    def test_create_key_uses_plan_limit(self, client, bearer_headers):
        response = client.post("/api-keys", headers=bearer_headers, json={"name": "CI"})

        assert response.status_code == 201
        key = response.json()["data"]
        assert key["name"] == "CI"
        assert key["daily_limit"] == 100
        assert key["requests_today"] == 0
        assert key["is_active"] is True

    def test_free_plan_key_allowance(self, client, bearer_headers):
        assert client.post("/api-keys", headers=bearer_headers, json={}).status_code == 201

        response = client.post("/api-keys", headers=bearer_headers, json={"name": "third"})

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "API_KEY_LIMIT_REACHED"
        assert body["details"]["max_api_keys"] == 2

    def test_requests_today_tracks_usage(self, client, bearer_headers, api_key_headers):
        for _ in range(3):
            client.get("/api/ping", headers=api_key_headers)

        key = client.get("/api-keys", headers=bearer_headers).json()["data"]["api_keys"][0]

        assert key["requests_today"] == 3
        assert key["quota"]["remaining"] == 97

    def test_revoke_and_activate(self, client, account, bearer_headers, api_key_headers):
        key_id = account["api_key_info"]["id"]

        revoked = client.post(f"/api-keys/{key_id}/revoke", headers=bearer_headers)
        assert revoked.json()["data"]["is_active"] is False
        denied = client.get("/auth/me", headers=api_key_headers)
        assert denied.status_code == 403
        assert denied.json()["code"] == "API_KEY_INACTIVE"

        client.post(f"/api-keys/{key_id}/activate", headers=bearer_headers)
        assert client.get("/auth/me", headers=api_key_headers).status_code == 200

    def test_cannot_touch_other_users_keys(self, client, account, register_user):
        other = register_user("other@example.com")
        headers = {"Authorization": f"Bearer {other['token']}"}
        key_id = account["api_key_info"]["id"]

        assert client.post(f"/api-keys/{key_id}/revoke", headers=headers).status_code == 404
        assert client.delete(f"/api-keys/{key_id}", headers=headers).status_code == 404
        assert client.get(f"/api-keys/{key_id}/usage", headers=headers).status_code == 404

    def test_delete_key(self, client, account, bearer_headers, api_key_headers):
        key_id = account["api_key_info"]["id"]
        client.get("/api/ping", headers=api_key_headers)

        response = client.delete(f"/api-keys/{key_id}", headers=bearer_headers)

        assert response.status_code == 200
        assert client.get("/auth/me", headers=api_key_headers).status_code == 401
        assert client.get("/api-keys", headers=bearer_headers).json()["data"]["total"] == 0
        usage = client.get("/user/usage", headers=bearer_headers).json()["data"]
        assert usage["total_requests"] == 0

    def test_key_usage(self, client, account, bearer_headers, api_key_headers):
        key_id = account["api_key_info"]["id"]
        for _ in range(2):
            client.get("/api/ping", headers=api_key_headers)

        response = client.get(f"/api-keys/{key_id}/usage", headers=bearer_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["days"] == 7
        assert data["daily"][0]["total_requests"] == 2


class TestUserUsage:
    def test_usage_report(self, client, bearer_headers, api_key_headers):
        for _ in range(4):
            client.get("/api/ping", headers=api_key_headers)

        response = client.get("/user/usage", params={"days": 30}, headers=bearer_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["days"] == 30
        assert data["total_requests"] == 4
        assert len(data["daily"]) == 1

    def test_usage_with_api_key_counts_itself(self, client, api_key_headers):
        response = client.get("/user/usage", headers=api_key_headers)

        body = response.json()
        assert body["quota"]["remaining"] == 99
        assert body["data"]["total_requests"] == 0

    def test_days_out_of_range(self, client, bearer_headers):
        response = client.get("/user/usage", params={"days": 0}, headers=bearer_headers)

        assert response.status_code == 400
