"""Tests for api/health.py - liveness endpoint."""

import redis


class TestHealth:

    def test_healthy(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "ok"
        assert data["service"] == "regional-portal"
        assert data["checks"] == {"database": "ok", "cache": "ok"}

    def test_needs_no_token_and_is_not_rate_limited(self, client):
        response = client.get("/health")
        assert "RateLimit-Limit" not in response.headers

    def test_database_down(self, client, mock_postgres):
        mock_postgres.ping.side_effect = Exception("connection refused")
        response = client.get("/health")
        assert response.status_code == 503
        body = response.json()
        assert body["error"]["code"] == "SERVICE_UNAVAILABLE"
        assert body["data"]["status"] == "degraded"
        assert body["data"]["checks"]["database"] == "unavailable"

    def test_cache_down(self, client, valkey, monkeypatch):
        def unreachable():
            raise redis.ConnectionError("down")

        monkeypatch.setattr(valkey, "ping", unreachable)
        response = client.get("/health")
        assert response.status_code == 503
        assert response.json()["data"]["checks"] == {"database": "ok", "cache": "unavailable"}
