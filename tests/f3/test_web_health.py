"""Tests for health endpoint (F3)."""

from pharmastudy import __version__


class TestHealthEndpoint:
    """Tests for GET /health."""

    def test_health_returns_ok(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_health_returns_version(self, client):
        data = client.get("/health").json()
        assert data["version"] == __version__

    def test_health_needs_no_token(self, client):
        """Health is reachable without an Authorization header."""
        data = client.get("/health").json()
        # ISO format check
        assert "T" in data["timestamp"]
