"""Tests for auth and health endpoints (F3)."""

from pharmastudy import __version__


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["version"] == __version__


class TestRegister:
    def test_register_returns_user_and_token(self, client):
        response = client.post(
            "/auth/register",
            json={"name": "Alice", "email": "Alice@Example.com", "password": "password-alice"},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["token"]
        assert data["user"]["email"] == "alice@example.com"
        assert "password" not in data["user"]
        assert "password_hash" not in data["user"]

    def test_duplicate_email_conflicts(self, client, alice_headers):
        response = client.post(
            "/auth/register",
            json={"name": "Alice 2", "email": "alice@example.com", "password": "another-pass"},
        )
        assert response.status_code == 409
        assert response.json()["detail"] == "User already exists with this email"

    def test_invalid_payload(self, client):
        response = client.post(
            "/auth/register", json={"name": "X", "email": "not-an-email", "password": "short"}
        )
        assert response.status_code == 422


class TestLogin:
    def test_login(self, client, alice_headers):
        response = client.post(
            "/auth/login", json={"email": "alice@example.com", "password": "password-alice"}
        )
        assert response.status_code == 200
        assert response.json()["user"]["name"] == "Alice"

    def test_bad_credentials(self, client, alice_headers):
        response = client.post(
            "/auth/login", json={"email": "alice@example.com", "password": "wrong-password"}
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid email or password"


class TestMe:
    def test_me(self, client, alice_headers):
        response = client.get("/auth/me", headers=alice_headers)
        assert response.status_code == 200
        assert response.json()["user"]["email"] == "alice@example.com"

    def test_missing_token(self, client):
        assert client.get("/auth/me").status_code == 401

    def test_invalid_token(self, client):
        response = client.get("/auth/me", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401

    def test_content_routes_require_token(self, client):
        assert client.get("/chapters").status_code == 401
        assert client.get("/flashcards").status_code == 401
        assert client.get("/search", params={"q": "x"}).status_code == 401
