"""
Tests for authentication routes.

Tests login, registration, and token validation endpoints.
"""
import jwt
from fastapi.testclient import TestClient

from app.core.config import settings
from app.core.security import ALGORITHM
from app.models import User


class TestLogin:
    """Tests for the login endpoint."""

    def test_login_success(self, client: TestClient, test_user: User):
        response = client.post(
            "/api/auth/login",
            data={"username": test_user.email, "password": "testpassword123"},
        )

        assert response.status_code == 200
        data = response.json()
        assert "access_token" in data
        assert data["token_type"] == "bearer"

    def test_login_token_carries_premium_role(self, client: TestClient, premium_user: User):
        response = client.post(
            "/api/auth/login",
            data={"username": premium_user.email, "password": "testpassword123"},
        )

        payload = jwt.decode(
            response.json()["access_token"], settings.SECRET_KEY, algorithms=[ALGORITHM]
        )
        assert payload["sub"] == str(premium_user.id)
        assert payload["roles"] == ["premium"]

    def test_login_wrong_password(self, client: TestClient, test_user: User):
        response = client.post(
            "/api/auth/login",
            data={"username": test_user.email, "password": "wrongpassword"},
        )

        assert response.status_code == 401
        assert "Incorrect email or password" in response.json()["detail"]

    def test_login_nonexistent_user(self, client: TestClient):
        response = client.post(
            "/api/auth/login",
            data={"username": "nonexistent@example.com", "password": "anypassword"},
        )

        assert response.status_code == 401

    def test_login_inactive_user(self, client: TestClient, inactive_user: User):
        response = client.post(
            "/api/auth/login",
            data={"username": inactive_user.email, "password": "testpassword123"},
        )

        assert response.status_code == 400
        assert "Inactive user" in response.json()["detail"]

    def test_login_is_throttled(self, client: TestClient, test_user: User):
        """The auth limit (5/minute) applies per client address."""
        for _ in range(5):
            client.post(
                "/api/auth/login",
                data={"username": test_user.email, "password": "wrongpassword"},
            )

        response = client.post(
            "/api/auth/login",
            data={"username": test_user.email, "password": "testpassword123"},
        )

        assert response.status_code == 429


class TestRegister:
    """Tests for the registration endpoint."""

    def test_register_success(self, client: TestClient):
        response = client.post(
            "/api/auth/register",
            json={
                "email": "newuser@example.com",
                "password": "securepassword123",
                "first_name": "New",
                "last_name": "User",
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "newuser@example.com"
        assert data["full_name"] == "New User"
        assert data["is_premium"] is False
        assert "password" not in data
        assert "hashed_password" not in data

    def test_register_ignores_role_flags(self, client: TestClient, session):
        response = client.post(
            "/api/auth/register",
            json={
                "email": "sneaky@example.com",
                "password": "securepassword123",
                "first_name": "Sneaky",
                "last_name": "User",
                "is_superuser": True,
                "is_premium": True,
            },
        )

        assert response.status_code == 201
        user = session.get(User, response.json()["id"])
        assert user.is_superuser is False
        assert user.is_premium is False

    def test_register_duplicate_email(self, client: TestClient, test_user: User):
        response = client.post(
            "/api/auth/register",
            json={
                "email": test_user.email,
                "password": "securepassword123",
                "first_name": "Dup",
                "last_name": "User",
            },
        )

        assert response.status_code == 400
        assert "already exists" in response.json()["detail"]

    def test_register_short_password(self, client: TestClient):
        response = client.post(
            "/api/auth/register",
            json={
                "email": "short@example.com",
                "password": "short",
                "first_name": "Short",
                "last_name": "Password",
            },
        )

        assert response.status_code == 422

    def test_register_invalid_email(self, client: TestClient):
        response = client.post(
            "/api/auth/register",
            json={
                "email": "not-an-email",
                "password": "securepassword123",
                "first_name": "Bad",
                "last_name": "Email",
            },
        )

        assert response.status_code == 422


class TestCurrentUser:
    """Tests for the /me endpoint."""

    def test_me(self, client: TestClient, test_user: User, auth_headers: dict):
        response = client.get("/api/auth/me", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["email"] == test_user.email

    def test_me_without_token(self, client: TestClient):
        response = client.get("/api/auth/me")

        assert response.status_code == 401

    def test_me_with_invalid_token(self, client: TestClient):
        response = client.get(
            "/api/auth/me", headers={"Authorization": "Bearer invalid-token"}
        )

        assert response.status_code == 401
