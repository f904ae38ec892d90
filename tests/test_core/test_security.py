"""
Tests for core security functions.

Tests password hashing, JWT tokens with role claims, and bearer header parsing.
"""
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from app.core.config import settings
from app.core.security import (
    ALGORITHM,
    ANONYMOUS,
    ROLE_ADMIN,
    ROLE_PREMIUM,
    auth_context_from_header,
    create_access_token,
    decode_access_token,
    get_password_hash,
    verify_password,
)


class TestPasswordHashing:
    """Tests for password hashing functions."""

    def test_get_password_hash_returns_hash(self):
        password = "testpassword123"
        hashed = get_password_hash(password)

        assert hashed != password
        assert hashed.startswith("$2b$")  # bcrypt prefix

    def test_get_password_hash_different_each_time(self):
        """Hashing the same password twice uses different salts."""
        assert get_password_hash("testpassword123") != get_password_hash("testpassword123")

    def test_verify_password_correct(self):
        hashed = get_password_hash("testpassword123")
        assert verify_password("testpassword123", hashed) is True

    def test_verify_password_incorrect(self):
        hashed = get_password_hash("testpassword123")
        assert verify_password("wrongpassword456", hashed) is False

    def test_verify_password_malformed_hash(self):
        assert verify_password("testpassword123", "not-a-bcrypt-hash") is False


class TestJWTTokens:
    """Tests for JWT token creation and decoding."""

    def test_create_access_token_contains_subject(self):
        token = create_access_token(subject=42, expires_delta=timedelta(minutes=30))

        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
        assert payload["sub"] == "42"
        assert "roles" not in payload

    def test_create_access_token_contains_expiration(self):
        token = create_access_token(subject="7", expires_delta=timedelta(minutes=30))

        payload = decode_access_token(token)
        exp_time = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
        delta = exp_time - datetime.now(timezone.utc)

        # Should be close to 30 minutes (allow 1 minute tolerance)
        assert 29 <= delta.total_seconds() / 60 <= 31

    def test_create_access_token_with_roles(self):
        token = create_access_token(
            subject="7",
            expires_delta=timedelta(minutes=30),
            roles=[ROLE_PREMIUM, ROLE_ADMIN],
        )

        payload = decode_access_token(token)
        assert payload["roles"] == ["admin", "premium"]

    def test_token_invalid_with_wrong_secret(self):
        token = create_access_token(subject="7", expires_delta=timedelta(minutes=30))

        with pytest.raises(jwt.InvalidSignatureError):
            jwt.decode(token, "wrong-secret-key", algorithms=[ALGORITHM])

    def test_expired_token_raises_error(self):
        token = create_access_token(subject="7", expires_delta=timedelta(minutes=-1))

        with pytest.raises(jwt.ExpiredSignatureError):
            decode_access_token(token)


class TestAuthContextFromHeader:
    """Tests for deriving the caller's auth context from an Authorization header."""

    def test_missing_header_is_anonymous(self):
        assert auth_context_from_header(None) is ANONYMOUS
        assert auth_context_from_header("") is ANONYMOUS

    def test_non_bearer_scheme_is_anonymous(self):
        assert auth_context_from_header("Basic dXNlcjpwYXNz") is ANONYMOUS

    def test_invalid_token_is_anonymous(self):
        assert auth_context_from_header("Bearer not.a.jwt") is ANONYMOUS

    def test_expired_token_is_anonymous(self):
        token = create_access_token(subject="7", expires_delta=timedelta(minutes=-1))
        assert auth_context_from_header(f"Bearer {token}") is ANONYMOUS

    def test_valid_token_without_roles(self):
        token = create_access_token(subject="42", expires_delta=timedelta(minutes=5))

        context = auth_context_from_header(f"Bearer {token}")

        assert context.is_authenticated
        assert context.subject == "42"
        assert context.roles == frozenset()

    def test_valid_token_with_roles(self):
        token = create_access_token(
            subject="42", expires_delta=timedelta(minutes=5), roles=[ROLE_PREMIUM]
        )

        context = auth_context_from_header(f"bearer {token}")

        assert context.subject == "42"
        assert context.roles == frozenset({"premium"})
