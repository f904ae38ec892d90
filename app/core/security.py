"""
Password hashing and JWT access tokens.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
import jwt
from jwt.exceptions import InvalidTokenError

from app.core.config import settings

ALGORITHM = "HS256"

# Role markers carried in the token; either one lifts a caller to the premium AI tier
ROLE_ADMIN = "admin"
ROLE_PREMIUM = "premium"
ELEVATED_ROLES = frozenset({ROLE_ADMIN, ROLE_PREMIUM})


def create_access_token(
    subject: str | Any,
    expires_delta: timedelta,
    roles: list[str] | None = None,
) -> str:
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode: dict[str, Any] = {"exp": expire, "sub": str(subject)}
    if roles:
        to_encode["roles"] = sorted(roles)
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and verify a token. Raises InvalidTokenError on any problem."""
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"), hashed_password.encode("utf-8")
        )
    except ValueError:
        return False


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


@dataclass(frozen=True)
class AuthContext:
    """What the bearer token on a request says about the caller."""

    subject: str | None = None
    roles: frozenset[str] = frozenset()

    @property
    def is_authenticated(self) -> bool:
        return self.subject is not None


ANONYMOUS = AuthContext()


def bearer_token(authorization: str | None) -> str | None:
    """The token of a `Bearer <token>` header value, or None."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token


def auth_context_from_header(authorization: str | None) -> AuthContext:
    """
    Build an AuthContext from an Authorization header value.

    Missing, malformed, expired or forged tokens all yield the anonymous
    context; callers that must tell "no token" from "bad token" check
    `bearer_token` as well.
    """
    token = bearer_token(authorization)
    if token is None:
        return ANONYMOUS
    try:
        payload = decode_access_token(token)
    except InvalidTokenError:
        return ANONYMOUS
    subject = payload.get("sub")
    if not subject:
        return ANONYMOUS
    roles = payload.get("roles") or []
    return AuthContext(subject=str(subject), roles=frozenset(str(r) for r in roles))
