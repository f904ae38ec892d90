"""
Caller identity for AI rate limiting.

Maps a request's authentication state to a rate-limit key and a tier, and a
tier to its per-minute quota.
"""
from dataclasses import dataclass
from enum import Enum

from app.core.config import settings
from app.core.security import ELEVATED_ROLES, AuthContext


class Tier(str, Enum):
    FREE = "free"
    STANDARD = "standard"
    PREMIUM = "premium"


@dataclass(frozen=True)
class Identity:
    key: str
    tier: Tier


@dataclass(frozen=True)
class TierQuotas:
    """Requests per minute for each tier."""

    free: int = 10
    standard: int = 60
    premium: int = 200

    @classmethod
    def from_settings(cls) -> "TierQuotas":
        return cls(
            free=settings.AI_RATE_LIMIT_FREE,
            standard=settings.AI_RATE_LIMIT_STANDARD,
            premium=settings.AI_RATE_LIMIT_PREMIUM,
        )

    def quota_for(self, tier: Tier) -> int:
        return {
            Tier.FREE: self.free,
            Tier.STANDARD: self.standard,
            Tier.PREMIUM: self.premium,
        }[tier]


def resolve_identity(auth: AuthContext, client_host: str | None) -> Identity:
    """
    Derive the rate-limit identity of a caller.

    Authenticated callers are keyed by user id, anonymous ones by network
    address.
    """
    if auth.is_authenticated:
        tier = Tier.PREMIUM if auth.roles & ELEVATED_ROLES else Tier.STANDARD
        return Identity(key=f"user:{auth.subject}", tier=tier)
    return Identity(key=f"ip:{client_host or 'unknown'}", tier=Tier.FREE)
