"""
Rate Limiting for Expense Insight.

Two layers:
- SlowAPI limits on auth endpoints (login, register) against brute force.
- RateLimitGate on the AI namespace: per-identity, tiered, fixed-window
  quotas backed by Redis when available and by process memory otherwise.
"""
import time
from collections.abc import Callable

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from app.core.config import settings
from app.core.counters import (
    CounterBackendError,
    LocalWindowCounter,
    RateLimitResult,
    RedisWindowCounter,
    WindowCounter,
)
from app.core.identity import Identity, TierQuotas, resolve_identity
from app.core.logging import get_logger
from app.core.security import ANONYMOUS, auth_context_from_header, bearer_token

logger = get_logger(__name__)

AI_PATH_PREFIX = f"{settings.API_STR}/ai/"

# AI routes that never serve anonymous callers
AI_AUTH_REQUIRED_PATHS = frozenset({f"{AI_PATH_PREFIX}weekly-summary"})


# =============================================================================
# SlowAPI (auth endpoints)
# =============================================================================

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


def auth_limit():
    """Strict rate limit for auth endpoints (login, register)."""
    return limiter.limit(settings.RATE_LIMIT_AUTH)


# =============================================================================
# AI Rate Limit Gate
# =============================================================================


class UnauthenticatedRequestError(Exception):
    """The request would be rejected with 401 by its route, so it is not counted."""

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class RateLimitGate:
    """
    Allow/deny decisions for AI requests.

    The distributed counter is the source of truth while it answers. When it
    errors the request is accounted locally instead, and the distributed
    counter is left alone for `failure_cooldown` seconds.
    """

    def __init__(
        self,
        quotas: TierQuotas,
        local: LocalWindowCounter,
        distributed: WindowCounter | None = None,
        path_prefix: str = AI_PATH_PREFIX,
        auth_required_paths: frozenset[str] = AI_AUTH_REQUIRED_PATHS,
        failure_cooldown: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.quotas = quotas
        self.local = local
        self.distributed = distributed
        self.path_prefix = path_prefix
        self.auth_required_paths = auth_required_paths
        self.failure_cooldown = failure_cooldown
        self._clock = clock
        self._distributed_retry_at = 0.0

    @classmethod
    def from_settings(cls) -> "RateLimitGate":
        distributed = None
        if settings.REDIS_URL:
            distributed = RedisWindowCounter.from_url(
                settings.REDIS_URL,
                socket_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
            )
        return cls(
            quotas=TierQuotas.from_settings(),
            local=LocalWindowCounter(),
            distributed=distributed,
            failure_cooldown=settings.REDIS_FAILURE_COOLDOWN_SECONDS,
        )

    @property
    def backend(self) -> str:
        if self.distributed is not None and self._clock() >= self._distributed_retry_at:
            return "redis"
        return "local"

    def applies_to(self, path: str) -> bool:
        return path.startswith(self.path_prefix)

    def check_and_consume(self, request: Request) -> RateLimitResult | None:
        """
        Count `request` against its caller's quota.

        Returns None for paths outside the gated namespace; nothing is
        counted for those. Raises UnauthenticatedRequestError, again without
        counting, when a bearer token is presented but does not validate, or
        when an anonymous caller hits a route that requires a login.
        """
        path = request.url.path
        if not self.applies_to(path):
            return None
        authorization = request.headers.get("authorization")
        auth = auth_context_from_header(authorization)
        if auth is ANONYMOUS:
            if bearer_token(authorization) is not None:
                raise UnauthenticatedRequestError("Could not validate credentials")
            if path in self.auth_required_paths:
                raise UnauthenticatedRequestError("Not authenticated")
        client_host = request.client.host if request.client else None
        return self.consume(resolve_identity(auth, client_host))

    def consume(self, identity: Identity) -> RateLimitResult:
        self.local.evict_idle()
        capacity = self.quotas.quota_for(identity.tier)

        result = None
        if self.backend == "redis":
            try:
                result = self.distributed.consume(identity.key, capacity)
            except CounterBackendError as e:
                self._distributed_retry_at = self._clock() + self.failure_cooldown
                logger.warning(
                    "Distributed rate limit store unavailable, counting locally "
                    f"for {self.failure_cooldown:.0f}s: {e}"
                )
        if result is None:
            result = self.local.consume(identity.key, capacity)

        if not result.allowed:
            logger.info(
                f"AI rate limit exceeded for {identity.key} "
                f"(tier={identity.tier.value}, limit={capacity}, reset={result.reset_seconds}s)"
            )
        return result
