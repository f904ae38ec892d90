"""
HTTP middleware for Expense Insight.

Security headers, host validation and the AI rate limit gate.
"""
import uuid
from collections.abc import Callable

from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from app.core.config import settings
from app.core.rate_limit import RateLimitGate, UnauthenticatedRequestError
from app.services.llm_client import AIProviderNotConfiguredError


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add security headers to all responses.

    Headers added:
    - X-Content-Type-Options: Prevents MIME-type sniffing
    - X-Frame-Options: Prevents clickjacking
    - X-XSS-Protection: Legacy XSS protection (for older browsers)
    - Referrer-Policy: Controls referrer information
    - Permissions-Policy: Restricts browser features
    - X-Request-ID: Request tracking
    - Strict-Transport-Security: HTTPS enforcement (production only)
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Generate request ID for tracking
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        # Process request
        response = await call_next(request)

        # Add security headers
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = (
            "accelerometer=(), camera=(), geolocation=(), gyroscope=(), "
            "magnetometer=(), microphone=(), payment=(), usb=()"
        )
        response.headers["X-Request-ID"] = request_id

        # HSTS only in production (requires HTTPS)
        if settings.ENVIRONMENT == "production":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response


class TrustedHostMiddleware(BaseHTTPMiddleware):
    """
    Middleware to validate Host header against allowed hosts.

    Prevents Host header injection attacks.
    """

    def __init__(self, app, allowed_hosts: list[str] | None = None):
        super().__init__(app)
        self.allowed_hosts = allowed_hosts or ["*"]

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if "*" not in self.allowed_hosts:
            host = request.headers.get("host", "").split(":")[0]
            if host not in self.allowed_hosts:
                return Response(
                    content="Invalid host header",
                    status_code=400,
                    media_type="text/plain",
                )

        return await call_next(request)


class AiRateLimitMiddleware(BaseHTTPMiddleware):
    """
    Per-identity quota for the AI namespace.

    Requests outside the namespace pass straight through. When no AI
    provider is configured the request is answered with 503 before any
    quota is spent. A request its route would reject with 401 (a bearer
    token that does not validate, or no login on a route that needs one)
    gets that 401 here, also uncounted. Otherwise the gate counts the
    request; a denial is answered here with 429 and the handler never runs.
    The X-RateLimit-* headers are set on both outcomes.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        gate: RateLimitGate | None = getattr(request.app.state, "rate_limit_gate", None)
        if gate is None or not gate.applies_to(request.url.path):
            return await call_next(request)

        if getattr(request.app.state, "llm_client", None) is None:
            return JSONResponse(
                status_code=503,
                content={"detail": AIProviderNotConfiguredError().message},
            )

        # The distributed counter is a blocking network call
        try:
            result = await run_in_threadpool(gate.check_and_consume, request)
        except UnauthenticatedRequestError as e:
            return JSONResponse(
                status_code=401,
                content={"detail": e.detail},
                headers={"WWW-Authenticate": "Bearer"},
            )
        if result is None:
            return await call_next(request)

        if not result.allowed:
            return JSONResponse(
                status_code=429,
                content={
                    "detail": "AI rate limit exceeded. Try again later.",
                    "retry_after": result.reset_seconds,
                },
                headers=result.headers(),
            )

        response = await call_next(request)
        response.headers.update(result.headers())
        return response
