"""
Expense Insight - FastAPI Application Entry Point.

Personal expense tracking with AI assistance:
1. Transactions, budgets and categories
2. Dashboard summaries and spending statistics
3. AI category suggestions and weekly summaries, rate limited per caller
   and guarded by retry and a circuit breaker
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlmodel import Session, SQLModel

from app.api.main import api_router
from app.core.config import settings
from app.core.db import engine, init_db
from app.core.logging import get_logger, setup_logging
from app.core.middleware import (
    AiRateLimitMiddleware,
    SecurityHeadersMiddleware,
    TrustedHostMiddleware,
)
from app.core.rate_limit import RateLimitGate, limiter
from app.core.resilience import ResilientCaller
from app.services.llm_client import AIProviderNotConfiguredError, get_llm_client

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler - runs on startup and shutdown."""
    setup_logging()

    # Startup: Create database tables and seed reference data
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        init_db(session)

    # Process-wide AI singletons
    app.state.llm_client = get_llm_client()
    app.state.ai_guard = ResilientCaller.from_settings()
    app.state.rate_limit_gate = RateLimitGate.from_settings()
    logger.info(
        f"{settings.PROJECT_NAME} started "
        f"(ai_enabled={settings.ai_enabled}, "
        f"rate_limit_backend={app.state.rate_limit_gate.backend})"
    )
    yield
    # Shutdown: cleanup if needed


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="""
## Expense Insight API

Track income and expenses, plan monthly budgets, and get AI help.

### Features

1. **Transactions & Budgets** (`/api/transactions`, `/api/budgets`)
   - Per-user records with monthly budget tracking

2. **Dashboard** (`/api/dashboard`)
   - Totals, category breakdown, 6-month trend, spending statistics

3. **AI Insights** (`/api/ai`)
   - Category suggestion for a transaction description
   - Weekly summary with recommendations
   - Per-caller quotas: anonymous 10/min, signed in 60/min, premium 200/min

### Authentication

JWT bearer tokens from `/api/auth/login`. Category suggestion also works
anonymously under the free quota.
    """,
    version="0.1.0",
    openapi_url=f"{settings.API_STR}/openapi.json",
    docs_url=f"{settings.API_STR}/docs",
    redoc_url=f"{settings.API_STR}/redoc",
    lifespan=lifespan,
)

# =============================================================================
# Middleware Stack (order matters - last added runs first)
# =============================================================================

# 1. AI rate limit gate (innermost, sees only requests that passed the rest)
app.add_middleware(AiRateLimitMiddleware)

# 2. Security Headers (runs on every response)
app.add_middleware(SecurityHeadersMiddleware)

# 3. Trusted Host validation
if settings.ALLOWED_HOSTS != ["*"]:
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS)

# 4. CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.all_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# =============================================================================
# Rate Limiting Setup (auth endpoints)
# =============================================================================

# Attach limiter to app state for access in routes
app.state.limiter = limiter

# Register rate limit exceeded handler
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(AIProviderNotConfiguredError)
async def ai_not_configured_handler(request: Request, exc: AIProviderNotConfiguredError):
    return JSONResponse(status_code=503, content={"detail": exc.message})


# Include API router
app.include_router(api_router, prefix=settings.API_STR)


@app.get("/")
async def root():
    """Root endpoint - API info."""
    return {
        "name": settings.PROJECT_NAME,
        "version": "0.1.0",
        "docs": f"{settings.API_STR}/docs",
    }


@app.get("/health")
async def health_check(request: Request):
    """Health check endpoint for deployment monitoring."""
    gate = getattr(request.app.state, "rate_limit_gate", None)
    guard = getattr(request.app.state, "ai_guard", None)
    return {
        "status": "healthy",
        "ai_enabled": getattr(request.app.state, "llm_client", None) is not None,
        "rate_limit_backend": gate.backend if gate else None,
        "ai_circuit": guard.breaker.snapshot() if guard else None,
    }
