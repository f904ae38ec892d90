"""
Main API Router - Aggregates all route modules.
"""
from fastapi import APIRouter

from app.api.routes import (
    ai_router,
    auth_router,
    budgets_router,
    categories_router,
    dashboard_router,
    transactions_router,
    users_router,
)

api_router = APIRouter()

# Authentication & account
api_router.include_router(auth_router, prefix="/auth", tags=["Authentication"])
api_router.include_router(users_router, prefix="/user", tags=["User"])

# Expense tracking
api_router.include_router(categories_router, prefix="/categories", tags=["Categories"])
api_router.include_router(transactions_router, prefix="/transactions", tags=["Transactions"])
api_router.include_router(budgets_router, prefix="/budgets", tags=["Budgets"])
api_router.include_router(dashboard_router, prefix="/dashboard", tags=["Dashboard"])

# AI insights (rate limited per identity)
api_router.include_router(ai_router, prefix="/ai", tags=["AI Insights"])
