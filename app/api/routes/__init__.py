"""
API Routes Package.

Contains all route modules for the Expense Insight API.
"""
from app.api.routes.ai import router as ai_router
from app.api.routes.auth import router as auth_router
from app.api.routes.budgets import router as budgets_router
from app.api.routes.categories import router as categories_router
from app.api.routes.dashboard import router as dashboard_router
from app.api.routes.transactions import router as transactions_router
from app.api.routes.users import router as users_router

__all__ = [
    "ai_router",
    "auth_router",
    "budgets_router",
    "categories_router",
    "dashboard_router",
    "transactions_router",
    "users_router",
]
