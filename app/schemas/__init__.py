"""
Pydantic schemas for AI and dashboard responses.
"""
from app.schemas.ai import (
    CategorySuggestion,
    CategorySuggestionRequest,
    WeeklySummary,
)
from app.schemas.dashboard import (
    BudgetOverview,
    CategoryExpense,
    DashboardSummary,
    MonthlyData,
    Statistics,
)

__all__ = [
    "CategorySuggestion",
    "CategorySuggestionRequest",
    "WeeklySummary",
    "BudgetOverview",
    "CategoryExpense",
    "DashboardSummary",
    "MonthlyData",
    "Statistics",
]
