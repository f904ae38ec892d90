"""
Dashboard and statistics response schemas.
"""
from decimal import Decimal

from app.schemas.ai import CamelModel


class CategoryExpense(CamelModel):
    category_id: int
    category_name: str
    category_icon: str | None = None
    category_color: str | None = None
    total_amount: Decimal
    transaction_count: int
    percentage: float


class BudgetOverview(CamelModel):
    total_budgeted: Decimal = Decimal("0")
    total_spent: Decimal = Decimal("0")
    total_remaining: Decimal = Decimal("0")
    percentage_used: float = 0.0
    budgets_exceeded: int = 0
    total_budgets: int = 0


class MonthlyData(CamelModel):
    month: int
    year: int
    month_name: str
    income: Decimal
    expenses: Decimal
    net_balance: Decimal


class DashboardSummary(CamelModel):
    total_income: Decimal
    total_expenses: Decimal
    net_balance: Decimal
    transaction_count: int
    expenses_by_category: list[CategoryExpense]
    budget_overview: BudgetOverview
    monthly_trend: list[MonthlyData]


class Statistics(CamelModel):
    average_daily_expense: Decimal
    average_weekly_expense: Decimal
    average_monthly_expense: Decimal
    largest_expense: Decimal
    largest_expense_description: str
    top_spending_category: str
    top_spending_amount: Decimal
    savings_rate: float
