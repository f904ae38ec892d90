"""
Dashboard Service - aggregate views over a user's transactions and budgets.
"""
import calendar
from collections import defaultdict
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from sqlmodel import Session

from app import crud
from app.models import Transaction, TransactionType
from app.schemas.dashboard import (
    BudgetOverview,
    CategoryExpense,
    DashboardSummary,
    MonthlyData,
    Statistics,
)

ZERO = Decimal("0")
TREND_MONTHS = 6


def percentage(part: Decimal, whole: Decimal) -> float:
    """part / whole as a percentage, ratio rounded half-up to 4 places."""
    if whole <= 0:
        return 0.0
    ratio = (part / whole).quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)
    return float(ratio * 100)


def _sum(transactions: list[Transaction], type_: TransactionType) -> Decimal:
    return sum((t.amount for t in transactions if t.type == type_), ZERO)


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def default_period(today: date | None = None) -> tuple[date, date]:
    """First day of the current month through today."""
    today = today or date.today()
    return today.replace(day=1), today


def expenses_by_category(
    transactions: list[Transaction], total_expenses: Decimal
) -> list[CategoryExpense]:
    grouped: dict[int, list[Transaction]] = defaultdict(list)
    for t in transactions:
        if t.type == TransactionType.EXPENSE:
            grouped[t.category_id].append(t)

    result = []
    for items in grouped.values():
        category = items[0].category
        category_total = sum((t.amount for t in items), ZERO)
        result.append(
            CategoryExpense(
                category_id=category.id,
                category_name=category.name,
                category_icon=category.icon,
                category_color=category.color,
                total_amount=category_total,
                transaction_count=len(items),
                percentage=percentage(category_total, total_expenses),
            )
        )
    result.sort(key=lambda c: c.total_amount, reverse=True)
    return result


def budget_overview(
    session: Session, user_id: int, month: int, year: int
) -> BudgetOverview:
    budgets = [
        crud.budget_with_spending(session=session, budget=b)
        for b in crud.get_budgets(session=session, user_id=user_id, month=month, year=year)
    ]
    if not budgets:
        return BudgetOverview()

    total_budgeted = sum((b.amount for b in budgets), ZERO)
    total_spent = sum((b.spent for b in budgets), ZERO)
    return BudgetOverview(
        total_budgeted=total_budgeted,
        total_spent=total_spent,
        total_remaining=sum((b.remaining for b in budgets), ZERO),
        percentage_used=percentage(total_spent, total_budgeted),
        budgets_exceeded=sum(1 for b in budgets if b.is_exceeded),
        total_budgets=len(budgets),
    )


def monthly_trend(
    session: Session, user_id: int, today: date, months: int = TREND_MONTHS
) -> list[MonthlyData]:
    """One data point per month, oldest first, ending with the current month."""
    trend = []
    for back in range(months - 1, -1, -1):
        year, month = _shift_month(today.year, today.month, -back)
        last_day = calendar.monthrange(year, month)[1]
        transactions = crud.get_transactions(
            session=session,
            user_id=user_id,
            start_date=date(year, month, 1),
            end_date=date(year, month, last_day),
        )
        income = _sum(transactions, TransactionType.INCOME)
        expenses = _sum(transactions, TransactionType.EXPENSE)
        trend.append(
            MonthlyData(
                month=month,
                year=year,
                month_name=calendar.month_name[month],
                income=income,
                expenses=expenses,
                net_balance=income - expenses,
            )
        )
    return trend


def get_summary(
    session: Session,
    user_id: int,
    start_date: date,
    end_date: date,
    today: date | None = None,
) -> DashboardSummary:
    today = today or date.today()
    transactions = crud.get_transactions(
        session=session, user_id=user_id, start_date=start_date, end_date=end_date
    )
    total_income = _sum(transactions, TransactionType.INCOME)
    total_expenses = _sum(transactions, TransactionType.EXPENSE)

    return DashboardSummary(
        total_income=total_income,
        total_expenses=total_expenses,
        net_balance=total_income - total_expenses,
        transaction_count=len(transactions),
        expenses_by_category=expenses_by_category(transactions, total_expenses),
        budget_overview=budget_overview(session, user_id, today.month, today.year),
        monthly_trend=monthly_trend(session, user_id, today),
    )


def get_statistics(
    session: Session, user_id: int, start_date: date, end_date: date
) -> Statistics:
    transactions = crud.get_transactions(
        session=session, user_id=user_id, start_date=start_date, end_date=end_date
    )
    expenses = [t for t in transactions if t.type == TransactionType.EXPENSE]
    total_expenses = _sum(transactions, TransactionType.EXPENSE)
    total_income = _sum(transactions, TransactionType.INCOME)

    days = (end_date - start_date).days + 1
    if days > 0:
        average_daily = (total_expenses / days).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )
    else:
        average_daily = ZERO

    largest = max(expenses, key=lambda t: t.amount, default=None)

    category_totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for t in expenses:
        category_totals[t.category.name] += t.amount
    top = max(category_totals.items(), key=lambda item: item[1], default=None)

    if total_income > 0:
        savings_rate = percentage(total_income - total_expenses, total_income)
    else:
        savings_rate = 0.0

    return Statistics(
        average_daily_expense=average_daily,
        average_weekly_expense=average_daily * 7,
        average_monthly_expense=average_daily * 30,
        largest_expense=largest.amount if largest else ZERO,
        largest_expense_description=largest.description if largest else "N/A",
        top_spending_category=top[0] if top else "N/A",
        top_spending_amount=top[1] if top else ZERO,
        savings_rate=savings_rate,
    )
