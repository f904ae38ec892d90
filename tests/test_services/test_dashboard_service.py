"""
Tests for dashboard aggregation.
"""
from datetime import date
from decimal import Decimal

from sqlmodel import Session

from app.models import Category, User
from app.services import dashboard


class TestHelpers:
    def test_percentage_rounds_ratio_half_up(self):
        assert dashboard.percentage(Decimal("1"), Decimal("3")) == 33.33
        assert dashboard.percentage(Decimal("2"), Decimal("3")) == 66.67

    def test_percentage_of_nothing(self):
        assert dashboard.percentage(Decimal("5"), Decimal("0")) == 0.0

    def test_default_period(self):
        assert dashboard.default_period(date(2024, 2, 17)) == (
            date(2024, 2, 1),
            date(2024, 2, 17),
        )


class TestMonthlyTrend:
    def test_six_months_across_year_boundary(
        self,
        session: Session,
        test_user: User,
        add_transaction,
        food_category: Category,
        salary_category: Category,
    ):
        add_transaction(test_user, food_category, "30.00", on=date(2023, 11, 20))
        add_transaction(test_user, salary_category, "100.00", on=date(2024, 2, 1))

        trend = dashboard.monthly_trend(session, test_user.id, today=date(2024, 2, 10))

        assert [(m.year, m.month) for m in trend] == [
            (2023, 9),
            (2023, 10),
            (2023, 11),
            (2023, 12),
            (2024, 1),
            (2024, 2),
        ]
        assert trend[2].month_name == "November"
        assert trend[2].expenses == Decimal("30.00")
        assert trend[5].net_balance == Decimal("100.00")


class TestBudgetOverview:
    def test_overview(
        self,
        session: Session,
        test_user: User,
        add_transaction,
        add_budget,
        food_category: Category,
        category_by_name,
    ):
        travel = category_by_name("Travel")
        add_budget(test_user, food_category, "100.00", 5, 2024)
        add_budget(test_user, travel, "50.00", 5, 2024)
        add_transaction(test_user, food_category, "25.00", on=date(2024, 5, 3))
        add_transaction(test_user, travel, "75.00", on=date(2024, 5, 4))

        overview = dashboard.budget_overview(session, test_user.id, 5, 2024)

        assert overview.total_budgets == 2
        assert overview.total_budgeted == Decimal("150.00")
        assert overview.total_spent == Decimal("100.00")
        assert overview.budgets_exceeded == 1
        assert overview.percentage_used == 66.67

    def test_empty_overview(self, session: Session, test_user: User):
        overview = dashboard.budget_overview(session, test_user.id, 5, 2024)

        assert overview.total_budgets == 0
        assert overview.total_budgeted == Decimal("0")
