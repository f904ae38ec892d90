"""
Tests for budget routes.
"""
from datetime import date
from decimal import Decimal

from fastapi.testclient import TestClient

from app.models import Category, User


class TestCreateBudget:
    def test_create_reports_spending(
        self,
        client: TestClient,
        test_user: User,
        auth_headers: dict,
        add_transaction,
        food_category: Category,
    ):
        add_transaction(test_user, food_category, "25.00", on=date(2024, 3, 5))
        add_transaction(test_user, food_category, "99.00", on=date(2024, 4, 1))

        response = client.post(
            "/api/budgets",
            headers=auth_headers,
            json={"category_id": food_category.id, "amount": "100.00", "month": 3, "year": 2024},
        )

        assert response.status_code == 201
        data = response.json()
        assert Decimal(data["spent"]) == Decimal("25.00")
        assert Decimal(data["remaining"]) == Decimal("75.00")
        assert data["percentage_used"] == 25.0
        assert data["is_exceeded"] is False

    def test_exceeded(
        self,
        client: TestClient,
        test_user: User,
        auth_headers: dict,
        add_transaction,
        food_category: Category,
    ):
        add_transaction(test_user, food_category, "60.00", on=date(2024, 3, 5))

        response = client.post(
            "/api/budgets",
            headers=auth_headers,
            json={"category_id": food_category.id, "amount": "50.00", "month": 3, "year": 2024},
        )

        data = response.json()
        assert data["is_exceeded"] is True
        assert data["percentage_used"] == 120.0
        assert Decimal(data["remaining"]) == Decimal("-10.00")

    def test_duplicate_period_conflicts(
        self,
        client: TestClient,
        test_user: User,
        auth_headers: dict,
        add_budget,
        food_category: Category,
    ):
        add_budget(test_user, food_category, "100.00", 3, 2024)

        response = client.post(
            "/api/budgets",
            headers=auth_headers,
            json={"category_id": food_category.id, "amount": "200.00", "month": 3, "year": 2024},
        )

        assert response.status_code == 409

    def test_unknown_category(self, client: TestClient, auth_headers: dict):
        response = client.post(
            "/api/budgets",
            headers=auth_headers,
            json={"category_id": 9999, "amount": "100.00", "month": 3, "year": 2024},
        )

        assert response.status_code == 404

    def test_invalid_month(
        self, client: TestClient, auth_headers: dict, food_category: Category
    ):
        response = client.post(
            "/api/budgets",
            headers=auth_headers,
            json={"category_id": food_category.id, "amount": "100.00", "month": 13, "year": 2024},
        )

        assert response.status_code == 422


class TestReadBudgets:
    def test_list_and_period(
        self,
        client: TestClient,
        test_user: User,
        other_user: User,
        auth_headers: dict,
        add_budget,
        food_category: Category,
    ):
        add_budget(test_user, food_category, "100.00", 3, 2024)
        add_budget(test_user, food_category, "100.00", 4, 2024)
        add_budget(other_user, food_category, "100.00", 3, 2024)

        everything = client.get("/api/budgets", headers=auth_headers).json()
        march = client.get(
            "/api/budgets/period", headers=auth_headers, params={"month": 3, "year": 2024}
        ).json()

        assert len(everything) == 2
        assert len(march) == 1
        assert march[0]["month"] == 3

    def test_other_users_budget_is_not_found(
        self,
        client: TestClient,
        other_user: User,
        auth_headers: dict,
        add_budget,
        food_category: Category,
    ):
        foreign = add_budget(other_user, food_category, "100.00", 3, 2024)

        response = client.get(f"/api/budgets/{foreign.id}", headers=auth_headers)

        assert response.status_code == 404


class TestModifyBudgets:
    def test_update_amount(
        self,
        client: TestClient,
        test_user: User,
        auth_headers: dict,
        add_budget,
        food_category: Category,
    ):
        budget = add_budget(test_user, food_category, "100.00", 3, 2024)

        response = client.put(
            f"/api/budgets/{budget.id}", headers=auth_headers, json={"amount": "250.00"}
        )

        assert response.status_code == 200
        assert Decimal(response.json()["amount"]) == Decimal("250.00")

    def test_delete(
        self,
        client: TestClient,
        test_user: User,
        auth_headers: dict,
        add_budget,
        food_category: Category,
    ):
        budget = add_budget(test_user, food_category, "100.00", 3, 2024)

        response = client.delete(f"/api/budgets/{budget.id}", headers=auth_headers)

        assert response.status_code == 204
        assert client.get(f"/api/budgets/{budget.id}", headers=auth_headers).status_code == 404
