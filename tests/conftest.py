"""
Pytest configuration and fixtures for Expense Insight tests.

Provides:
- SQLite in-memory database for isolated tests, with categories seeded
- Test client with dependency overrides
- Mock LLM client and a fast (no-sleep) resilience guard
- Fake clocks for time-dependent components
- Sample data fixtures
"""
import os

# Keep the app's own engine off the filesystem and AI disabled unless a test enables it
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["OPENAI_API_KEY"] = ""
os.environ.pop("REDIS_URL", None)

from collections.abc import Generator
from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine, select
from sqlmodel.pool import StaticPool

from app import crud
from app.api.deps import get_db
from app.core.counters import LocalWindowCounter
from app.core.identity import TierQuotas
from app.core.rate_limit import RateLimitGate, limiter
from app.core.resilience import CircuitBreaker, ResilientCaller, RetryPolicy
from app.core.security import create_access_token, get_password_hash
from app.main import app
from app.models import Budget, Category, Transaction, User


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(name="engine")
def engine_fixture():
    """Create an in-memory SQLite engine for testing."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine) -> Generator[Session, None, None]:
    """Create a database session with the predefined categories."""
    with Session(engine) as session:
        crud.seed_categories(session=session)
        yield session


@pytest.fixture(autouse=True)
def reset_auth_limiter():
    """The slowapi limiter keeps its counters in process memory."""
    limiter.reset()
    yield


@pytest.fixture(name="client")
def client_fixture(session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""

    def get_session_override():
        yield session

    app.dependency_overrides[get_db] = get_session_override
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


# =============================================================================
# User Fixtures
# =============================================================================


def _make_user(session: Session, email: str, **flags) -> User:
    user = User(
        email=email,
        first_name="Test",
        last_name="User",
        hashed_password=get_password_hash("testpassword123"),
        **flags,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def _headers_for(user: User) -> dict[str, str]:
    token = create_access_token(
        subject=str(user.id),
        expires_delta=timedelta(minutes=30),
        roles=user.roles,
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(name="test_user")
def test_user_fixture(session: Session) -> User:
    return _make_user(session, "test@example.com")


@pytest.fixture(name="other_user")
def other_user_fixture(session: Session) -> User:
    return _make_user(session, "other@example.com")


@pytest.fixture(name="premium_user")
def premium_user_fixture(session: Session) -> User:
    return _make_user(session, "premium@example.com", is_premium=True)


@pytest.fixture(name="inactive_user")
def inactive_user_fixture(session: Session) -> User:
    return _make_user(session, "inactive@example.com", is_active=False)


@pytest.fixture(name="auth_headers")
def auth_headers_fixture(test_user: User) -> dict[str, str]:
    return _headers_for(test_user)


@pytest.fixture(name="other_headers")
def other_headers_fixture(other_user: User) -> dict[str, str]:
    return _headers_for(other_user)


@pytest.fixture(name="premium_headers")
def premium_headers_fixture(premium_user: User) -> dict[str, str]:
    return _headers_for(premium_user)


# =============================================================================
# Category / Transaction / Budget Fixtures
# =============================================================================


def category_named(session: Session, name: str) -> Category:
    return session.exec(select(Category).where(Category.name == name)).one()


@pytest.fixture(name="food_category")
def food_category_fixture(session: Session) -> Category:
    return category_named(session, "Food & Dining")


@pytest.fixture(name="salary_category")
def salary_category_fixture(session: Session) -> Category:
    return category_named(session, "Salary")


@pytest.fixture(name="category_by_name")
def category_by_name_fixture(session: Session):
    return lambda name: category_named(session, name)


@pytest.fixture(name="add_transaction")
def add_transaction_fixture(session: Session):
    """Factory inserting a transaction directly."""

    def _add(
        user: User,
        category: Category,
        amount: str,
        on: date | None = None,
        description: str = "Test transaction",
    ) -> Transaction:
        transaction = Transaction(
            user_id=user.id,
            category_id=category.id,
            amount=Decimal(amount),
            description=description,
            transaction_date=on or date.today(),
            type=category.type,
        )
        session.add(transaction)
        session.commit()
        session.refresh(transaction)
        return transaction

    return _add


@pytest.fixture(name="add_budget")
def add_budget_fixture(session: Session):
    def _add(user: User, category: Category, amount: str, month: int, year: int) -> Budget:
        budget = Budget(
            user_id=user.id,
            category_id=category.id,
            amount=Decimal(amount),
            month=month,
            year=year,
        )
        session.add(budget)
        session.commit()
        session.refresh(budget)
        return budget

    return _add


# =============================================================================
# AI Fixtures
# =============================================================================


@pytest.fixture(name="mock_llm_client")
def mock_llm_client_fixture() -> MagicMock:
    """A provider that suggests Transportation with high confidence."""
    mock_client = MagicMock()
    mock_client.complete.return_value = "Transportation|0.92|Looks like a ride share."
    return mock_client


@pytest.fixture(name="fast_guard")
def fast_guard_fixture() -> ResilientCaller:
    """Production retry/breaker settings with sleeping disabled."""
    return ResilientCaller(
        breaker=CircuitBreaker(name="openai"),
        retry_policy=RetryPolicy(retry_count=3, initial_delay=0.5),
        sleep=lambda _: None,
    )


@pytest.fixture(name="ai_client")
def ai_client_fixture(
    client: TestClient, mock_llm_client: MagicMock, fast_guard: ResilientCaller
) -> TestClient:
    """Client with AI enabled, a mock provider and a fresh in-memory gate."""
    app.state.llm_client = mock_llm_client
    app.state.ai_guard = fast_guard
    app.state.rate_limit_gate = RateLimitGate(
        quotas=TierQuotas(), local=LocalWindowCounter()
    )
    return client


@pytest.fixture(name="clock")
def clock_fixture() -> FakeClock:
    return FakeClock()
