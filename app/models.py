"""
Database models and Pydantic schemas for Expense Insight.

Uses SQLModel for unified ORM and validation.
"""
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import EmailStr, computed_field, field_validator
from sqlmodel import Field, Relationship, SQLModel, UniqueConstraint


# =============================================================================
# Enums
# =============================================================================


class TransactionType(str, Enum):
    EXPENSE = "EXPENSE"
    INCOME = "INCOME"


# =============================================================================
# User Models
# =============================================================================


class UserBase(SQLModel):
    email: EmailStr = Field(unique=True, index=True, max_length=255)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    is_active: bool = True
    is_superuser: bool = False
    is_premium: bool = False


class UserCreate(UserBase):
    """Internal creation schema (seeding, admin tooling)."""

    password: str = Field(min_length=8, max_length=128)


class UserRegister(SQLModel):
    """Public self-registration. Role flags cannot be set from here."""

    email: EmailStr = Field(max_length=255)
    password: str = Field(min_length=8, max_length=128)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "email": "jane@example.com",
                    "password": "securePassword123!",
                    "first_name": "Jane",
                    "last_name": "Doe",
                }
            ]
        }
    }


class UserUpdate(SQLModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)


class UpdatePassword(SQLModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=8, max_length=128)


class User(UserBase, table=True):
    id: int | None = Field(default=None, primary_key=True)
    hashed_password: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    transactions: list["Transaction"] = Relationship(
        back_populates="user", cascade_delete=True
    )
    budgets: list["Budget"] = Relationship(back_populates="user", cascade_delete=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def roles(self) -> list[str]:
        roles = []
        if self.is_superuser:
            roles.append("admin")
        if self.is_premium:
            roles.append("premium")
        return roles


class UserPublic(SQLModel):
    id: int
    email: EmailStr
    first_name: str
    last_name: str
    is_active: bool
    is_premium: bool = False
    created_at: datetime

    @computed_field
    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class UserProfile(UserPublic):
    total_transactions: int = 0
    total_budgets: int = 0


# =============================================================================
# Category Models
# =============================================================================


class CategoryBase(SQLModel):
    name: str = Field(unique=True, max_length=100)
    type: TransactionType
    icon: str | None = Field(default=None, max_length=50)
    color: str | None = Field(default=None, max_length=7)


class Category(CategoryBase, table=True):
    id: int | None = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class CategoryPublic(CategoryBase):
    id: int


# Seeded at startup and by the initial migration
PREDEFINED_CATEGORIES: list[tuple[str, TransactionType, str, str]] = [
    ("Food & Dining", TransactionType.EXPENSE, "🍔", "#FF6B6B"),
    ("Transportation", TransactionType.EXPENSE, "🚗", "#4ECDC4"),
    ("Shopping", TransactionType.EXPENSE, "🛍️", "#95E1D3"),
    ("Entertainment", TransactionType.EXPENSE, "🎬", "#F38181"),
    ("Healthcare", TransactionType.EXPENSE, "🏥", "#AA96DA"),
    ("Bills & Utilities", TransactionType.EXPENSE, "💡", "#FCBAD3"),
    ("Education", TransactionType.EXPENSE, "📚", "#A8D8EA"),
    ("Groceries", TransactionType.EXPENSE, "🛒", "#FFD93D"),
    ("Travel", TransactionType.EXPENSE, "✈️", "#6BCB77"),
    ("Other Expenses", TransactionType.EXPENSE, "📦", "#B8B8B8"),
    ("Salary", TransactionType.INCOME, "💰", "#4D96FF"),
    ("Freelance", TransactionType.INCOME, "💼", "#6BCB77"),
    ("Investments", TransactionType.INCOME, "📈", "#FFD93D"),
    ("Other Income", TransactionType.INCOME, "💵", "#95E1D3"),
]


# =============================================================================
# Transaction Models
# =============================================================================


class TransactionBase(SQLModel):
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    description: str = Field(min_length=1, max_length=500)
    transaction_date: date
    type: TransactionType
    payment_method: str | None = Field(default=None, max_length=50)


class TransactionCreate(TransactionBase):
    category_id: int = Field(gt=0)

    @field_validator("transaction_date")
    @classmethod
    def not_in_future(cls, v: date) -> date:
        if v > date.today():
            raise ValueError("Transaction date cannot be in the future")
        return v

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "amount": "12.50",
                    "description": "Lunch at the corner deli",
                    "transaction_date": "2024-11-15",
                    "type": "EXPENSE",
                    "category_id": 1,
                    "payment_method": "card",
                }
            ]
        }
    }


class TransactionUpdate(TransactionCreate):
    """Full replacement of a transaction's editable fields."""

    pass


class Transaction(TransactionBase, table=True):
    id: int | None = Field(default=None, primary_key=True)
    ai_comment: str | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Foreign keys
    user_id: int = Field(foreign_key="user.id", index=True, ondelete="CASCADE")
    category_id: int = Field(foreign_key="category.id", index=True)

    # Relationships
    user: Optional[User] = Relationship(back_populates="transactions")
    category: Optional[Category] = Relationship()


class TransactionPublic(TransactionBase):
    id: int
    category_id: int
    category_name: str
    category_icon: str | None = None
    category_color: str | None = None
    ai_comment: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_db(cls, transaction: Transaction) -> "TransactionPublic":
        category = transaction.category
        return cls(
            id=transaction.id,
            amount=transaction.amount,
            description=transaction.description,
            transaction_date=transaction.transaction_date,
            type=transaction.type,
            payment_method=transaction.payment_method,
            category_id=transaction.category_id,
            category_name=category.name,
            category_icon=category.icon,
            category_color=category.color,
            ai_comment=transaction.ai_comment,
            created_at=transaction.created_at,
            updated_at=transaction.updated_at,
        )


# =============================================================================
# Budget Models
# =============================================================================


class BudgetBase(SQLModel):
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=2020)


class BudgetCreate(BudgetBase):
    category_id: int = Field(gt=0)


class BudgetUpdate(SQLModel):
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)


class Budget(BudgetBase, table=True):
    __table_args__ = (
        UniqueConstraint("user_id", "category_id", "month", "year", name="uq_budget_period"),
    )

    id: int | None = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Foreign keys
    user_id: int = Field(foreign_key="user.id", index=True, ondelete="CASCADE")
    category_id: int = Field(foreign_key="category.id")

    # Relationships
    user: Optional[User] = Relationship(back_populates="budgets")
    category: Optional[Category] = Relationship()


class BudgetPublic(BudgetBase):
    """A budget together with how much of it has been spent."""

    id: int
    category_id: int
    category_name: str
    category_icon: str | None = None
    category_color: str | None = None
    spent: Decimal
    remaining: Decimal
    percentage_used: float
    is_exceeded: bool
    created_at: datetime
    updated_at: datetime


# =============================================================================
# Auth Models
# =============================================================================


class Token(SQLModel):
    access_token: str
    token_type: str = "bearer"


class TokenPayload(SQLModel):
    sub: str | None = None
    roles: list[str] = []


class Message(SQLModel):
    message: str
