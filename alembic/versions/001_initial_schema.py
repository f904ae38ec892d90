"""Initial schema - users, categories, transactions, budgets.

Revision ID: 001_initial_schema
Revises:
Create Date: 2024-11-10

"""
from datetime import datetime
from typing import Sequence, Union

import sqlalchemy as sa
import sqlmodel
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

transaction_type = sa.Enum("EXPENSE", "INCOME", name="transactiontype")

# Kept inline so the migration does not change when the model module does
CATEGORIES = [
    ("Food & Dining", "EXPENSE", "🍔", "#FF6B6B"),
    ("Transportation", "EXPENSE", "🚗", "#4ECDC4"),
    ("Shopping", "EXPENSE", "🛍️", "#95E1D3"),
    ("Entertainment", "EXPENSE", "🎬", "#F38181"),
    ("Healthcare", "EXPENSE", "🏥", "#AA96DA"),
    ("Bills & Utilities", "EXPENSE", "💡", "#FCBAD3"),
    ("Education", "EXPENSE", "📚", "#A8D8EA"),
    ("Groceries", "EXPENSE", "🛒", "#FFD93D"),
    ("Travel", "EXPENSE", "✈️", "#6BCB77"),
    ("Other Expenses", "EXPENSE", "📦", "#B8B8B8"),
    ("Salary", "INCOME", "💰", "#4D96FF"),
    ("Freelance", "INCOME", "💼", "#6BCB77"),
    ("Investments", "INCOME", "📈", "#FFD93D"),
    ("Other Income", "INCOME", "💵", "#95E1D3"),
]


def upgrade() -> None:
    # Users table
    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column("first_name", sqlmodel.sql.sqltypes.AutoString(length=100), nullable=False),
        sa.Column("last_name", sqlmodel.sql.sqltypes.AutoString(length=100), nullable=False),
        sa.Column("hashed_password", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, default=True),
        sa.Column("is_superuser", sa.Boolean(), nullable=False, default=False),
        sa.Column("is_premium", sa.Boolean(), nullable=False, default=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_user_email"), "user", ["email"], unique=True)

    # Categories table
    category_table = op.create_table(
        "category",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sqlmodel.sql.sqltypes.AutoString(length=100), nullable=False),
        sa.Column("type", transaction_type, nullable=False),
        sa.Column("icon", sqlmodel.sql.sqltypes.AutoString(length=50), nullable=True),
        sa.Column("color", sqlmodel.sql.sqltypes.AutoString(length=7), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    # Transactions table
    op.create_table(
        "transaction",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("description", sqlmodel.sql.sqltypes.AutoString(length=500), nullable=False),
        sa.Column("transaction_date", sa.Date(), nullable=False),
        sa.Column("type", transaction_type, nullable=False),
        sa.Column("payment_method", sqlmodel.sql.sqltypes.AutoString(length=50), nullable=True),
        sa.Column("ai_comment", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["category_id"], ["category.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_transaction_user_id"), "transaction", ["user_id"])
    op.create_index(op.f("ix_transaction_category_id"), "transaction", ["category_id"])

    # Budgets table
    op.create_table(
        "budget",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["category_id"], ["category.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "category_id", "month", "year", name="uq_budget_period"),
    )
    op.create_index(op.f("ix_budget_user_id"), "budget", ["user_id"])

    # Predefined categories
    now = datetime.utcnow()
    op.bulk_insert(
        category_table,
        [
            {"name": name, "type": type_, "icon": icon, "color": color, "created_at": now}
            for name, type_, icon, color in CATEGORIES
        ],
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_budget_user_id"), table_name="budget")
    op.drop_table("budget")
    op.drop_index(op.f("ix_transaction_category_id"), table_name="transaction")
    op.drop_index(op.f("ix_transaction_user_id"), table_name="transaction")
    op.drop_table("transaction")
    op.drop_table("category")
    op.drop_index(op.f("ix_user_email"), table_name="user")
    op.drop_table("user")
    transaction_type.drop(op.get_bind(), checkfirst=True)
