"""
CRUD operations for Expense Insight.
"""
import calendar
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from sqlmodel import Session, func, select

from app.core.security import get_password_hash, verify_password
from app.models import (
    PREDEFINED_CATEGORIES,
    Budget,
    BudgetCreate,
    BudgetPublic,
    Category,
    Transaction,
    TransactionCreate,
    TransactionType,
    TransactionUpdate,
    User,
    UserCreate,
    UserRegister,
    UserUpdate,
)


# =============================================================================
# User CRUD
# =============================================================================


def create_user(*, session: Session, user_create: UserCreate | UserRegister) -> User:
    db_obj = User.model_validate(
        user_create, update={"hashed_password": get_password_hash(user_create.password)}
    )
    session.add(db_obj)
    session.commit()
    session.refresh(db_obj)
    return db_obj


def update_user(*, session: Session, db_user: User, user_in: UserUpdate) -> User:
    user_data = user_in.model_dump(exclude_unset=True)
    db_user.sqlmodel_update(user_data, update={"updated_at": datetime.utcnow()})
    session.add(db_user)
    session.commit()
    session.refresh(db_user)
    return db_user


def change_password(*, session: Session, db_user: User, new_password: str) -> User:
    db_user.hashed_password = get_password_hash(new_password)
    db_user.updated_at = datetime.utcnow()
    session.add(db_user)
    session.commit()
    session.refresh(db_user)
    return db_user


def deactivate_user(*, session: Session, db_user: User) -> User:
    db_user.is_active = False
    db_user.updated_at = datetime.utcnow()
    session.add(db_user)
    session.commit()
    session.refresh(db_user)
    return db_user


def get_user_by_email(*, session: Session, email: str) -> User | None:
    statement = select(User).where(User.email == email)
    return session.exec(statement).first()


def authenticate(*, session: Session, email: str, password: str) -> User | None:
    db_user = get_user_by_email(session=session, email=email)
    if not db_user:
        return None
    if not verify_password(password, db_user.hashed_password):
        return None
    return db_user


def count_user_transactions(*, session: Session, user_id: int) -> int:
    statement = select(func.count()).select_from(Transaction).where(Transaction.user_id == user_id)
    return session.exec(statement).one()


def count_user_budgets(*, session: Session, user_id: int) -> int:
    statement = select(func.count()).select_from(Budget).where(Budget.user_id == user_id)
    return session.exec(statement).one()


# =============================================================================
# Category CRUD
# =============================================================================


def get_categories(
    *, session: Session, type: TransactionType | None = None
) -> list[Category]:
    statement = select(Category)
    if type is not None:
        statement = statement.where(Category.type == type)
    return list(session.exec(statement.order_by(Category.id)).all())


def get_category(*, session: Session, category_id: int) -> Category | None:
    return session.get(Category, category_id)


def seed_categories(*, session: Session) -> int:
    """Insert any predefined category that is missing. Returns how many were added."""
    existing = set(session.exec(select(Category.name)).all())
    added = 0
    for name, type_, icon, color in PREDEFINED_CATEGORIES:
        if name in existing:
            continue
        session.add(Category(name=name, type=type_, icon=icon, color=color))
        added += 1
    if added:
        session.commit()
    return added


# =============================================================================
# Transaction CRUD
# =============================================================================


def create_transaction(
    *, session: Session, transaction_in: TransactionCreate, user_id: int
) -> Transaction:
    db_obj = Transaction.model_validate(transaction_in, update={"user_id": user_id})
    session.add(db_obj)
    session.commit()
    session.refresh(db_obj)
    return db_obj


def get_user_transaction(
    *, session: Session, user_id: int, transaction_id: int
) -> Transaction | None:
    """Fetch a transaction only if it belongs to `user_id`."""
    transaction = session.get(Transaction, transaction_id)
    if transaction is None or transaction.user_id != user_id:
        return None
    return transaction


def get_transactions(
    *,
    session: Session,
    user_id: int,
    type: TransactionType | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[Transaction]:
    statement = select(Transaction).where(Transaction.user_id == user_id)
    if type is not None:
        statement = statement.where(Transaction.type == type)
    if start_date is not None:
        statement = statement.where(Transaction.transaction_date >= start_date)
    if end_date is not None:
        statement = statement.where(Transaction.transaction_date <= end_date)
    statement = statement.order_by(
        Transaction.transaction_date.desc(), Transaction.id.desc()
    )
    return list(session.exec(statement).all())


def update_transaction(
    *, session: Session, db_transaction: Transaction, transaction_in: TransactionUpdate
) -> Transaction:
    db_transaction.sqlmodel_update(
        transaction_in.model_dump(), update={"updated_at": datetime.utcnow()}
    )
    session.add(db_transaction)
    session.commit()
    session.refresh(db_transaction)
    return db_transaction


def delete_transaction(*, session: Session, db_transaction: Transaction) -> None:
    session.delete(db_transaction)
    session.commit()


def sum_expenses(
    *, session: Session, user_id: int, category_id: int, start_date: date, end_date: date
) -> Decimal:
    statement = select(func.sum(Transaction.amount)).where(
        Transaction.user_id == user_id,
        Transaction.category_id == category_id,
        Transaction.type == TransactionType.EXPENSE,
        Transaction.transaction_date >= start_date,
        Transaction.transaction_date <= end_date,
    )
    total = session.exec(statement).one()
    return Decimal(total) if total is not None else Decimal("0")


# =============================================================================
# Budget CRUD
# =============================================================================


def create_budget(*, session: Session, budget_in: BudgetCreate, user_id: int) -> Budget:
    db_obj = Budget.model_validate(budget_in, update={"user_id": user_id})
    session.add(db_obj)
    session.commit()
    session.refresh(db_obj)
    return db_obj


def budget_exists(
    *, session: Session, user_id: int, category_id: int, month: int, year: int
) -> bool:
    statement = select(Budget.id).where(
        Budget.user_id == user_id,
        Budget.category_id == category_id,
        Budget.month == month,
        Budget.year == year,
    )
    return session.exec(statement).first() is not None


def get_user_budget(*, session: Session, user_id: int, budget_id: int) -> Budget | None:
    """Fetch a budget only if it belongs to `user_id`."""
    budget = session.get(Budget, budget_id)
    if budget is None or budget.user_id != user_id:
        return None
    return budget


def get_budgets(
    *, session: Session, user_id: int, month: int | None = None, year: int | None = None
) -> list[Budget]:
    statement = select(Budget).where(Budget.user_id == user_id)
    if month is not None:
        statement = statement.where(Budget.month == month)
    if year is not None:
        statement = statement.where(Budget.year == year)
    statement = statement.order_by(Budget.year, Budget.month, Budget.category_id)
    return list(session.exec(statement).all())


def update_budget_amount(*, session: Session, db_budget: Budget, amount: Decimal) -> Budget:
    db_budget.amount = amount
    db_budget.updated_at = datetime.utcnow()
    session.add(db_budget)
    session.commit()
    session.refresh(db_budget)
    return db_budget


def delete_budget(*, session: Session, db_budget: Budget) -> None:
    session.delete(db_budget)
    session.commit()


def budget_with_spending(*, session: Session, budget: Budget) -> BudgetPublic:
    """Attach spent/remaining/percentage for the budget's month."""
    last_day = calendar.monthrange(budget.year, budget.month)[1]
    spent = sum_expenses(
        session=session,
        user_id=budget.user_id,
        category_id=budget.category_id,
        start_date=date(budget.year, budget.month, 1),
        end_date=date(budget.year, budget.month, last_day),
    )
    amount = Decimal(budget.amount)
    if amount == 0:
        percentage_used = 0.0
    else:
        ratio = (spent / amount).quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)
        percentage_used = float(ratio * 100)

    category = budget.category
    return BudgetPublic(
        id=budget.id,
        category_id=budget.category_id,
        category_name=category.name,
        category_icon=category.icon,
        category_color=category.color,
        amount=amount,
        month=budget.month,
        year=budget.year,
        spent=spent,
        remaining=amount - spent,
        percentage_used=percentage_used,
        is_exceeded=spent > amount,
        created_at=budget.created_at,
        updated_at=budget.updated_at,
    )
