"""
Transaction CRUD Routes.

All operations are scoped to the current user; another user's transaction
is reported as not found.
"""
from datetime import date

from fastapi import APIRouter, HTTPException, Query, Response, status
from sqlmodel import Session

from app import crud
from app.api.deps import CurrentUser, SessionDep
from app.models import (
    Category,
    Transaction,
    TransactionCreate,
    TransactionPublic,
    TransactionType,
    TransactionUpdate,
)

router = APIRouter()


def _get_category_or_404(session: Session, category_id: int) -> Category:
    category = crud.get_category(session=session, category_id=category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


def _get_transaction_or_404(
    session: Session, user_id: int, transaction_id: int
) -> Transaction:
    transaction = crud.get_user_transaction(
        session=session, user_id=user_id, transaction_id=transaction_id
    )
    if not transaction:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return transaction


@router.post("", response_model=TransactionPublic, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    transaction_in: TransactionCreate,
    session: SessionDep,
    current_user: CurrentUser,
) -> TransactionPublic:
    _get_category_or_404(session, transaction_in.category_id)
    transaction = crud.create_transaction(
        session=session, transaction_in=transaction_in, user_id=current_user.id
    )
    return TransactionPublic.from_db(transaction)


@router.get("", response_model=list[TransactionPublic])
async def list_transactions(
    session: SessionDep, current_user: CurrentUser
) -> list[TransactionPublic]:
    """All of the current user's transactions, newest first."""
    transactions = crud.get_transactions(session=session, user_id=current_user.id)
    return [TransactionPublic.from_db(t) for t in transactions]


@router.get("/type/{type}", response_model=list[TransactionPublic])
async def list_transactions_by_type(
    type: TransactionType,
    session: SessionDep,
    current_user: CurrentUser,
) -> list[TransactionPublic]:
    transactions = crud.get_transactions(
        session=session, user_id=current_user.id, type=type
    )
    return [TransactionPublic.from_db(t) for t in transactions]


@router.get("/range", response_model=list[TransactionPublic])
async def list_transactions_by_date_range(
    session: SessionDep,
    current_user: CurrentUser,
    start_date: date = Query(description="Inclusive, YYYY-MM-DD"),
    end_date: date = Query(description="Inclusive, YYYY-MM-DD"),
) -> list[TransactionPublic]:
    if start_date > end_date:
        raise HTTPException(
            status_code=400, detail="start_date must not be after end_date"
        )
    transactions = crud.get_transactions(
        session=session,
        user_id=current_user.id,
        start_date=start_date,
        end_date=end_date,
    )
    return [TransactionPublic.from_db(t) for t in transactions]


@router.get("/{transaction_id}", response_model=TransactionPublic)
async def get_transaction(
    transaction_id: int,
    session: SessionDep,
    current_user: CurrentUser,
) -> TransactionPublic:
    transaction = _get_transaction_or_404(session, current_user.id, transaction_id)
    return TransactionPublic.from_db(transaction)


@router.put("/{transaction_id}", response_model=TransactionPublic)
async def update_transaction(
    transaction_id: int,
    transaction_in: TransactionUpdate,
    session: SessionDep,
    current_user: CurrentUser,
) -> TransactionPublic:
    transaction = _get_transaction_or_404(session, current_user.id, transaction_id)
    _get_category_or_404(session, transaction_in.category_id)
    transaction = crud.update_transaction(
        session=session, db_transaction=transaction, transaction_in=transaction_in
    )
    return TransactionPublic.from_db(transaction)


@router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_transaction(
    transaction_id: int,
    session: SessionDep,
    current_user: CurrentUser,
) -> Response:
    transaction = _get_transaction_or_404(session, current_user.id, transaction_id)
    crud.delete_transaction(session=session, db_transaction=transaction)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
