"""
Budget CRUD Routes.

One budget per (user, category, month, year). Every response carries how
much of the budget that month's expenses have used.
"""
from fastapi import APIRouter, HTTPException, Query, Response, status
from sqlmodel import Session

from app import crud
from app.api.deps import CurrentUser, SessionDep
from app.models import Budget, BudgetCreate, BudgetPublic, BudgetUpdate

router = APIRouter()


def _get_budget_or_404(session: Session, user_id: int, budget_id: int) -> Budget:
    budget = crud.get_user_budget(session=session, user_id=user_id, budget_id=budget_id)
    if not budget:
        raise HTTPException(status_code=404, detail="Budget not found")
    return budget


@router.post("", response_model=BudgetPublic, status_code=status.HTTP_201_CREATED)
async def create_budget(
    budget_in: BudgetCreate,
    session: SessionDep,
    current_user: CurrentUser,
) -> BudgetPublic:
    if not crud.get_category(session=session, category_id=budget_in.category_id):
        raise HTTPException(status_code=404, detail="Category not found")
    if crud.budget_exists(
        session=session,
        user_id=current_user.id,
        category_id=budget_in.category_id,
        month=budget_in.month,
        year=budget_in.year,
    ):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Budget already exists for this category and period",
        )
    budget = crud.create_budget(session=session, budget_in=budget_in, user_id=current_user.id)
    return crud.budget_with_spending(session=session, budget=budget)


@router.get("", response_model=list[BudgetPublic])
async def list_budgets(session: SessionDep, current_user: CurrentUser) -> list[BudgetPublic]:
    budgets = crud.get_budgets(session=session, user_id=current_user.id)
    return [crud.budget_with_spending(session=session, budget=b) for b in budgets]


@router.get("/period", response_model=list[BudgetPublic])
async def list_budgets_by_period(
    session: SessionDep,
    current_user: CurrentUser,
    month: int = Query(ge=1, le=12),
    year: int = Query(ge=2020),
) -> list[BudgetPublic]:
    budgets = crud.get_budgets(
        session=session, user_id=current_user.id, month=month, year=year
    )
    return [crud.budget_with_spending(session=session, budget=b) for b in budgets]


@router.get("/{budget_id}", response_model=BudgetPublic)
async def get_budget(
    budget_id: int, session: SessionDep, current_user: CurrentUser
) -> BudgetPublic:
    budget = _get_budget_or_404(session, current_user.id, budget_id)
    return crud.budget_with_spending(session=session, budget=budget)


@router.put("/{budget_id}", response_model=BudgetPublic)
async def update_budget(
    budget_id: int,
    budget_in: BudgetUpdate,
    session: SessionDep,
    current_user: CurrentUser,
) -> BudgetPublic:
    """Change a budget's amount. Category and period are fixed once created."""
    budget = _get_budget_or_404(session, current_user.id, budget_id)
    budget = crud.update_budget_amount(session=session, db_budget=budget, amount=budget_in.amount)
    return crud.budget_with_spending(session=session, budget=budget)


@router.delete("/{budget_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_budget(
    budget_id: int, session: SessionDep, current_user: CurrentUser
) -> Response:
    budget = _get_budget_or_404(session, current_user.id, budget_id)
    crud.delete_budget(session=session, db_budget=budget)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
