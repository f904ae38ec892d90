"""
Dashboard Routes.

Both endpoints default to the current month to date when no range is given.
"""
from datetime import date

from fastapi import APIRouter, HTTPException, Query

from app.api.deps import CurrentUser, SessionDep
from app.schemas.dashboard import DashboardSummary, Statistics
from app.services import dashboard

router = APIRouter()


def _resolve_period(start_date: date | None, end_date: date | None) -> tuple[date, date]:
    default_start, default_end = dashboard.default_period()
    start_date = start_date or default_start
    end_date = end_date or default_end
    if start_date > end_date:
        raise HTTPException(
            status_code=400, detail="start_date must not be after end_date"
        )
    return start_date, end_date


@router.get("/summary", response_model=DashboardSummary)
async def get_dashboard_summary(
    session: SessionDep,
    current_user: CurrentUser,
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
) -> DashboardSummary:
    """Totals, per-category breakdown, current-month budgets and a 6-month trend."""
    start_date, end_date = _resolve_period(start_date, end_date)
    return dashboard.get_summary(session, current_user.id, start_date, end_date)


@router.get("/statistics", response_model=Statistics)
async def get_statistics(
    session: SessionDep,
    current_user: CurrentUser,
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
) -> Statistics:
    start_date, end_date = _resolve_period(start_date, end_date)
    return dashboard.get_statistics(session, current_user.id, start_date, end_date)
