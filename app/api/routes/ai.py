"""
AI Insight Routes.

Rate limiting for this namespace happens in AiRateLimitMiddleware before a
handler runs. Handlers are plain `def` so that provider calls, retry sleeps
included, run in the worker threadpool.
"""
from fastapi import APIRouter, HTTPException

from app.api.deps import CurrentUser, InsightServiceDep, OptionalUser, SessionDep
from app.schemas.ai import CategorySuggestion, CategorySuggestionRequest, WeeklySummary
from app.services.insights import NoExpenseCategoriesError

router = APIRouter()


@router.post("/suggest-category", response_model=CategorySuggestion)
def suggest_category(
    body: CategorySuggestionRequest,
    session: SessionDep,
    service: InsightServiceDep,
    current_user: OptionalUser,
) -> CategorySuggestion:
    """
    Suggest an expense category for a transaction description.

    Works without authentication (free tier quota). When the provider is
    unavailable the catch-all category is suggested with confidence 0.5.
    """
    user = str(current_user.id) if current_user else "anonymous"
    try:
        return service.suggest_category(session, body, user=user)
    except NoExpenseCategoriesError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/weekly-summary", response_model=WeeklySummary)
def weekly_summary(
    session: SessionDep,
    service: InsightServiceDep,
    current_user: CurrentUser,
) -> WeeklySummary:
    """Totals for the last seven days (today included) with AI commentary."""
    return service.generate_weekly_summary(session, current_user.id)
