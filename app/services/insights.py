"""
AI Insight Service - category suggestions and weekly summaries.

Every provider call goes through the shared ResilientCaller. When it gives
up (retries exhausted, breaker open) or the answer cannot be parsed, a
locally computed default is returned instead, so callers always get a
well-formed response.
"""
import math
from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal

from sqlmodel import Session

from app import crud
from app.core.config import settings
from app.core.logging import get_logger
from app.core.resilience import ResilientCaller
from app.models import Category, Transaction, TransactionType
from app.schemas.ai import CategorySuggestion, CategorySuggestionRequest, WeeklySummary
from app.services.llm_client import LLMClient

logger = get_logger(__name__)


# =============================================================================
# Prompts
# =============================================================================

CATEGORY_SUGGESTION_PROMPT = """You are a financial assistant. Based on the following transaction details, suggest the most appropriate category from the list below.

Transaction description: {description}
Amount: ${amount:.2f}

Available categories:
{categories}

Respond ONLY with the exact category name from the list, followed by a pipe (|), then a confidence score (0-1), followed by another pipe (|), then a brief comment (max 50 words).
Format: CategoryName|0.95|Your comment here"""

WEEKLY_SUMMARY_PROMPT = """You are a personal finance advisor. Generate a brief weekly financial summary and 2-3 actionable recommendations based on the following data:

Week: {week_start} to {week_end}
Total Income: ${total_income:.2f}
Total Expenses: ${total_expenses:.2f}
Net Balance: ${net_balance:.2f}
Top Spending Categories:
{top_categories}

Provide:
1. A brief summary (max 100 words)
2. 2-3 specific recommendations (separate with '||')

Format: Summary text||Recommendation 1||Recommendation 2"""

DEFAULT_CONFIDENCE = 0.5
DEFAULT_SUGGESTION_COMMENT = "Unable to auto-categorize. Please select manually."
DEFAULT_SUMMARY_TEXT = "Weekly summary generated."
DEFAULT_RECOMMENDATIONS = ["Continue tracking your expenses regularly."]
FALLBACK_SUMMARY_TEXT = "Weekly summary generated. AI insights temporarily unavailable."
FALLBACK_RECOMMENDATIONS = ["Keep tracking your expenses", "Review your budgets regularly"]
TOP_CATEGORY_LIMIT = 3


class NoExpenseCategoriesError(Exception):
    """There is no expense category to suggest."""


# =============================================================================
# Parsing helpers
# =============================================================================


def default_category(categories: list[Category]) -> Category:
    """The catch-all category: first whose name contains "Other", else the lowest id."""
    for category in categories:
        if "Other" in category.name:
            return category
    return min(categories, key=lambda c: c.id)


def parse_confidence(raw: str) -> float:
    try:
        value = float(raw.strip())
    except ValueError:
        return DEFAULT_CONFIDENCE
    if math.isnan(value):
        return DEFAULT_CONFIDENCE
    return min(1.0, max(0.0, value))


def parse_category_answer(
    raw: str | None, categories: list[Category]
) -> CategorySuggestion | None:
    """
    Parse a `Name|confidence|comment` answer.

    Returns None when the answer is empty or has fewer than two fields. An
    unknown category name maps to the default category but keeps the
    provider's confidence and comment.
    """
    if not raw or not raw.strip():
        return None
    parts = raw.strip().split("|")
    if len(parts) < 2:
        return None

    name = parts[0].strip()
    confidence = parse_confidence(parts[1])
    comment = parts[2].strip() if len(parts) > 2 else ""

    matched = next(
        (c for c in categories if c.name.lower() == name.lower()),
        None,
    )
    if matched is None:
        logger.info(f"Provider suggested unknown category {name!r}, using default")
        matched = default_category(categories)

    return CategorySuggestion(
        suggested_category_id=matched.id,
        suggested_category_name=matched.name,
        confidence=confidence,
        comment=comment,
    )


def parse_summary_answer(raw: str) -> tuple[str, list[str]]:
    parts = [part.strip() for part in raw.strip().split("||")]
    summary = parts[0] or DEFAULT_SUMMARY_TEXT
    recommendations = [part for part in parts[1:] if part]
    return summary, recommendations or list(DEFAULT_RECOMMENDATIONS)


def _total(transactions: list[Transaction], type_: TransactionType) -> Decimal:
    return sum((t.amount for t in transactions if t.type == type_), Decimal("0"))


def top_expense_categories(
    transactions: list[Transaction], limit: int = TOP_CATEGORY_LIMIT
) -> list[str]:
    """Largest expense categories first, formatted as "Name: $12.34"."""
    totals: dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
    for t in transactions:
        if t.type == TransactionType.EXPENSE:
            totals[t.category.name] += t.amount
    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [f"{name}: ${amount:.2f}" for name, amount in ranked[:limit]]


# =============================================================================
# Insight Service
# =============================================================================


class InsightService:
    """AI-backed insights with deterministic fallbacks."""

    def __init__(self, llm_client: LLMClient, guard: ResilientCaller):
        self.llm = llm_client
        self.guard = guard

    def suggest_category(
        self,
        session: Session,
        request: CategorySuggestionRequest,
        user: str = "anonymous",
    ) -> CategorySuggestion:
        categories = crud.get_categories(session=session, type=TransactionType.EXPENSE)
        if not categories:
            raise NoExpenseCategoriesError("No expense categories are defined")

        prompt = CATEGORY_SUGGESTION_PROMPT.format(
            description=request.description,
            amount=request.amount,
            categories="\n".join(f"- {c.name} ({c.icon})" for c in categories),
        )
        raw = self.guard.execute(
            lambda: self.llm.complete(prompt, user=user),
            name="suggest_category",
        )

        suggestion = parse_category_answer(raw, categories)
        if suggestion is None:
            fallback = default_category(categories)
            suggestion = CategorySuggestion(
                suggested_category_id=fallback.id,
                suggested_category_name=fallback.name,
                confidence=DEFAULT_CONFIDENCE,
                comment=DEFAULT_SUGGESTION_COMMENT,
            )
        return suggestion

    def generate_weekly_summary(
        self,
        session: Session,
        user_id: int,
        today: date | None = None,
    ) -> WeeklySummary:
        week_end = today or date.today()
        week_start = week_end - timedelta(days=6)

        transactions = crud.get_transactions(
            session=session, user_id=user_id, start_date=week_start, end_date=week_end
        )
        total_income = _total(transactions, TransactionType.INCOME)
        total_expenses = _total(transactions, TransactionType.EXPENSE)
        net_balance = total_income - total_expenses
        top_categories = top_expense_categories(transactions)

        prompt = WEEKLY_SUMMARY_PROMPT.format(
            week_start=week_start.isoformat(),
            week_end=week_end.isoformat(),
            total_income=total_income,
            total_expenses=total_expenses,
            net_balance=net_balance,
            top_categories="\n".join(top_categories),
        )
        raw = self.guard.execute(
            lambda: self.llm.complete(
                prompt,
                max_tokens=settings.OPENAI_SUMMARY_MAX_TOKENS,
                user=str(user_id),
            ),
            name="weekly_summary",
        )

        if not raw or not raw.strip():
            ai_summary = FALLBACK_SUMMARY_TEXT
            recommendations = list(FALLBACK_RECOMMENDATIONS)
        else:
            ai_summary, recommendations = parse_summary_answer(raw)

        return WeeklySummary(
            week_start=week_start.isoformat(),
            week_end=week_end.isoformat(),
            total_income=total_income,
            total_expenses=total_expenses,
            net_balance=net_balance,
            top_categories=top_categories,
            ai_summary=ai_summary,
            recommendations=recommendations,
        )
