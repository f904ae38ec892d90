"""
Request/response schemas for the AI endpoints.

Field names go over the wire in camelCase; Python code uses snake_case.
"""
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CategorySuggestionRequest(CamelModel):
    """Transaction details to categorize."""

    description: str = Field(
        min_length=1,
        max_length=500,
        description="Free-text transaction description",
    )
    amount: Decimal = Field(gt=0, description="Transaction amount")

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [{"description": "Uber ride to the airport", "amount": "34.20"}]
        },
    )


class CategorySuggestion(CamelModel):
    """Suggested expense category for a transaction."""

    suggested_category_id: int
    suggested_category_name: str
    confidence: float = Field(
        ge=0.0, le=1.0, description="Provider confidence (0.0 to 1.0)"
    )
    comment: str = ""


class WeeklySummary(CamelModel):
    """Income/expense totals for the last seven days plus AI commentary."""

    week_start: str = Field(description="ISO date, six days before week_end")
    week_end: str = Field(description="ISO date, today")
    total_income: Decimal
    total_expenses: Decimal
    net_balance: Decimal
    top_categories: list[str] = Field(
        default_factory=list,
        description="Up to three 'Name: $amount' entries, largest first",
    )
    ai_summary: str
    recommendations: list[str] = Field(default_factory=list)
