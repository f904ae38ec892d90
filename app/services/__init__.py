"""
Services Package.

Contains the LLM client, AI insight service and dashboard aggregations.
"""
from app.services.insights import InsightService, NoExpenseCategoriesError
from app.services.llm_client import (
    AIProviderNotConfiguredError,
    LLMClient,
    get_llm_client,
)

__all__ = [
    "AIProviderNotConfiguredError",
    "InsightService",
    "LLMClient",
    "NoExpenseCategoriesError",
    "get_llm_client",
]
