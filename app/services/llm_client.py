"""
LLM Client - thin wrapper over an OpenAI-compatible chat completions API.

One call, one prompt, one text answer. Retries and circuit breaking are
layered on by the caller (see app.core.resilience), not here.
"""
from openai import OpenAI

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)


class AIProviderNotConfiguredError(Exception):
    """No API key is configured, so AI features are unavailable."""

    def __init__(self, message: str = "AI provider is not configured"):
        super().__init__(message)
        self.message = message


class LLMClient:
    """
    Chat completion client for OpenAI or any OpenAI-compatible endpoint.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        timeout: float | None = None,
        client: OpenAI | None = None,
    ):
        self.model = model or settings.OPENAI_MODEL
        self.temperature = (
            temperature if temperature is not None else settings.OPENAI_TEMPERATURE
        )
        self.max_tokens = max_tokens or settings.OPENAI_MAX_TOKENS

        # SDK retries are disabled; retry policy lives in the resilience layer
        self._client = client or OpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout or settings.OPENAI_TIMEOUT_SECONDS,
            max_retries=0,
        )

    def complete(
        self,
        prompt: str,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        user: str = "anonymous",
    ) -> str:
        """
        Send a single user prompt and return the joined text of all choices.

        Raises whatever the SDK raises (network errors, timeouts, API errors).
        """
        model = model or self.model
        tokens_estimate = max(1, len(prompt) // 4)
        logger.info(
            f"OpenAI request => user={user}, model={model}, tokensEstimate={tokens_estimate}"
        )

        try:
            response = self._client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=max_tokens or self.max_tokens,
                temperature=temperature if temperature is not None else self.temperature,
            )
        except Exception:
            logger.error(
                f"OpenAI request failed => user={user}, model={model}, "
                f"tokensEstimate={tokens_estimate}"
            )
            raise

        logger.info(
            f"OpenAI response success => user={user}, model={model}, "
            f"tokensEstimate={tokens_estimate}"
        )
        return "\n".join(
            choice.message.content
            for choice in response.choices
            if choice.message.content
        )


def get_llm_client() -> LLMClient | None:
    """Build the process-wide client, or None when no API key is configured."""
    if not settings.ai_enabled:
        logger.warning("OPENAI_API_KEY is not set, AI endpoints will answer 503")
        return None
    return LLMClient(
        api_key=settings.OPENAI_API_KEY,
        base_url=settings.OPENAI_BASE_URL,
    )
