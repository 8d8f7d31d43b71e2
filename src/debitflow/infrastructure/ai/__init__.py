"""AI Infrastructure - adapters implementing LLMProviderPort."""

import logging
from typing import Optional

from debitflow.config import Settings
from debitflow.domain.ai.ports import LLMProviderPort

from .anthropic_provider import AnthropicProvider
from .openai_provider import OpenAIProvider

logger = logging.getLogger(__name__)

__all__ = ["AnthropicProvider", "OpenAIProvider", "get_llm_provider"]


def get_llm_provider(settings: Settings) -> Optional[LLMProviderPort]:
    """Build the configured provider.

    Returns:
        Provider instance, or None when LLM_PROVIDER is empty or its API key
        is missing (the pipeline then uses the layout fallback only)

    Raises:
        ValueError: If LLM_PROVIDER names an unknown provider
    """
    provider = (settings.LLM_PROVIDER or "").strip().lower()
    if not provider:
        return None

    common = {
        "model": settings.LLM_MODEL,
        "max_tokens": settings.LLM_MAX_TOKENS,
        "timeout": settings.LLM_TIMEOUT_SECONDS,
    }

    if provider == "anthropic":
        if not settings.ANTHROPIC_API_KEY:
            logger.warning("ANTHROPIC_API_KEY not set, model extraction disabled")
            return None
        return AnthropicProvider(api_key=settings.ANTHROPIC_API_KEY, **common)

    if provider == "openai":
        if not settings.OPENAI_API_KEY:
            logger.warning("OPENAI_API_KEY not set, model extraction disabled")
            return None
        return OpenAIProvider(api_key=settings.OPENAI_API_KEY, **common)

    raise ValueError(f"Unknown LLM_PROVIDER: {settings.LLM_PROVIDER}")
