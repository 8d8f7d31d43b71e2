"""Language model provider port."""

from .ports import (
    LLMAuthError,
    LLMError,
    LLMInvalidResponseError,
    LLMProviderPort,
    LLMRateLimitError,
    LLMReply,
    LLMServiceError,
    LLMTimeoutError,
)

__all__ = [
    "LLMAuthError",
    "LLMError",
    "LLMInvalidResponseError",
    "LLMProviderPort",
    "LLMRateLimitError",
    "LLMReply",
    "LLMServiceError",
    "LLMTimeoutError",
]
