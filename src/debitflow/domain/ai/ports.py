"""
LLM Provider Port - Abstract interface for language model providers.

Hexagonal Architecture: the extraction pipeline depends on this port, not on
the Anthropic or OpenAI SDKs. Adapters live in infrastructure.ai.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class LLMReply:
    """
    Raw reply of one model call.

    Attributes:
        text: Concatenated text content of the reply
        provider: Provider name ('anthropic', 'openai')
        model: Model name
        tokens_in: Input tokens (None if not reported)
        tokens_out: Output tokens (None if not reported)
        latency_ms: Call latency in milliseconds
        stop_reason: Provider stop reason ('end_turn', 'max_tokens', ...)
    """
    text: str
    provider: str
    model: str
    tokens_in: Optional[int] = None
    tokens_out: Optional[int] = None
    latency_ms: int = 0
    stop_reason: Optional[str] = None

    @property
    def truncated(self) -> bool:
        return self.stop_reason in ("max_tokens", "length")


class LLMProviderPort(ABC):
    """
    Abstract interface for language model providers.

    Implementations handle authentication, request formatting and mapping
    SDK errors to the LLMError hierarchy below. They do NOT retry; retries
    belong to the extraction client.
    """

    name: str = "unknown"

    @property
    @abstractmethod
    def supports_documents(self) -> bool:
        """True when whole PDF documents can be sent inline."""

    @abstractmethod
    def complete_with_document(
        self,
        document: bytes,
        media_type: str,
        prompt: str,
        system_prompt: Optional[str] = None,
    ) -> LLMReply:
        """
        Send a document (inline, base64) with an instruction prompt.

        Args:
            document: Raw document bytes
            media_type: MIME type of the document
            prompt: User instruction
            system_prompt: Optional system instruction

        Returns:
            LLMReply with the raw reply text

        Raises:
            LLMTimeoutError: Request timed out
            LLMRateLimitError: Rate limit exceeded
            LLMAuthError: Authentication failed
            LLMServiceError: Provider service unavailable
            LLMInvalidResponseError: Reply carried no text
        """

    @abstractmethod
    def complete_text(self, prompt: str, system_prompt: Optional[str] = None) -> LLMReply:
        """
        Send a text-only prompt.

        Raises:
            Same as complete_with_document
        """


# Custom exceptions for LLM operations
class LLMError(Exception):
    """Base exception for LLM operations"""
    pass


class LLMTimeoutError(LLMError):
    """LLM request timed out"""
    pass


class LLMRateLimitError(LLMError):
    """Rate limit exceeded"""
    pass


class LLMAuthError(LLMError):
    """Authentication failed"""
    pass


class LLMServiceError(LLMError):
    """Provider service unavailable or returned error"""
    pass


class LLMInvalidResponseError(LLMError):
    """Provider returned invalid/unexpected response"""
    pass
