"""
OpenAI Provider - text-only LLMProviderPort implementation.

Chat completions cannot take a PDF inline, so the pipeline sends the
extracted document text instead (supports_documents is False).
"""

import os
import time
from typing import Any, Optional

from openai import (
    APIConnectionError,
    APIError,
    APITimeoutError,
    AuthenticationError,
    OpenAI,
    RateLimitError,
)

from debitflow.domain.ai.ports import (
    LLMAuthError,
    LLMInvalidResponseError,
    LLMProviderPort,
    LLMRateLimitError,
    LLMReply,
    LLMServiceError,
    LLMTimeoutError,
)


class OpenAIProvider(LLMProviderPort):
    """OpenAI implementation of LLMProviderPort using JSON mode."""

    name = "openai"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        max_tokens: int = 4096,
        timeout: float = 60.0,
        client: Optional[Any] = None,
    ):
        """
        Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key (defaults to OPENAI_API_KEY env var)
            model: Model name
            max_tokens: Reply token budget
            timeout: Per-request timeout in seconds
            client: Pre-built SDK client (tests)

        Raises:
            ValueError: If API key is not provided
        """
        self.model = model
        self.max_tokens = max_tokens
        self.timeout = timeout

        if client is not None:
            self.client = client
            return

        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not self.api_key:
            raise ValueError("OpenAI API key not provided. Set OPENAI_API_KEY environment variable.")
        self.client = OpenAI(api_key=self.api_key)

    @property
    def supports_documents(self) -> bool:
        return False

    def complete_with_document(
        self,
        document: bytes,
        media_type: str,
        prompt: str,
        system_prompt: Optional[str] = None,
    ) -> LLMReply:
        raise NotImplementedError("OpenAI provider accepts text prompts only")

    def complete_text(self, prompt: str, system_prompt: Optional[str] = None) -> LLMReply:
        """
        Chat completion in JSON mode.

        Raises:
            LLMTimeoutError, LLMRateLimitError, LLMAuthError, LLMServiceError,
            LLMInvalidResponseError
        """
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        start_time = time.perf_counter()
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                response_format={"type": "json_object"},
                temperature=0.0,  # Deterministic for extraction
                max_tokens=self.max_tokens,
                timeout=self.timeout,
            )
        except APITimeoutError as e:
            raise LLMTimeoutError(f"OpenAI API timeout: {str(e)}")
        except RateLimitError as e:
            raise LLMRateLimitError(f"OpenAI rate limit exceeded: {str(e)}")
        except AuthenticationError as e:
            raise LLMAuthError(f"OpenAI authentication failed: {str(e)}")
        except (APIConnectionError, APIError) as e:
            raise LLMServiceError(f"OpenAI service error: {str(e)}")

        latency_ms = int((time.perf_counter() - start_time) * 1000)

        if not response.choices:
            raise LLMInvalidResponseError("OpenAI reply contained no choices")
        choice = response.choices[0]
        text = choice.message.content or ""
        if not text.strip():
            raise LLMInvalidResponseError("OpenAI reply contained no text")

        usage = response.usage
        return LLMReply(
            text=text,
            provider=self.name,
            model=self.model,
            tokens_in=usage.prompt_tokens if usage else None,
            tokens_out=usage.completion_tokens if usage else None,
            latency_ms=latency_ms,
            stop_reason=choice.finish_reason,
        )
