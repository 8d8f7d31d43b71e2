"""
Anthropic Provider - LLMProviderPort implementation for Claude models.

PDFs are sent inline as base64 document blocks so the model reads the
original layout, not a lossy text rendering.
"""

import base64
import os
import time
from typing import Any, Optional

from anthropic import (
    Anthropic,
    APIConnectionError,
    APIError,
    APITimeoutError,
    AuthenticationError,
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

DOCUMENT_MEDIA_TYPES = {"application/pdf"}


class AnthropicProvider(LLMProviderPort):
    """
    Anthropic Claude implementation of LLMProviderPort.

    Uses the Messages API with a document content block for PDFs and plain
    text content otherwise.
    """

    name = "anthropic"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "claude-haiku-4-5",
        max_tokens: int = 4096,
        timeout: float = 60.0,
        client: Optional[Any] = None,
    ):
        """
        Initialize Anthropic provider.

        Args:
            api_key: Anthropic API key (defaults to ANTHROPIC_API_KEY env var)
            model: Model name
            max_tokens: Reply token budget
            timeout: Per-request timeout in seconds
            client: Pre-built SDK client (tests)

        Raises:
            ValueError: If no API key is available and no client is given
        """
        self.model = model
        self.max_tokens = max_tokens
        self.timeout = timeout

        if client is not None:
            self.client = client
            return

        self.api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not self.api_key:
            raise ValueError("Anthropic API key not provided. Set ANTHROPIC_API_KEY environment variable.")
        self.client = Anthropic(api_key=self.api_key)

    @property
    def supports_documents(self) -> bool:
        return True

    def complete_with_document(
        self,
        document: bytes,
        media_type: str,
        prompt: str,
        system_prompt: Optional[str] = None,
    ) -> LLMReply:
        if media_type not in DOCUMENT_MEDIA_TYPES:
            raise LLMInvalidResponseError(f"Anthropic documents must be PDF, got {media_type}")

        content = [
            {
                "type": "document",
                "source": {
                    "type": "base64",
                    "media_type": media_type,
                    "data": base64.standard_b64encode(document).decode("utf-8"),
                },
            },
            {"type": "text", "text": prompt},
        ]
        return self._create_message(content, system_prompt)

    def complete_text(self, prompt: str, system_prompt: Optional[str] = None) -> LLMReply:
        return self._create_message([{"type": "text", "text": prompt}], system_prompt)

    def _create_message(self, content: list, system_prompt: Optional[str]) -> LLMReply:
        """
        Make the Messages API call and map SDK errors.

        Raises:
            LLMTimeoutError, LLMRateLimitError, LLMAuthError, LLMServiceError,
            LLMInvalidResponseError
        """
        kwargs = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": content}],
            "timeout": self.timeout,
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        start_time = time.perf_counter()
        try:
            response = self.client.messages.create(**kwargs)
        except APITimeoutError as e:
            raise LLMTimeoutError(f"Anthropic API timeout: {str(e)}")
        except RateLimitError as e:
            raise LLMRateLimitError(f"Anthropic rate limit exceeded: {str(e)}")
        except AuthenticationError as e:
            raise LLMAuthError(f"Anthropic authentication failed: {str(e)}")
        except (APIConnectionError, APIError) as e:
            raise LLMServiceError(f"Anthropic service error: {str(e)}")

        latency_ms = int((time.perf_counter() - start_time) * 1000)

        text = "".join(
            block.text for block in (response.content or [])
            if getattr(block, "type", None) == "text"
        )
        if not text.strip():
            raise LLMInvalidResponseError("Anthropic reply contained no text")

        usage = getattr(response, "usage", None)
        return LLMReply(
            text=text,
            provider=self.name,
            model=self.model,
            tokens_in=getattr(usage, "input_tokens", None),
            tokens_out=getattr(usage, "output_tokens", None),
            latency_ms=latency_ms,
            stop_reason=getattr(response, "stop_reason", None),
        )
