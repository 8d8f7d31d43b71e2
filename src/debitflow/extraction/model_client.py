"""Language model extraction client with bounded retry.

Every failure is retried the same way, whatever its type: after attempt n
(0-based) the client waits retry_delay_base * 2**n seconds. With the
defaults that is 1s, 2s and 4s for three attempts. Attempts are strictly
sequential.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from debitflow.domain.ai.ports import LLMProviderPort, LLMReply
from debitflow.domain.documents.models import SourceDocument
from debitflow.domain.extraction.exceptions import ModelCallFailed

logger = logging.getLogger(__name__)


@dataclass
class ModelCallOutcome:
    """Successful reply plus the failures that preceded it."""

    reply: LLMReply
    attempts: int
    errors: List[str] = field(default_factory=list)


class ModelExtractionClient:
    """Sends a debit sheet to the model and returns the raw reply text."""

    def __init__(
        self,
        provider: LLMProviderPort,
        max_attempts: int = 3,
        retry_delay_base: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            provider: Model provider adapter
            max_attempts: Total attempts before giving up
            retry_delay_base: Base delay in seconds for exponential backoff
            sleep: Delay function, injectable for tests
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.provider = provider
        self.max_attempts = max_attempts
        self.retry_delay_base = retry_delay_base
        self._sleep = sleep

    def should_inline(self, document: SourceDocument) -> bool:
        """Whether the document itself (not its text) is sent to the model."""
        return document.is_pdf and self.provider.supports_documents

    def extract_via_model(
        self,
        document: SourceDocument,
        prompt: str,
        system_prompt: Optional[str] = None,
    ) -> ModelCallOutcome:
        """Call the model until it answers or attempts run out.

        Args:
            document: Source document, sent inline when should_inline()
            prompt: Instruction prompt (already holding the text excerpt
                when the document is not inlined)
            system_prompt: Optional system instruction

        Returns:
            ModelCallOutcome with the first successful reply

        Raises:
            ModelCallFailed: Every attempt failed
        """
        inline = self.should_inline(document)
        errors: List[str] = []

        for attempt in range(self.max_attempts):
            try:
                if inline:
                    reply = self.provider.complete_with_document(
                        document.content, document.mime_type, prompt, system_prompt
                    )
                else:
                    reply = self.provider.complete_text(prompt, system_prompt)
            except Exception as e:
                errors.append(f"{type(e).__name__}: {e}")
                delay = self.retry_delay_base * (2 ** attempt)
                logger.warning(
                    f"Model call failed on attempt {attempt + 1}/{self.max_attempts}: {e}",
                    extra={"attempt": attempt + 1, "document_name": document.filename},
                )
                self._sleep(delay)
                continue

            logger.info(
                f"Model replied on attempt {attempt + 1} ({reply.latency_ms} ms, "
                f"{reply.tokens_out or 0} output tokens)",
                extra={"attempt": attempt + 1, "document_name": document.filename},
            )
            return ModelCallOutcome(reply=reply, attempts=attempt + 1, errors=errors)

        logger.error(
            f"Model call failed after {self.max_attempts} attempts",
            extra={"document_name": document.filename},
        )
        raise ModelCallFailed(self.max_attempts, errors[-1])
