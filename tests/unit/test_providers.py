"""Unit tests for the model provider adapters (SDK clients mocked)"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from debitflow.config import Settings
from debitflow.domain.ai.ports import LLMInvalidResponseError
from debitflow.infrastructure.ai import AnthropicProvider, OpenAIProvider, get_llm_provider


def _anthropic_response(text, stop_reason="end_turn"):
    return SimpleNamespace(
        content=[SimpleNamespace(type="text", text=text)],
        usage=SimpleNamespace(input_tokens=1200, output_tokens=300),
        stop_reason=stop_reason,
    )


def _openai_response(text, finish_reason="stop"):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=text), finish_reason=finish_reason)],
        usage=SimpleNamespace(prompt_tokens=900, completion_tokens=250),
    )


class TestAnthropicProvider:

    def test_document_sent_as_base64_block(self):
        client = MagicMock()
        client.messages.create.return_value = _anthropic_response('{"items": []}')
        provider = AnthropicProvider(client=client, model="claude-test")

        reply = provider.complete_with_document(b"%PDF", "application/pdf", "Extrais", "system")

        kwargs = client.messages.create.call_args.kwargs
        document_block, text_block = kwargs["messages"][0]["content"]
        assert document_block["type"] == "document"
        assert document_block["source"]["data"] == "JVBERg=="
        assert text_block == {"type": "text", "text": "Extrais"}
        assert kwargs["system"] == "system"
        assert reply.text == '{"items": []}'
        assert reply.tokens_out == 300
        assert reply.provider == "anthropic"

    def test_truncated_reply_flagged(self):
        client = MagicMock()
        client.messages.create.return_value = _anthropic_response('{"items": [', stop_reason="max_tokens")
        reply = AnthropicProvider(client=client).complete_text("prompt")
        assert reply.truncated
        assert reply.stop_reason == "max_tokens"

    def test_empty_reply(self):
        client = MagicMock()
        client.messages.create.return_value = _anthropic_response("  ")
        with pytest.raises(LLMInvalidResponseError):
            AnthropicProvider(client=client).complete_text("prompt")

    def test_non_pdf_document_rejected(self):
        with pytest.raises(LLMInvalidResponseError):
            AnthropicProvider(client=MagicMock()).complete_with_document(b"PK", "application/zip", "prompt")


class TestOpenAIProvider:

    def test_json_mode_text_call(self):
        client = MagicMock()
        client.chat.completions.create.return_value = _openai_response('{"numeroOS": "1"}')
        provider = OpenAIProvider(client=client, model="gpt-test")

        reply = provider.complete_text("prompt", "system")

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][0] == {"role": "system", "content": "system"}
        assert reply.tokens_in == 900
        assert reply.model == "gpt-test"
        assert not provider.supports_documents

    def test_length_finish_reason_is_truncation(self):
        client = MagicMock()
        client.chat.completions.create.return_value = _openai_response("{", finish_reason="length")
        assert OpenAIProvider(client=client).complete_text("prompt").truncated


class TestGetLLMProvider:

    def test_disabled(self):
        assert get_llm_provider(Settings(LLM_PROVIDER="")) is None

    def test_missing_key_disables_model_path(self):
        assert get_llm_provider(Settings(LLM_PROVIDER="anthropic", ANTHROPIC_API_KEY=None)) is None

    def test_openai(self):
        provider = get_llm_provider(Settings(LLM_PROVIDER="OpenAI", OPENAI_API_KEY="sk-test", LLM_MODEL="gpt-4o-mini"))
        assert isinstance(provider, OpenAIProvider)
        assert provider.model == "gpt-4o-mini"

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            get_llm_provider(Settings(LLM_PROVIDER="mistral"))
