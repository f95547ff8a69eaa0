"""Tests for the shared LLM client (clinidash/services/llm.py)."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from clinidash.services import llm
from clinidash.services.llm import GenerativeServiceFailure, LLMClient


def _anthropic_client(text: str | None = None, **create_kwargs) -> LLMClient:
    mock_block = MagicMock()
    mock_block.text = text

    mock_response = MagicMock()
    mock_response.content = [mock_block]

    mock_sdk = AsyncMock()
    mock_sdk.messages.create = AsyncMock(return_value=mock_response, **create_kwargs)

    client = LLMClient()
    client.provider = "anthropic"
    client._anthropic = mock_sdk
    return client


def _openai_client(text: str | None) -> LLMClient:
    mock_response = MagicMock()
    mock_response.choices = [MagicMock()]
    mock_response.choices[0].message.content = text

    mock_sdk = AsyncMock()
    mock_sdk.chat.completions.create = AsyncMock(return_value=mock_response)

    client = LLMClient()
    client.provider = "openai"
    client._openai = mock_sdk
    return client


class TestProviderDetection:
    """No API keys are set in test mode."""

    def test_provider_is_none(self):
        assert LLMClient().provider == "none"

    def test_not_available(self):
        assert LLMClient().available() is False

    def test_sdk_clients_are_none(self):
        client = LLMClient()
        assert client._anthropic is None
        assert client._openai is None

    def test_auto_prefers_anthropic(self):
        with (
            patch.object(llm, "ANTHROPIC_API_KEY", "sk-ant-test"),
            patch.object(llm, "OPENAI_API_KEY", "sk-test"),
        ):
            client = LLMClient()
        assert client.provider == "anthropic"
        assert client.available() is True

    def test_auto_uses_openai_without_anthropic_key(self):
        with patch.object(llm, "OPENAI_API_KEY", "sk-test"):
            client = LLMClient()
        assert client.provider == "openai"
        assert client.available() is True

    def test_explicit_provider_without_key_is_unavailable(self):
        with patch.object(llm, "LLM_PROVIDER", "openai"):
            client = LLMClient()
        assert client.provider == "openai"
        assert client.available() is False

    def test_default_model_per_provider(self):
        client = LLMClient()
        client.provider = "openai"
        assert client.model_name() == "gpt-4o-mini"

    def test_model_override(self):
        with patch.object(llm, "LLM_MODEL", "claude-sonnet-4-5"):
            assert LLMClient().model_name() == "claude-sonnet-4-5"

    def test_singleton(self):
        with patch.object(llm, "_client", None):
            assert llm.get_llm_client() is llm.get_llm_client()


class TestUnavailableGuard:
    async def test_complete_raises(self):
        with pytest.raises(GenerativeServiceFailure, match="unavailable"):
            await LLMClient().complete("hello")

    async def test_failure_is_runtime_error(self):
        with pytest.raises(RuntimeError):
            await LLMClient().chat([{"role": "user", "content": "hello"}])


class TestAnthropicPath:
    async def test_complete(self):
        client = _anthropic_client('{"finalDiagnosis": "Flu"}')
        with patch.object(llm, "LLM_MODEL", "claude-sonnet-4-5"):
            result = await client.complete("Draft a prescription")

        assert result == '{"finalDiagnosis": "Flu"}'
        call_kwargs = client._anthropic.messages.create.call_args.kwargs
        assert call_kwargs["model"] == "claude-sonnet-4-5"
        assert call_kwargs["messages"] == [{"role": "user", "content": "Draft a prescription"}]
        assert call_kwargs["max_tokens"] == llm.LLM_MAX_TOKENS
        assert "system" not in call_kwargs

    async def test_chat_passes_system_prompt(self):
        client = _anthropic_client("Rest and fluids.")
        await client.chat(
            [{"role": "user", "content": "Ravi has a cold"}],
            system="You are a medical assistant.",
            max_tokens=512,
        )

        call_kwargs = client._anthropic.messages.create.call_args.kwargs
        assert call_kwargs["system"] == "You are a medical assistant."
        assert call_kwargs["max_tokens"] == 512

    async def test_provider_error_wrapped(self):
        client = _anthropic_client(side_effect=ConnectionError("network down"))
        with pytest.raises(GenerativeServiceFailure, match="network down"):
            await client.complete("hello")

    async def test_timeout_wrapped(self):
        async def slow(**kwargs):
            await asyncio.sleep(1)

        client = _anthropic_client(side_effect=slow)
        with pytest.raises(GenerativeServiceFailure, match="timed out"):
            await client.complete("hello", timeout=0.01)

    async def test_empty_response(self):
        client = _anthropic_client("   ")
        with pytest.raises(GenerativeServiceFailure, match="empty"):
            await client.complete("hello")


class TestOpenAIPath:
    async def test_system_message_prepended(self):
        client = _openai_client("Take paracetamol.")
        result = await client.chat(
            [{"role": "user", "content": "Anita has a fever"}],
            system="You are a medical assistant.",
        )

        assert result == "Take paracetamol."
        call_kwargs = client._openai.chat.completions.create.call_args.kwargs
        assert call_kwargs["model"] == "gpt-4o-mini"
        assert call_kwargs["messages"][0] == {"role": "system", "content": "You are a medical assistant."}
        assert call_kwargs["messages"][1]["content"] == "Anita has a fever"

    async def test_none_content_is_empty_response(self):
        client = _openai_client(None)
        with pytest.raises(GenerativeServiceFailure, match="empty"):
            await client.complete("hello")
