"""
Tests for the provider adapters.

Each adapter runs against an ``httpx.MockTransport`` so the exact request
body, headers and reply parsing are exercised without network access.
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from salesgrow_ai.core.models import get_model_config
from salesgrow_ai.core.token_counter import estimate_tokens
from salesgrow_ai.core.types import ChatMessage, ResponseFormat
from salesgrow_ai.providers import (
    AnthropicAdapter,
    DeepSeekAdapter,
    GeminiAdapter,
    ProviderError,
    ProviderNotConfiguredError,
    ProviderResponseError,
    build_adapters,
)
from salesgrow_ai.providers.base import split_system_prompt

MESSAGES = [
    ChatMessage("system", "You are a client."),
    ChatMessage("assistant", "Hello? Who is this?"),
    ChatMessage("user", "Hi, I'm calling from Acme."),
]

DEEPSEEK = get_model_config("deepseek-chat")
GEMINI = get_model_config("gemini-2.0-flash")
HAIKU = get_model_config("claude-haiku-4-5-20251001")


def mock_client(handler, captured=None):
    """AsyncClient whose requests are answered by ``handler``."""
    def record(request: httpx.Request) -> httpx.Response:
        if captured is not None:
            captured.append(request)
        return handler(request)
    return httpx.AsyncClient(transport=httpx.MockTransport(record))


def json_reply(body, status_code=200):
    return lambda request: httpx.Response(status_code, json=body)


def chat_completion(content, usage=True):
    body = {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 1700000000,
        "model": "deepseek-chat",
        "choices": [{
            "index": 0,
            "message": {"role": "assistant", "content": content},
            "finish_reason": "stop",
        }],
    }
    if usage:
        body["usage"] = {"prompt_tokens": 12, "completion_tokens": 3, "total_tokens": 15}
    return body


class TestSystemPrompt:
    """Test system prompt hoisting."""

    def test_split(self):
        system, turns = split_system_prompt(MESSAGES)
        assert system == "You are a client."
        assert [m.role for m in turns] == ["assistant", "user"]

    def test_no_system(self):
        system, turns = split_system_prompt(MESSAGES[1:])
        assert system is None
        assert len(turns) == 2


class TestDeepSeekAdapter:
    """Test the OpenAI-compatible adapter."""

    def test_request_keeps_system_inline(self):
        body = DeepSeekAdapter().build_request(MESSAGES, DEEPSEEK, 512, 0.8)
        assert body["model"] == "deepseek-chat"
        assert body["messages"][0] == {"role": "system", "content": "You are a client."}
        assert body["max_tokens"] == 512
        assert "response_format" not in body

    def test_json_mode(self):
        body = DeepSeekAdapter().build_request(MESSAGES, DEEPSEEK, 512, 0.4, ResponseFormat.JSON)
        assert body["response_format"] == {"type": "json_object"}

    @pytest.mark.asyncio
    async def test_complete(self):
        captured = []
        adapter = DeepSeekAdapter(http_client=mock_client(json_reply(chat_completion("Who?")), captured))
        result = await adapter.complete(MESSAGES, DEEPSEEK, "sk-test", max_tokens=512, temperature=0.8)

        assert result.content == "Who?"
        assert result.usage.input_tokens == 12
        assert result.usage.output_tokens == 3
        assert result.usage.estimated_cost_usd == pytest.approx((12 * 0.14 + 3 * 0.28) / 1_000_000)

        request = captured[0]
        assert request.url.path == "/v1/chat/completions"
        assert request.headers["authorization"] == "Bearer sk-test"
        assert json.loads(request.content)["temperature"] == 0.8

    @pytest.mark.asyncio
    async def test_missing_usage_is_estimated(self):
        adapter = DeepSeekAdapter(http_client=mock_client(json_reply(chat_completion("abcdefgh", usage=False))))
        result = await adapter.complete(MESSAGES, DEEPSEEK, "sk-test", max_tokens=512, temperature=0.8)
        assert result.usage.output_tokens == 2
        assert result.usage.input_tokens == estimate_tokens("".join(m.content for m in MESSAGES))

    @pytest.mark.asyncio
    async def test_error_status_includes_body(self):
        adapter = DeepSeekAdapter(http_client=mock_client(json_reply({"error": "overloaded"}, 503)))
        with pytest.raises(ProviderResponseError) as exc_info:
            await adapter.complete(MESSAGES, DEEPSEEK, "sk-test", max_tokens=512, temperature=0.8)
        assert exc_info.value.status_code == 503
        assert "DeepSeek API error (503)" in str(exc_info.value)
        assert "overloaded" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_network_error(self):
        def fail(request):
            raise httpx.ConnectError("connection refused", request=request)
        adapter = DeepSeekAdapter(http_client=mock_client(fail))
        with pytest.raises(ProviderError):
            await adapter.complete(MESSAGES, DEEPSEEK, "sk-test", max_tokens=512, temperature=0.8)

    @pytest.mark.asyncio
    async def test_missing_key(self):
        with pytest.raises(ProviderNotConfiguredError, match="DEEPSEEK_API_KEY not configured"):
            await DeepSeekAdapter().complete(MESSAGES, DEEPSEEK, "", max_tokens=512, temperature=0.8)

    @pytest.mark.asyncio
    async def test_owned_client_is_closed(self):
        sdk_client = MagicMock()
        sdk_client.chat.completions.create = AsyncMock(
            return_value=MagicMock(model_dump=MagicMock(return_value=chat_completion("Who?")))
        )
        sdk_client.close = AsyncMock()
        with patch("salesgrow_ai.providers.deepseek.AsyncOpenAI", return_value=sdk_client):
            result = await DeepSeekAdapter().complete(MESSAGES, DEEPSEEK, "sk-test", max_tokens=512, temperature=0.8)

        assert result.content == "Who?"
        sdk_client.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_owned_client_is_closed_on_error(self):
        sdk_client = MagicMock()
        sdk_client.chat.completions.create = AsyncMock(
            side_effect=openai.APIConnectionError(request=httpx.Request("POST", "https://api.deepseek.com/v1"))
        )
        sdk_client.close = AsyncMock()
        with patch("salesgrow_ai.providers.deepseek.AsyncOpenAI", return_value=sdk_client):
            with pytest.raises(ProviderError):
                await DeepSeekAdapter().complete(MESSAGES, DEEPSEEK, "sk-test", max_tokens=512, temperature=0.8)

        sdk_client.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_injected_client_stays_open(self):
        http_client = mock_client(json_reply(chat_completion("Who?")))
        adapter = DeepSeekAdapter(http_client=http_client)
        await adapter.complete(MESSAGES, DEEPSEEK, "sk-test", max_tokens=512, temperature=0.8)
        await adapter.complete(MESSAGES, DEEPSEEK, "sk-test", max_tokens=512, temperature=0.8)
        assert not http_client.is_closed


class TestGeminiAdapter:
    """Test the Gemini adapter."""

    def test_request_shape(self):
        body = GeminiAdapter().build_request(MESSAGES, GEMINI, 256, 0.7)
        assert body["systemInstruction"] == {"parts": [{"text": "You are a client."}]}
        assert [c["role"] for c in body["contents"]] == ["model", "user"]
        assert body["contents"][1]["parts"] == [{"text": "Hi, I'm calling from Acme."}]
        assert body["generationConfig"] == {"maxOutputTokens": 256, "temperature": 0.7}

    def test_json_mode(self):
        body = GeminiAdapter().build_request(MESSAGES, GEMINI, 256, 0.7, ResponseFormat.JSON)
        assert body["generationConfig"]["responseMimeType"] == "application/json"

    @pytest.mark.asyncio
    async def test_complete(self):
        captured = []
        reply = {
            "candidates": [{"content": {"parts": [{"text": "Hello "}, {"text": "there"}]}}],
            "usageMetadata": {"promptTokenCount": 20, "candidatesTokenCount": 4},
        }
        adapter = GeminiAdapter(http_client=mock_client(json_reply(reply), captured))
        result = await adapter.complete(MESSAGES, GEMINI, "g-key", max_tokens=256, temperature=0.7)

        assert result.content == "Hello there"
        assert result.usage.input_tokens == 20
        assert result.usage.output_tokens == 4
        assert captured[0].url.params["key"] == "g-key"
        assert captured[0].url.path.endswith("gemini-2.0-flash:generateContent")

    @pytest.mark.asyncio
    async def test_error_status(self):
        adapter = GeminiAdapter(http_client=mock_client(lambda r: httpx.Response(429, text="quota")))
        with pytest.raises(ProviderResponseError, match=r"Gemini API error \(429\): quota"):
            await adapter.complete(MESSAGES, GEMINI, "g-key", max_tokens=256, temperature=0.7)

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        adapter = GeminiAdapter(http_client=mock_client(lambda r: httpx.Response(200, text="<html>")))
        with pytest.raises(ProviderError, match="invalid JSON"):
            await adapter.complete(MESSAGES, GEMINI, "g-key", max_tokens=256, temperature=0.7)


class TestAnthropicAdapter:
    """Test the Anthropic adapter."""

    def test_system_is_hoisted(self):
        body = AnthropicAdapter().build_request(MESSAGES, HAIKU, 1024, 0.5, ResponseFormat.JSON)
        assert body["system"] == "You are a client."
        assert all(m["role"] != "system" for m in body["messages"])
        assert body["model"] == "claude-haiku-4-5-20251001"

    @pytest.mark.asyncio
    async def test_complete(self):
        captured = []
        reply = {
            "content": [{"type": "text", "text": "Sure, "}, {"type": "text", "text": "go on."}],
            "usage": {"input_tokens": 30, "output_tokens": 5},
        }
        adapter = AnthropicAdapter(http_client=mock_client(json_reply(reply), captured))
        result = await adapter.complete(MESSAGES, HAIKU, "a-key", max_tokens=1024, temperature=0.5)

        assert result.content == "Sure, go on."
        assert result.usage.total_tokens == 35
        assert captured[0].headers["x-api-key"] == "a-key"
        assert captured[0].headers["anthropic-version"] == "2023-06-01"

    @pytest.mark.asyncio
    async def test_malformed_reply(self):
        adapter = AnthropicAdapter(http_client=mock_client(json_reply(["not", "an", "object"])))
        with pytest.raises(ProviderError, match="Malformed Anthropic response"):
            await adapter.complete(MESSAGES, HAIKU, "a-key", max_tokens=1024, temperature=0.5)


class TestAdapterRegistry:
    """Test adapter construction."""

    def test_one_adapter_per_provider(self):
        adapters = build_adapters(timeout=5)
        assert {type(a) for a in adapters.values()} == {DeepSeekAdapter, GeminiAdapter, AnthropicAdapter}
        assert all(a.timeout == 5 for a in adapters.values())
