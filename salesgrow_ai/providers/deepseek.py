"""
DeepSeek adapter.

DeepSeek speaks the OpenAI chat-completions protocol, so the call goes
through the OpenAI SDK pointed at DeepSeek's base URL. System messages
stay inline.
"""

from typing import Any, Dict

import openai
from openai import AsyncOpenAI

from ..core.models import ModelConfig
from ..core.types import Provider, ResponseFormat
from .base import ProviderAdapter, ProviderError, ProviderResponseError


class DeepSeekAdapter(ProviderAdapter):
    """OpenAI-compatible chat completions."""

    provider = Provider.DEEPSEEK
    label = "DeepSeek"

    def build_request(self, messages, model, max_tokens, temperature, response_format=None):
        body: Dict[str, Any] = {
            "model": model.id,
            "messages": [m.to_dict() for m in messages],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if response_format == ResponseFormat.JSON:
            body["response_format"] = {"type": "json_object"}
        return body

    def _client(self, model: ModelConfig, api_key: str) -> AsyncOpenAI:
        return AsyncOpenAI(
            api_key=api_key,
            base_url=model.endpoint,
            timeout=self.timeout,
            max_retries=0,
            http_client=self.http_client,
        )

    async def send(self, payload, model, api_key):
        client = self._client(model, api_key)
        try:
            completion = await client.chat.completions.create(**payload)
        except openai.APIStatusError as e:
            raise ProviderResponseError(self.provider.value, self.label, e.status_code, e.response.text) from e
        except openai.APIError as e:
            raise ProviderError(self.provider.value, f"{self.label} request failed: {e}") from e
        finally:
            # An injected http_client belongs to the caller
            if self.http_client is None:
                await client.close()
        return completion.model_dump()

    def extract(self, data):
        choices = data.get("choices") or []
        content = ""
        if choices:
            content = (choices[0].get("message") or {}).get("content") or ""
        usage = data.get("usage") or {}
        return content, usage.get("prompt_tokens"), usage.get("completion_tokens")
