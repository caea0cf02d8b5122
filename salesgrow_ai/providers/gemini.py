"""
Gemini adapter.

Gemini takes a ``contents`` list with ``user``/``model`` roles and the
system prompt in a separate ``systemInstruction`` field.
"""

from typing import Any, Dict

from ..core.types import Provider, ResponseFormat
from .base import ProviderAdapter, split_system_prompt


class GeminiAdapter(ProviderAdapter):
    """Google Generative Language ``generateContent``."""

    provider = Provider.GOOGLE
    label = "Gemini"

    def build_request(self, messages, model, max_tokens, temperature, response_format=None):
        system, turns = split_system_prompt(messages)
        generation_config: Dict[str, Any] = {
            "maxOutputTokens": max_tokens,
            "temperature": temperature,
        }
        if response_format == ResponseFormat.JSON:
            generation_config["responseMimeType"] = "application/json"

        body: Dict[str, Any] = {
            "contents": [
                {
                    "role": "model" if m.role == "assistant" else "user",
                    "parts": [{"text": m.content}],
                }
                for m in turns
            ],
            "generationConfig": generation_config,
        }
        if system:
            body["systemInstruction"] = {"parts": [{"text": system}]}
        return body

    async def send(self, payload, model, api_key):
        return await self._post_json(
            model.endpoint,
            payload,
            headers={"Content-Type": "application/json"},
            params={"key": api_key},
        )

    def extract(self, data):
        candidates = data.get("candidates") or []
        content = ""
        if candidates:
            parts = (candidates[0].get("content") or {}).get("parts") or []
            content = "".join(part.get("text", "") for part in parts)
        usage = data.get("usageMetadata") or {}
        return content, usage.get("promptTokenCount"), usage.get("candidatesTokenCount")
