"""
Anthropic adapter.

The Messages API takes the system prompt in a top-level ``system`` field
and has no JSON-mode flag; fenced JSON replies are cleaned by the caller.
"""

from typing import Any, Dict

from ..core.types import Provider
from .base import ProviderAdapter, split_system_prompt

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicAdapter(ProviderAdapter):
    """Anthropic Messages API."""

    provider = Provider.ANTHROPIC
    label = "Anthropic"

    def build_request(self, messages, model, max_tokens, temperature, response_format=None):
        system, turns = split_system_prompt(messages)
        body: Dict[str, Any] = {
            "model": model.id,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [m.to_dict() for m in turns],
        }
        if system:
            body["system"] = system
        return body

    async def send(self, payload, model, api_key):
        return await self._post_json(
            model.endpoint,
            payload,
            headers={
                "Content-Type": "application/json",
                "x-api-key": api_key,
                "anthropic-version": ANTHROPIC_VERSION,
            },
        )

    def extract(self, data):
        blocks = data.get("content") or []
        content = "".join(b.get("text", "") for b in blocks if b.get("type", "text") == "text")
        usage = data.get("usage") or {}
        return content, usage.get("input_tokens"), usage.get("output_tokens")
