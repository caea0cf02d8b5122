"""
Provider adapter interface.

An adapter turns the gateway's normalized messages into one provider's
request body, performs the call and maps the reply back to text plus
token usage. Adapters never retry; the gateway's fallback chain is the
whole retry strategy.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from ..core.models import DEFAULT_REGISTRY, ModelConfig, ModelRegistry
from ..core.token_counter import TokenUsage, estimate_tokens
from ..core.types import ChatMessage, Provider, ProviderResult, ResponseFormat

DEFAULT_TIMEOUT_SECONDS = 60.0


class ProviderError(Exception):
    """Raised when a provider call cannot produce a reply."""

    def __init__(self, provider: str, message: str):
        super().__init__(message)
        self.provider = provider


class ProviderNotConfiguredError(ProviderError):
    """Raised when the provider's credential is missing."""

    def __init__(self, provider: str, api_key_env: str):
        super().__init__(provider, f"{api_key_env} not configured")
        self.api_key_env = api_key_env


class ProviderResponseError(ProviderError):
    """Raised on a non-2xx provider response."""

    def __init__(self, provider: str, label: str, status_code: int, body: str):
        super().__init__(provider, f"{label} API error ({status_code}): {body}")
        self.status_code = status_code
        self.body = body


def split_system_prompt(messages: Sequence[ChatMessage]) -> Tuple[Optional[str], List[ChatMessage]]:
    """Separate the first system message from the conversation turns.

    For providers that take the system prompt in a dedicated field.
    """
    system = next((m.content for m in messages if m.role == "system"), None)
    return system, [m for m in messages if m.role != "system"]


class ProviderAdapter(ABC):
    """Normalize → call → denormalize for one provider."""

    provider: Provider
    label: str

    def __init__(
        self,
        registry: ModelRegistry = DEFAULT_REGISTRY,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.registry = registry
        self.timeout = timeout
        self.http_client = http_client

    @abstractmethod
    def build_request(
        self,
        messages: Sequence[ChatMessage],
        model: ModelConfig,
        max_tokens: int,
        temperature: float,
        response_format: Optional[ResponseFormat] = None,
    ) -> Dict[str, Any]:
        """Provider-specific request body."""

    @abstractmethod
    async def send(self, payload: Dict[str, Any], model: ModelConfig, api_key: str) -> Dict[str, Any]:
        """Perform the network call and return the decoded JSON reply.

        Raises:
            ProviderError: On transport failure, non-2xx status or a
                reply that is not JSON
        """

    @abstractmethod
    def extract(self, data: Dict[str, Any]) -> Tuple[str, Optional[int], Optional[int]]:
        """Pull (text, input tokens, output tokens) out of a reply.

        Token counts are None when the provider did not report them.
        """

    def parse_response(
        self,
        data: Dict[str, Any],
        messages: Sequence[ChatMessage],
        model: ModelConfig,
    ) -> ProviderResult:
        """Normalize a reply, estimating any token counts the provider left out."""
        try:
            content, input_tokens, output_tokens = self.extract(data)
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise ProviderError(self.provider.value, f"Malformed {self.label} response: {e}") from e
        if input_tokens is None:
            input_tokens = estimate_tokens("".join(m.content for m in messages))
        if output_tokens is None:
            output_tokens = estimate_tokens(content)
        usage = TokenUsage(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            estimated_cost_usd=self.registry.estimate_cost(model.id, input_tokens, output_tokens),
        )
        return ProviderResult(content=content, usage=usage, raw=data)

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        model: ModelConfig,
        api_key: str,
        max_tokens: int,
        temperature: float,
        response_format: Optional[ResponseFormat] = None,
    ) -> ProviderResult:
        """Run one full call against the provider."""
        if not api_key:
            raise ProviderNotConfiguredError(self.provider.value, model.api_key_env)
        payload = self.build_request(messages, model, max_tokens, temperature, response_format)
        data = await self.send(payload, model, api_key)
        return self.parse_response(data, messages, model)

    async def _post_json(
        self,
        url: str,
        payload: Dict[str, Any],
        headers: Dict[str, str],
        params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """POST a JSON body with httpx and decode the reply."""
        try:
            if self.http_client is not None:
                response = await self.http_client.post(
                    url, json=payload, headers=headers, params=params, timeout=self.timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(url, json=payload, headers=headers, params=params)
        except httpx.HTTPError as e:
            raise ProviderError(self.provider.value, f"{self.label} request failed: {e}") from e

        if not response.is_success:
            raise ProviderResponseError(self.provider.value, self.label, response.status_code, response.text)
        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(self.provider.value, f"{self.label} returned invalid JSON: {e}") from e
