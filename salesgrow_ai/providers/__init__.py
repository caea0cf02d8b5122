"""
Provider adapters for the AI gateway.

One adapter per upstream provider, selected by registry lookup.
"""

from typing import Dict, Optional

import httpx

from ..core.models import DEFAULT_REGISTRY, ModelRegistry
from ..core.types import Provider
from .anthropic import AnthropicAdapter
from .base import (
    DEFAULT_TIMEOUT_SECONDS,
    ProviderAdapter,
    ProviderError,
    ProviderNotConfiguredError,
    ProviderResponseError,
)
from .deepseek import DeepSeekAdapter
from .gemini import GeminiAdapter

ADAPTER_CLASSES = {
    Provider.DEEPSEEK: DeepSeekAdapter,
    Provider.GOOGLE: GeminiAdapter,
    Provider.ANTHROPIC: AnthropicAdapter,
}


def build_adapters(
    registry: ModelRegistry = DEFAULT_REGISTRY,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Dict[Provider, ProviderAdapter]:
    """One adapter instance per provider."""
    return {
        provider: cls(registry=registry, timeout=timeout, http_client=http_client)
        for provider, cls in ADAPTER_CLASSES.items()
    }


__all__ = [
    "AnthropicAdapter",
    "DeepSeekAdapter",
    "GeminiAdapter",
    "ProviderAdapter",
    "ProviderError",
    "ProviderNotConfiguredError",
    "ProviderResponseError",
    "build_adapters",
]
