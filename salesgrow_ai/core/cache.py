"""
Response caching.

Bounded, time-expiring cache of model replies keyed by a hash of the
model id and the message contents. When full, the oldest-inserted entry
is evicted (insertion order, not access order).
"""

import hashlib
import time
from typing import Callable, Dict, Iterable, Optional

from .types import ChatMessage
from ..storage.store import InMemoryStore, StateStore

CACHE_PREFIX = "ai_cache_"
DEFAULT_TTL_SECONDS = 300
DEFAULT_MAX_SIZE = 500


def make_cache_key(messages: Iterable[ChatMessage], model: str) -> str:
    """Hash a model id and the role:content pairs into a cache key."""
    content = "|".join(f"{m.role}:{m.content}" for m in messages)
    digest = hashlib.sha256(f"{model}:{content}".encode("utf-8")).hexdigest()
    return f"{CACHE_PREFIX}{digest}"


class ResponseCache:
    """Model replies cached on top of a ``StateStore``."""

    def __init__(
        self,
        store: Optional[StateStore] = None,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_size: int = DEFAULT_MAX_SIZE,
        clock: Callable[[], float] = time.time,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        if max_size <= 0:
            raise ValueError("max_size must be > 0")
        self.store = store if store is not None else InMemoryStore(clock=clock)
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._clock = clock

    def get(self, key: str) -> Optional[str]:
        """Cached text for ``key``; None on a miss or once the TTL has passed."""
        entry = self.store.get(key)
        if entry is None:
            return None
        return entry["value"]

    def set(self, key: str, value: str, model: str) -> None:
        """Cache ``value`` produced by ``model``, evicting the oldest entry if full."""
        created_at = self._clock()
        self.store.insert_bounded(
            key,
            {"value": value, "model": model, "created_at": created_at},
            prefix=CACHE_PREFIX,
            capacity=self.max_size,
            expires_at=created_at + self.ttl_seconds,
        )

    def clear(self) -> None:
        self.store.clear(CACHE_PREFIX)

    def stats(self) -> Dict[str, int]:
        return {"size": self.store.count(CACHE_PREFIX), "max_size": self.max_size}
