"""
Daily quota tracking.

Counts calls per (user, task, UTC day). Counters expire at the next UTC
midnight, so a stale counter reads as zero usage without an explicit reset.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from .models import DEFAULT_REGISTRY, UNLIMITED, ModelRegistry
from .types import PlanLike, QuotaStatus, TaskLike, enum_value
from ..storage.store import InMemoryStore, StateStore

QUOTA_PREFIX = "quota:"


@dataclass(frozen=True)
class QuotaReservation:
    """A quota slot taken ahead of a provider call.

    ``key`` is None for unlimited plans, where nothing is counted.
    """
    key: Optional[str]
    expires_at: float


def next_reset_time(now: datetime) -> datetime:
    """Midnight UTC of the day after ``now``."""
    now = now.astimezone(timezone.utc)
    tomorrow = now.date() + timedelta(days=1)
    return datetime(tomorrow.year, tomorrow.month, tomorrow.day, tzinfo=timezone.utc)


class QuotaTracker:
    """Per-user daily call counters on top of a ``StateStore``.

    Args:
        store: Backing store for the counters
        registry: Source of the plan/task limits
        clock: Epoch-seconds clock
    """

    def __init__(
        self,
        store: Optional[StateStore] = None,
        registry: ModelRegistry = DEFAULT_REGISTRY,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store if store is not None else InMemoryStore(clock=clock)
        self.registry = registry
        self._clock = clock

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self._clock(), tz=timezone.utc)

    def _key(self, user_id: str, task: TaskLike, now: datetime) -> str:
        return f"{QUOTA_PREFIX}{user_id}:{enum_value(task)}:{now.date().isoformat()}"

    def check_quota(self, user_id: str, task: TaskLike, plan: PlanLike) -> QuotaStatus:
        """Report usage and remaining calls for today.

        Unlimited plans report ``remaining=-1`` and are never counted.
        """
        now = self._now()
        reset_at = next_reset_time(now)
        limit = self.registry.get_quota_limit(plan, task)
        if limit == UNLIMITED:
            return QuotaStatus(used=0, limit=UNLIMITED, remaining=UNLIMITED, reset_at=reset_at)

        used = self.store.get(self._key(user_id, task, now)) or 0
        return QuotaStatus(
            used=used,
            limit=limit,
            remaining=max(0, limit - used),
            reset_at=reset_at,
        )

    def increment_quota(self, user_id: str, task: TaskLike) -> int:
        """Unconditionally count one call for today; returns the new count."""
        now = self._now()
        return self.store.increment(
            self._key(user_id, task, now),
            expires_at=next_reset_time(now).timestamp(),
        )

    def try_reserve(self, user_id: str, task: TaskLike, plan: PlanLike) -> Optional[QuotaReservation]:
        """Atomically take one slot of today's quota.

        Returns:
            The reservation, or None when the limit is already reached
        """
        now = self._now()
        expires_at = next_reset_time(now).timestamp()
        limit = self.registry.get_quota_limit(plan, task)
        if limit == UNLIMITED:
            return QuotaReservation(key=None, expires_at=expires_at)

        key = self._key(user_id, task, now)
        if self.store.increment(key, limit=limit, expires_at=expires_at) is None:
            return None
        return QuotaReservation(key=key, expires_at=expires_at)

    def release(self, reservation: QuotaReservation) -> None:
        """Give back a slot whose call did not succeed."""
        if reservation.key is None:
            return
        self.store.increment(reservation.key, amount=-1, expires_at=reservation.expires_at)

    def reset(self) -> int:
        """Drop every counter."""
        return self.store.clear(QUOTA_PREFIX)
