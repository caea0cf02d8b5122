"""
Data models for storage layer.

Defines the records written to the usage ledger.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class AIUsageEvent:
    """Immutable record of one gateway result.

    Append-only: cached replies are recorded too, with zero tokens and
    cost, so hit rates can be read off the ledger.
    """
    timestamp: datetime
    user_id: str
    task: str
    model: str
    provider: str
    input_tokens: int
    output_tokens: int
    total_tokens: int
    estimated_cost: float
    cached: bool
    latency_ms: int
