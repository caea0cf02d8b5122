"""
Shared types for the AI gateway.

Defines the task, plan and provider vocabularies and the normalized
request/response shapes every caller and adapter works with.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Union

from .token_counter import TokenUsage


class Provider(Enum):
    """Upstream model providers."""
    DEEPSEEK = "deepseek"
    GOOGLE = "google"
    ANTHROPIC = "anthropic"


class UserPlan(Enum):
    """Subscription tiers."""
    FREE = "free"
    PRO = "pro"


class TaskType(Enum):
    """Categories of AI-assisted operations."""
    RESEARCH = "research"
    OUTREACH = "outreach"
    SCORING = "scoring"
    SUMMARIZE = "summarize"
    COACH = "coach"
    TRANSLATE = "translate"
    DAILY_TASKS = "daily_tasks"
    FOLLOW_UP = "follow_up"
    FEEDBACK = "feedback"


class ResponseFormat(Enum):
    """Requested shape of the model output."""
    TEXT = "text"
    JSON = "json"


TaskLike = Union[TaskType, str]
PlanLike = Union[UserPlan, str]


def enum_value(value) -> str:
    """Return the plain string behind an enum member (or the string itself)."""
    return value.value if isinstance(value, Enum) else str(value)


@dataclass(frozen=True)
class ChatMessage:
    """One message of a conversation."""
    role: str  # "system", "user" or "assistant"
    content: str

    def __post_init__(self):
        if self.role not in ("system", "user", "assistant"):
            raise ValueError(f"Invalid message role: {self.role}")

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> "ChatMessage":
        return cls(role=data["role"], content=data["content"])


@dataclass
class AIRequest:
    """Normalized request submitted to the gateway."""
    task: TaskLike
    user_plan: PlanLike
    user_id: str
    messages: List[ChatMessage]
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    response_format: Optional[ResponseFormat] = None

    def __post_init__(self):
        if not self.user_id:
            raise ValueError("user_id is required and cannot be empty")
        if not self.messages:
            raise ValueError("messages is required and cannot be empty")

    @property
    def task_name(self) -> str:
        return enum_value(self.task)

    @property
    def plan_name(self) -> str:
        return enum_value(self.user_plan)


@dataclass(frozen=True)
class AIResponse:
    """Normalized gateway result."""
    content: str
    model: str
    provider: str
    usage: TokenUsage
    cached: bool
    latency_ms: int


@dataclass(frozen=True)
class QuotaStatus:
    """Snapshot of a user's daily quota for one task.

    ``limit`` and ``remaining`` are -1 when the plan is unlimited.
    """
    used: int
    limit: int
    remaining: int
    reset_at: datetime

    @property
    def unlimited(self) -> bool:
        return self.limit == -1

    @property
    def exhausted(self) -> bool:
        return not self.unlimited and self.remaining <= 0


@dataclass(frozen=True)
class ProviderResult:
    """Reply text and usage normalized by a provider adapter."""
    content: str
    usage: TokenUsage
    raw: Dict = field(default_factory=dict, compare=False, repr=False)
