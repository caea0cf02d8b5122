"""
Model registry, routing policy and quota policy.

Static catalog of the upstream models, the per-task fallback chains for
each subscription plan and the daily call limits. Nothing here is mutated
at runtime.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, FrozenSet, List, Optional, Tuple

from .types import PlanLike, Provider, TaskLike, TaskType, UserPlan, enum_value

UNLIMITED = -1

ALL_TASKS: FrozenSet[str] = frozenset(t.value for t in TaskType)


@dataclass(frozen=True)
class ModelConfig:
    """Descriptor of one upstream model."""
    id: str
    provider: Provider
    display_name: str
    api_key_env: str
    endpoint: str
    max_tokens: int
    input_price_per_million: Decimal
    output_price_per_million: Decimal
    capabilities: FrozenSet[str]

    def __post_init__(self):
        if self.max_tokens <= 0:
            raise ValueError("max_tokens must be > 0")
        if self.input_price_per_million < 0 or self.output_price_per_million < 0:
            raise ValueError("prices cannot be negative")

    def supports(self, task: TaskLike) -> bool:
        return enum_value(task) in self.capabilities


@dataclass(frozen=True)
class TaskModelMapping:
    """Ordered candidate models for one task, per plan (first = preferred)."""
    task: str
    free: Tuple[str, ...]
    pro: Tuple[str, ...]


@dataclass(frozen=True)
class ModelRegistry:
    """Models, task routing and quota limits bundled as one policy."""
    models: Dict[str, ModelConfig]
    task_mappings: Dict[str, TaskModelMapping]
    quota_limits: Dict[Tuple[str, str], int] = field(default_factory=dict)

    def get_model_config(self, model_id: str) -> Optional[ModelConfig]:
        """Look up a model descriptor; None when the model is unknown."""
        return self.models.get(model_id)

    def get_models_for_task(self, task: TaskLike, plan: PlanLike) -> List[str]:
        """Ordered candidate model ids for a task and plan.

        Returns an empty list for an unknown task. Any plan other than
        ``pro`` routes through the free chain.
        """
        mapping = self.task_mappings.get(enum_value(task))
        if mapping is None:
            return []
        chain = mapping.pro if enum_value(plan) == UserPlan.PRO.value else mapping.free
        return list(chain)

    def get_quota_limit(self, plan: PlanLike, task: TaskLike) -> int:
        """Daily call limit, -1 for unlimited and 0 when nothing is configured."""
        return self.quota_limits.get((enum_value(plan), enum_value(task)), 0)

    def estimate_cost(self, model_id: str, input_tokens: int, output_tokens: int) -> float:
        """Estimated USD cost of a call; 0 for an unknown model."""
        config = self.models.get(model_id)
        if config is None:
            return 0.0
        million = Decimal(1_000_000)
        input_cost = Decimal(input_tokens) / million * config.input_price_per_million
        output_cost = Decimal(output_tokens) / million * config.output_price_per_million
        return float(input_cost + output_cost)


def _model(model_id, provider, display_name, api_key_env, endpoint, max_tokens,
           input_price, output_price, capabilities) -> ModelConfig:
    return ModelConfig(
        id=model_id,
        provider=provider,
        display_name=display_name,
        api_key_env=api_key_env,
        endpoint=endpoint,
        max_tokens=max_tokens,
        input_price_per_million=Decimal(input_price),
        output_price_per_million=Decimal(output_price),
        capabilities=frozenset(capabilities),
    )


_BASIC_TASKS = ["research", "outreach", "scoring", "summarize", "translate", "daily_tasks", "follow_up"]

MODEL_CONFIGS: Dict[str, ModelConfig] = {
    config.id: config for config in (
        _model(
            "deepseek-chat", Provider.DEEPSEEK, "DeepSeek Chat", "DEEPSEEK_API_KEY",
            "https://api.deepseek.com/v1", 8192, "0.14", "0.28", _BASIC_TASKS,
        ),
        _model(
            "gemini-2.0-flash", Provider.GOOGLE, "Gemini 2.0 Flash", "GOOGLE_AI_API_KEY",
            "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.0-flash:generateContent",
            8192, "0.10", "0.40", _BASIC_TASKS,
        ),
        _model(
            "claude-haiku-4-5-20251001", Provider.ANTHROPIC, "Claude Haiku 4.5", "ANTHROPIC_API_KEY",
            "https://api.anthropic.com/v1/messages", 8192, "0.80", "4.00", ALL_TASKS,
        ),
        _model(
            "claude-sonnet-4-6", Provider.ANTHROPIC, "Claude Sonnet 4.6", "ANTHROPIC_API_KEY",
            "https://api.anthropic.com/v1/messages", 16384, "3.00", "15.00", ALL_TASKS,
        ),
    )
}

_HAIKU = "claude-haiku-4-5-20251001"
_SONNET = "claude-sonnet-4-6"
_GEMINI = "gemini-2.0-flash"
_DEEPSEEK = "deepseek-chat"

# Order matters: the first entry is preferred, the rest form the fallback chain
TASK_MODEL_MAPPINGS: Dict[str, TaskModelMapping] = {
    mapping.task: mapping for mapping in (
        TaskModelMapping("research", free=(_GEMINI, _DEEPSEEK), pro=(_HAIKU, _GEMINI)),
        TaskModelMapping("outreach", free=(_DEEPSEEK, _GEMINI), pro=(_SONNET, _HAIKU)),
        TaskModelMapping("scoring", free=(_GEMINI, _DEEPSEEK), pro=(_HAIKU, _GEMINI)),
        TaskModelMapping("summarize", free=(_DEEPSEEK, _GEMINI), pro=(_HAIKU, _DEEPSEEK)),
        TaskModelMapping("coach", free=(_DEEPSEEK, _GEMINI), pro=(_SONNET, _HAIKU)),
        TaskModelMapping("translate", free=(_GEMINI, _DEEPSEEK), pro=(_HAIKU, _GEMINI)),
        TaskModelMapping("daily_tasks", free=(_GEMINI, _DEEPSEEK), pro=(_HAIKU, _GEMINI)),
        TaskModelMapping("follow_up", free=(_DEEPSEEK, _GEMINI), pro=(_HAIKU, _DEEPSEEK)),
        TaskModelMapping("feedback", free=(_DEEPSEEK, _GEMINI), pro=(_SONNET, _HAIKU)),
    )
}

_FREE_DAILY_LIMITS = {
    "research": 5,
    "outreach": 10,
    "scoring": 10,
    "summarize": 3,
    "coach": 2,
    "translate": 20,
    "daily_tasks": 3,
    "follow_up": 5,
    "feedback": 2,
}

QUOTA_LIMITS: Dict[Tuple[str, str], int] = {
    **{("free", task): limit for task, limit in _FREE_DAILY_LIMITS.items()},
    **{("pro", task): UNLIMITED for task in _FREE_DAILY_LIMITS},
}

DEFAULT_REGISTRY = ModelRegistry(
    models=MODEL_CONFIGS,
    task_mappings=TASK_MODEL_MAPPINGS,
    quota_limits=QUOTA_LIMITS,
)


def get_model_config(model_id: str) -> Optional[ModelConfig]:
    """Look up a model in the default registry."""
    return DEFAULT_REGISTRY.get_model_config(model_id)


def get_models_for_task(task: TaskLike, plan: PlanLike) -> List[str]:
    """Candidate chain for a task and plan in the default registry."""
    return DEFAULT_REGISTRY.get_models_for_task(task, plan)


def get_quota_limit(plan: PlanLike, task: TaskLike) -> int:
    """Daily limit for a plan and task in the default registry."""
    return DEFAULT_REGISTRY.get_quota_limit(plan, task)


def estimate_cost(model_id: str, input_tokens: int, output_tokens: int) -> float:
    """Estimated USD cost of a call against the default registry prices."""
    return DEFAULT_REGISTRY.estimate_cost(model_id, input_tokens, output_tokens)
