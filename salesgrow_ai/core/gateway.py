"""
AI gateway.

Routes a normalized request to the best available model for its task and
plan, enforcing daily quotas, serving identical requests from cache and
walking the fallback chain until one provider succeeds.

Request flow:
1. Quota check - fail fast with QUOTA_EXCEEDED, no provider contacted
2. Candidate models for (task, plan) - NO_MODEL when there are none
3. Cache lookup under the primary model - hits cost no quota
4. Fallback chain, strictly in order - first success is cached and counted
5. ALL_MODELS_FAILED with the last error once every candidate failed
"""

import time
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, Optional

import structlog

from .cache import ResponseCache, make_cache_key
from .models import DEFAULT_REGISTRY, ModelRegistry
from .quota import QuotaTracker
from .token_counter import TokenUsage
from .types import AIRequest, AIResponse, PlanLike, Provider, QuotaStatus, TaskLike
from ..config.loader import Settings, StoreBackend, load_settings
from ..providers import ProviderAdapter, ProviderError, ProviderNotConfiguredError, build_adapters
from ..storage.models import AIUsageEvent
from ..storage.repository import UsageRepository
from ..storage.store import InMemoryStore, SQLiteStore, StateStore

logger = structlog.get_logger(__name__)


class GatewayErrorCode(Enum):
    """Terminal gateway failures."""
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    NO_MODEL = "NO_MODEL"
    ALL_MODELS_FAILED = "ALL_MODELS_FAILED"


class AIGatewayError(Exception):
    """Raised when the gateway cannot produce a reply."""

    def __init__(self, code: GatewayErrorCode, message: str, reset_at: Optional[datetime] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.reset_at = reset_at

    def to_dict(self) -> Dict[str, str]:
        """Error envelope for API responses."""
        error = {"code": self.code.value, "message": self.message}
        if self.reset_at is not None:
            error["reset_at"] = self.reset_at.isoformat()
        return error


class AIGateway:
    """Quota-, cache- and fallback-aware router over the provider adapters.

    Args:
        settings: Gateway configuration and provider credentials
        registry: Models, routing chains and quota limits
        quota: Daily quota tracker
        cache: Response cache
        adapters: Adapter per provider
        usage_repository: Optional ledger every result is appended to
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        registry: ModelRegistry = DEFAULT_REGISTRY,
        quota: Optional[QuotaTracker] = None,
        cache: Optional[ResponseCache] = None,
        adapters: Optional[Dict[Provider, ProviderAdapter]] = None,
        usage_repository: Optional[UsageRepository] = None,
    ):
        self.settings = settings if settings is not None else Settings()
        self.registry = registry
        self.quota = quota if quota is not None else QuotaTracker(registry=registry)
        self.cache = cache if cache is not None else ResponseCache(
            ttl_seconds=self.settings.cache.ttl_seconds,
            max_size=self.settings.cache.max_size,
        )
        self.adapters = adapters if adapters is not None else build_adapters(
            registry=registry,
            timeout=self.settings.gateway.request_timeout_seconds,
        )
        self.usage_repository = usage_repository

    def check_quota(self, user_id: str, task: TaskLike, plan: PlanLike) -> QuotaStatus:
        return self.quota.check_quota(user_id, task, plan)

    def clear_cache(self) -> None:
        self.cache.clear()

    def get_cache_stats(self) -> Dict[str, int]:
        return self.cache.stats()

    def _quota_exceeded(self, request: AIRequest, reset_at: datetime) -> AIGatewayError:
        logger.info("gateway_quota_exceeded", user_id=request.user_id, task=request.task_name)
        return AIGatewayError(
            GatewayErrorCode.QUOTA_EXCEEDED,
            f"Daily quota exceeded for {request.task_name}. Resets at {reset_at.isoformat()}",
            reset_at=reset_at,
        )

    async def complete(self, request: AIRequest) -> AIResponse:
        """Serve one request.

        Raises:
            AIGatewayError: QUOTA_EXCEEDED, NO_MODEL or ALL_MODELS_FAILED
        """
        start = time.monotonic()
        task = request.task_name

        quota = self.quota.check_quota(request.user_id, request.task, request.user_plan)
        if quota.exhausted:
            raise self._quota_exceeded(request, quota.reset_at)

        models = self.registry.get_models_for_task(request.task, request.user_plan)
        if not models:
            raise AIGatewayError(GatewayErrorCode.NO_MODEL, f"No model available for task: {task}")

        # Keyed by the primary model even when a fallback ends up serving it
        primary = models[0]
        cache_key = make_cache_key(request.messages, primary)
        cached_content = self.cache.get(cache_key)
        if cached_content:
            primary_config = self.registry.get_model_config(primary)
            response = AIResponse(
                content=cached_content,
                model=primary,
                provider=primary_config.provider.value if primary_config else "",
                usage=TokenUsage.zero(),
                cached=True,
                latency_ms=_elapsed_ms(start),
            )
            logger.debug("gateway_cache_hit", task=task, model=primary)
            self._record(request, response)
            return response

        reservation = self.quota.try_reserve(request.user_id, request.task, request.user_plan)
        if reservation is None:
            # Another in-flight request took the last slot after our check
            raise self._quota_exceeded(request, quota.reset_at)

        succeeded = False
        last_error: Optional[Exception] = None
        try:
            for model_id in models:
                config = self.registry.get_model_config(model_id)
                if config is None:
                    last_error = ProviderError("", f"Unknown model: {model_id}")
                    continue

                api_key = self.settings.api_key(config.api_key_env)
                if not api_key:
                    last_error = ProviderNotConfiguredError(config.provider.value, config.api_key_env)
                    logger.debug("gateway_model_skipped", model=model_id, reason=str(last_error))
                    continue

                adapter = self.adapters.get(config.provider)
                if adapter is None:
                    last_error = ProviderError(config.provider.value, f"Unknown provider: {config.provider.value}")
                    continue

                max_tokens = request.max_tokens if request.max_tokens is not None else config.max_tokens
                temperature = (
                    request.temperature if request.temperature is not None
                    else self.settings.gateway.default_temperature
                )
                try:
                    result = await adapter.complete(
                        request.messages,
                        config,
                        api_key,
                        max_tokens=max_tokens,
                        temperature=temperature,
                        response_format=request.response_format,
                    )
                except ProviderError as e:
                    last_error = e
                    logger.warning(
                        "gateway_model_failed",
                        model=model_id,
                        provider=config.provider.value,
                        task=task,
                        error=str(e),
                    )
                    continue

                succeeded = True
                self.cache.set(cache_key, result.content, model_id)
                response = AIResponse(
                    content=result.content,
                    model=model_id,
                    provider=config.provider.value,
                    usage=result.usage,
                    cached=False,
                    latency_ms=_elapsed_ms(start),
                )
                self._record(request, response)
                return response
        finally:
            if not succeeded:
                self.quota.release(reservation)

        raise AIGatewayError(
            GatewayErrorCode.ALL_MODELS_FAILED,
            f"All models failed for task {task}. Last error: {last_error}",
        )

    def _record(self, request: AIRequest, response: AIResponse) -> None:
        if self.usage_repository is None:
            return
        self.usage_repository.record(AIUsageEvent(
            timestamp=datetime.now(timezone.utc),
            user_id=request.user_id,
            task=request.task_name,
            model=response.model,
            provider=response.provider,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            total_tokens=response.usage.total_tokens,
            estimated_cost=response.usage.estimated_cost_usd,
            cached=response.cached,
            latency_ms=response.latency_ms,
        ))


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def build_store(settings: Settings, clock: Callable[[], float] = time.time) -> StateStore:
    """State store selected by the storage settings."""
    if settings.storage.backend == StoreBackend.SQLITE:
        return SQLiteStore(settings.storage.db_path, clock=clock)
    return InMemoryStore(clock=clock)


def build_gateway(settings: Optional[Settings] = None, store: Optional[StateStore] = None) -> AIGateway:
    """Wire a gateway from settings, sharing one store for quota and cache."""
    settings = settings if settings is not None else load_settings()
    store = store if store is not None else build_store(settings)

    usage_repository = None
    if settings.storage.usage_ledger:
        usage_repository = UsageRepository(settings.storage.db_path)
        usage_repository.initialize_schema()

    return AIGateway(
        settings=settings,
        quota=QuotaTracker(store=store),
        cache=ResponseCache(
            store=store,
            ttl_seconds=settings.cache.ttl_seconds,
            max_size=settings.cache.max_size,
        ),
        usage_repository=usage_repository,
    )


# Process-wide gateway instance
_default_gateway: Optional[AIGateway] = None


def get_gateway() -> AIGateway:
    """Process-wide gateway, built from the environment on first use."""
    global _default_gateway
    if _default_gateway is None:
        _default_gateway = build_gateway()
    return _default_gateway


def set_gateway(gateway: Optional[AIGateway]) -> None:
    """Replace (or with None, reset) the process-wide gateway."""
    global _default_gateway
    _default_gateway = gateway


async def ai_gateway(request: AIRequest) -> AIResponse:
    """Serve ``request`` through the process-wide gateway."""
    return await get_gateway().complete(request)


def check_quota(user_id: str, task: TaskLike, plan: PlanLike) -> QuotaStatus:
    return get_gateway().check_quota(user_id, task, plan)


def clear_cache() -> None:
    get_gateway().clear_cache()


def get_cache_stats() -> Dict[str, int]:
    return get_gateway().get_cache_stats()
