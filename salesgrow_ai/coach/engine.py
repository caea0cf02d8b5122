"""
Coach session engine.

Session lifecycle:
1. start   - active, turn 1, the client's opening line as the first message
2. message - salesperson turn plus client reply; completes at max turns
3. feedback - forces completed and scores the transcript
4. cleanup - sweeps sessions past a maximum age, whatever their status

Sessions live in a ``StateStore`` under ``coach_session:<id>``. Calls on
the same session must be serialized by the caller.
"""

import time
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import structlog

from .errors import SessionNotFoundError, SessionOwnershipError, SessionStateError, FeedbackParseError
from .feedback import CoachFeedback, parse_feedback
from .personality import get_encouragement
from .prompts import (
    FEEDBACK_MAX_TOKENS,
    FEEDBACK_TEMPERATURE,
    ROLEPLAY_MAX_TOKENS,
    ROLEPLAY_TEMPERATURE,
    build_feedback_messages,
    build_roleplay_prompt,
)
from .scenarios import get_opening_line, get_scenario
from .scoring import calculate_weighted_score, calculate_xp_reward
from ..config.loader import Settings
from ..core.gateway import AIGateway, get_gateway
from ..core.types import AIRequest, ChatMessage, PlanLike, ResponseFormat, TaskType, UserPlan
from ..storage.store import InMemoryStore, StateStore

logger = structlog.get_logger(__name__)

SESSION_PREFIX = "coach_session:"
DEMO_USER_ID = "demo-user"


class SessionStatus(Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


@dataclass
class CoachSession:
    """State of one roleplay session."""
    session_id: str
    user_id: str
    scenario: str
    locale: str
    culture: str
    messages: List[ChatMessage]
    turn_count: int
    max_turns: int
    started_at: float
    status: SessionStatus = SessionStatus.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    @property
    def initial_message(self) -> str:
        return self.messages[0].content

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "user_id": self.user_id,
            "scenario": self.scenario,
            "locale": self.locale,
            "culture": self.culture,
            "messages": [m.to_dict() for m in self.messages],
            "turn_count": self.turn_count,
            "max_turns": self.max_turns,
            "started_at": self.started_at,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CoachSession":
        return cls(
            session_id=data["session_id"],
            user_id=data["user_id"],
            scenario=data["scenario"],
            locale=data["locale"],
            culture=data["culture"],
            messages=[ChatMessage.from_dict(m) for m in data["messages"]],
            turn_count=data["turn_count"],
            max_turns=data["max_turns"],
            started_at=data["started_at"],
            status=SessionStatus(data["status"]),
        )


@dataclass(frozen=True)
class MessageResult:
    """Client reply to one salesperson turn."""
    reply: str
    session: CoachSession = field(repr=False)
    is_complete: bool = False


class CoachEngine:
    """Runs roleplay sessions through the AI gateway.

    Args:
        gateway: Gateway used for replies and feedback; the process-wide
            gateway when omitted
        store: Where sessions are kept
        settings: Coach limits and defaults
        clock: Epoch-seconds clock
        id_factory: Generates session ids
    """

    def __init__(
        self,
        gateway: Optional[AIGateway] = None,
        store: Optional[StateStore] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.time,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self._gateway = gateway
        self.store = store if store is not None else InMemoryStore(clock=clock)
        self.settings = settings if settings is not None else Settings()
        self._clock = clock
        self._id_factory = id_factory

    @property
    def gateway(self) -> AIGateway:
        if self._gateway is None:
            self._gateway = get_gateway()
        return self._gateway

    def _key(self, session_id: str) -> str:
        return f"{SESSION_PREFIX}{session_id}"

    def _save(self, session: CoachSession) -> None:
        self.store.set(self._key(session.session_id), session.to_dict())

    def _load(self, session_id: str, user_id: Optional[str] = None) -> CoachSession:
        data = self.store.get(self._key(session_id))
        if data is None:
            raise SessionNotFoundError(session_id)
        session = CoachSession.from_dict(data)
        if user_id is not None and session.user_id != user_id:
            raise SessionOwnershipError(session_id, user_id)
        return session

    def start_session(
        self,
        scenario: str,
        locale: Optional[str] = None,
        culture: Optional[str] = None,
        user_id: str = DEMO_USER_ID,
        session_id: Optional[str] = None,
    ) -> CoachSession:
        """Open a session with the client's opening line as turn 1.

        Unknown scenarios are allowed: they get a generic client role, the
        generic greeting and the default turn limit.
        """
        coach = self.settings.coach
        locale = locale or coach.default_locale
        culture = culture or coach.default_culture
        session_id = session_id or self._id_factory()
        if self.store.get(self._key(session_id)) is not None:
            raise SessionStateError(f"Session already exists: {session_id}")

        config = get_scenario(scenario)
        session = CoachSession(
            session_id=session_id,
            user_id=user_id,
            scenario=scenario,
            locale=locale,
            culture=culture,
            messages=[ChatMessage(role="assistant", content=get_opening_line(scenario, locale))],
            turn_count=1,
            max_turns=config.max_turns if config else coach.default_max_turns,
            started_at=self._clock(),
        )
        self._save(session)
        logger.info(
            "coach_session_started",
            session_id=session_id,
            user_id=user_id,
            scenario=scenario,
            locale=locale,
            culture=culture,
        )
        return session

    def get_session(self, session_id: str, user_id: Optional[str] = None) -> CoachSession:
        """Load a session, checking ownership when ``user_id`` is given."""
        return self._load(session_id, user_id)

    async def process_user_message(
        self,
        session_id: str,
        user_id: str,
        text: str,
        user_plan: PlanLike = UserPlan.FREE,
    ) -> MessageResult:
        """Send one salesperson turn and get the client's reply.

        The session is only updated once the gateway has replied, so a
        failed call leaves it untouched.

        Raises:
            SessionNotFoundError, SessionOwnershipError: Unknown or foreign session
            SessionStateError: Session is no longer active
            AIGatewayError: The gateway could not produce a reply
        """
        if not text or not text.strip():
            raise ValueError("message is required and cannot be empty")
        session = self._load(session_id, user_id)
        if not session.is_active:
            raise SessionStateError(f"Session {session_id} is {session.status.value}, not active")

        transcript = session.messages + [ChatMessage(role="user", content=text)]
        turn_count = session.turn_count + 1
        system_prompt = build_roleplay_prompt(
            session.scenario, session.culture, session.locale, turn_count, session.max_turns
        )
        window = transcript[-self.settings.coach.max_history_messages:]

        response = await self.gateway.complete(AIRequest(
            task=TaskType.COACH,
            user_plan=user_plan,
            user_id=user_id,
            messages=[ChatMessage(role="system", content=system_prompt)] + window,
            temperature=ROLEPLAY_TEMPERATURE,
            max_tokens=ROLEPLAY_MAX_TOKENS,
        ))

        is_complete = turn_count >= session.max_turns
        session = replace(
            session,
            messages=transcript + [ChatMessage(role="assistant", content=response.content)],
            turn_count=turn_count,
            status=SessionStatus.COMPLETED if is_complete else SessionStatus.ACTIVE,
        )
        self._save(session)
        return MessageResult(reply=response.content, session=session, is_complete=is_complete)

    async def generate_feedback(
        self,
        session_id: str,
        user_id: str,
        user_plan: PlanLike = UserPlan.FREE,
    ) -> CoachFeedback:
        """Complete the session and score its transcript.

        The model's total score is replaced by the category-weighted score,
        and the XP award is derived from it.

        Raises:
            FeedbackParseError: The scoring reply could not be parsed
            AIGatewayError: The gateway could not produce a reply
        """
        session = self._load(session_id, user_id)
        if session.status != SessionStatus.COMPLETED:
            session = replace(session, status=SessionStatus.COMPLETED)
            self._save(session)

        response = await self.gateway.complete(AIRequest(
            task=TaskType.FEEDBACK,
            user_plan=user_plan,
            user_id=user_id,
            messages=build_feedback_messages(session.scenario, session.messages, session.locale),
            temperature=FEEDBACK_TEMPERATURE,
            max_tokens=FEEDBACK_MAX_TOKENS,
            response_format=ResponseFormat.JSON,
        ))

        try:
            feedback = parse_feedback(response.content)
        except FeedbackParseError as e:
            logger.error(
                "coach_feedback_parse_failed",
                session_id=session_id,
                model=response.model,
                error=str(e),
                preview=response.content[:200],
            )
            raise

        config = get_scenario(session.scenario)
        total = calculate_weighted_score(feedback, config.category if config else None)
        return replace(
            feedback,
            total_score=total,
            xp_earned=calculate_xp_reward(total),
            encouragement=feedback.encouragement or get_encouragement(total, session.locale),
        )

    def end_session(self, session_id: str, user_id: str, abandon: bool = False) -> CoachSession:
        """Close a session without scoring it.

        Raises:
            SessionStateError: When abandoning a session that is not active
        """
        session = self._load(session_id, user_id)
        if abandon:
            if not session.is_active:
                raise SessionStateError(f"Session {session_id} is {session.status.value}, not active")
            session = replace(session, status=SessionStatus.ABANDONED)
        else:
            session = replace(session, status=SessionStatus.COMPLETED)
        self._save(session)
        return session

    def get_session_duration(self, session_id: str) -> int:
        """Whole seconds since the session started."""
        session = self._load(session_id)
        return int(self._clock() - session.started_at)

    def cleanup_sessions(self, max_age_seconds: Optional[float] = None) -> int:
        """Remove sessions older than ``max_age_seconds``; returns how many."""
        if max_age_seconds is None:
            max_age_seconds = self.settings.coach.session_max_age_seconds
        now = self._clock()
        removed = 0
        for key in self.store.keys(SESSION_PREFIX):
            data = self.store.get(key)
            if data is not None and now - data["started_at"] > max_age_seconds:
                if self.store.delete(key):
                    removed += 1
        if removed:
            logger.info("coach_sessions_swept", removed=removed, max_age_seconds=max_age_seconds)
        return removed


# Process-wide engine instance
_default_engine: Optional[CoachEngine] = None


def get_engine() -> CoachEngine:
    """Process-wide engine, sharing the process-wide gateway's store."""
    global _default_engine
    if _default_engine is None:
        gateway = get_gateway()
        _default_engine = CoachEngine(gateway=gateway, store=gateway.cache.store, settings=gateway.settings)
    return _default_engine


def set_engine(engine: Optional[CoachEngine]) -> None:
    global _default_engine
    _default_engine = engine


def start_coach_session(
    session_id: str,
    user_id: str,
    scenario: str,
    locale: Optional[str] = None,
    culture: Optional[str] = None,
) -> CoachSession:
    return get_engine().start_session(scenario, locale, culture, user_id=user_id, session_id=session_id)


async def process_user_message(
    session_id: str,
    user_id: str,
    text: str,
    user_plan: PlanLike = UserPlan.FREE,
) -> MessageResult:
    return await get_engine().process_user_message(session_id, user_id, text, user_plan)


async def generate_feedback(session_id: str, user_id: str, user_plan: PlanLike = UserPlan.FREE) -> CoachFeedback:
    return await get_engine().generate_feedback(session_id, user_id, user_plan)


def get_session(session_id: str, user_id: Optional[str] = None) -> CoachSession:
    return get_engine().get_session(session_id, user_id)


def end_session(session_id: str, user_id: str, abandon: bool = False) -> CoachSession:
    return get_engine().end_session(session_id, user_id, abandon)


def get_session_duration(session_id: str) -> int:
    return get_engine().get_session_duration(session_id)


def cleanup_sessions(max_age_seconds: Optional[float] = None) -> int:
    return get_engine().cleanup_sessions(max_age_seconds)
