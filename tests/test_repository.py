"""
Unit tests for the usage ledger.

Tests schema creation, event recording, filtering and summaries.
"""

import os
import tempfile
from datetime import datetime, timedelta, timezone

import pytest

from salesgrow_ai.storage.db import get_connection
from salesgrow_ai.storage.models import AIUsageEvent
from salesgrow_ai.storage.repository import UsageRepository


def make_event(task="coach", model="deepseek-chat", user_id="u1", cached=False, cost=0.002,
               age=timedelta(0), latency_ms=100):
    return AIUsageEvent(
        timestamp=datetime.now(timezone.utc) - age,
        user_id=user_id,
        task=task,
        model=model,
        provider="deepseek",
        input_tokens=0 if cached else 100,
        output_tokens=0 if cached else 20,
        total_tokens=0 if cached else 120,
        estimated_cost=0.0 if cached else cost,
        cached=cached,
        latency_ms=latency_ms,
    )


@pytest.fixture
def repository():
    with tempfile.TemporaryDirectory() as temp_dir:
        repo = UsageRepository(os.path.join(temp_dir, "ledger.db"))
        repo.initialize_schema()
        yield repo


class TestLedgerSchema:
    """Test ledger table creation."""

    def test_schema_creation(self, repository):
        conn = get_connection(repository.db_path)
        try:
            columns = [col[1] for col in conn.execute("PRAGMA table_info(ai_usage_event)").fetchall()]
        finally:
            conn.close()
        assert columns == [
            'id', 'timestamp', 'user_id', 'task', 'model', 'provider',
            'input_tokens', 'output_tokens', 'total_tokens', 'estimated_cost',
            'cached', 'latency_ms',
        ]

    def test_schema_is_idempotent(self, repository):
        repository.record(make_event())
        repository.initialize_schema()
        assert len(repository.get_recent_events()) == 1


class TestRecording:
    """Test recording and reading events."""

    def test_round_trip(self, repository):
        event = make_event(cached=True)
        repository.record(event)
        assert repository.get_recent_events() == [event]

    def test_newest_first(self, repository):
        repository.record(make_event(user_id="old", age=timedelta(hours=2)))
        repository.record(make_event(user_id="new"))
        assert [e.user_id for e in repository.get_recent_events()] == ["new", "old"]

    def test_filters(self, repository):
        repository.record(make_event(task="coach", user_id="u1"))
        repository.record(make_event(task="feedback", user_id="u1"))
        repository.record(make_event(task="coach", user_id="u2"))
        repository.record(make_event(task="coach", user_id="u1", age=timedelta(days=10)))

        assert len(repository.get_recent_events(task="coach")) == 3
        assert len(repository.get_recent_events(task="coach", user_id="u1")) == 2
        assert len(repository.get_recent_events(task="coach", user_id="u1", days=7)) == 1
        assert len(repository.get_recent_events(limit=2)) == 2

    def test_missing_table_raises(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = UsageRepository(os.path.join(temp_dir, "empty.db"))
            with pytest.raises(Exception, match="no such table"):
                repo.record(make_event())


class TestSummary:
    """Test per task/model totals."""

    def test_groups_and_orders_by_cost(self, repository):
        repository.record(make_event(task="coach", cost=0.002, latency_ms=100))
        repository.record(make_event(task="coach", cached=True, latency_ms=0))
        repository.record(make_event(task="feedback", model="claude-haiku-4-5-20251001", cost=0.01))
        repository.record(make_event(task="coach", cost=5.0, age=timedelta(days=60)))

        summary = repository.summarize(days=30)

        assert [(row["task"], row["model"]) for row in summary] == [
            ("feedback", "claude-haiku-4-5-20251001"),
            ("coach", "deepseek-chat"),
        ]
        coach = summary[1]
        assert coach["requests"] == 2
        assert coach["cache_hits"] == 1
        assert coach["total_tokens"] == 120
        assert coach["total_cost"] == pytest.approx(0.002)
        assert coach["avg_latency_ms"] == pytest.approx(50.0)

    def test_empty_ledger(self, repository):
        assert repository.summarize() == []
