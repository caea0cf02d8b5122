"""
Repository pattern for the usage ledger.

Handles the append-only ``ai_usage_event`` table and the summaries read
from it.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from .db import DEFAULT_DB_PATH, get_connection
from .models import AIUsageEvent

_COLUMNS = """timestamp, user_id, task, model, provider, input_tokens,
              output_tokens, total_tokens, estimated_cost, cached, latency_ms"""


def _row_to_event(row) -> AIUsageEvent:
    return AIUsageEvent(
        timestamp=datetime.fromisoformat(row[0]),
        user_id=row[1],
        task=row[2],
        model=row[3],
        provider=row[4],
        input_tokens=row[5],
        output_tokens=row[6],
        total_tokens=row[7],
        estimated_cost=row[8],
        cached=bool(row[9]),
        latency_ms=row[10],
    )


class UsageRepository:
    """Repository for recording and summarizing gateway usage.

    Each call opens and closes its own connection, so one instance can be
    shared by concurrent request handlers.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        self.db_path = db_path

    def initialize_schema(self) -> None:
        """Create the ai_usage_event table if it doesn't exist.

        No UPDATE or DELETE operations are ever performed on this table.
        """
        conn = get_connection(self.db_path)
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS ai_usage_event (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    task TEXT NOT NULL,
                    model TEXT NOT NULL,
                    provider TEXT NOT NULL,
                    input_tokens INTEGER NOT NULL,
                    output_tokens INTEGER NOT NULL,
                    total_tokens INTEGER NOT NULL,
                    estimated_cost REAL NOT NULL,
                    cached INTEGER NOT NULL DEFAULT 0,
                    latency_ms INTEGER NOT NULL DEFAULT 0
                )
            """)
            conn.commit()
        finally:
            conn.close()

    def record(self, event: AIUsageEvent) -> None:
        """Append one event to the ledger."""
        conn = get_connection(self.db_path)
        try:
            conn.execute(f"""
                INSERT INTO ai_usage_event ({_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                event.timestamp.isoformat(),
                event.user_id,
                event.task,
                event.model,
                event.provider,
                event.input_tokens,
                event.output_tokens,
                event.total_tokens,
                event.estimated_cost,
                int(event.cached),
                event.latency_ms,
            ))
            conn.commit()
        finally:
            conn.close()

    def get_recent_events(
        self,
        task: Optional[str] = None,
        user_id: Optional[str] = None,
        days: Optional[int] = None,
        limit: int = 1000,
    ) -> List[AIUsageEvent]:
        """Recent events, newest first, with optional filters."""
        conn = get_connection(self.db_path)
        try:
            query = f"SELECT {_COLUMNS} FROM ai_usage_event"
            params: list = []
            conditions = []

            if task:
                conditions.append("task = ?")
                params.append(task)
            if user_id:
                conditions.append("user_id = ?")
                params.append(user_id)
            if days is not None:
                cutoff = (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()
                conditions.append("timestamp >= ?")
                params.append(cutoff)

            if conditions:
                query += " WHERE " + " AND ".join(conditions)
            query += " ORDER BY timestamp DESC, id DESC LIMIT ?"
            params.append(limit)

            return [_row_to_event(row) for row in conn.execute(query, params).fetchall()]
        finally:
            conn.close()

    def summarize(self, days: int = 30) -> List[Dict[str, object]]:
        """Per task/model totals for the last ``days`` days."""
        conn = get_connection(self.db_path)
        try:
            cutoff = (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()
            rows = conn.execute("""
                SELECT
                    task,
                    model,
                    COUNT(*) AS requests,
                    SUM(cached) AS cache_hits,
                    SUM(total_tokens) AS total_tokens,
                    SUM(estimated_cost) AS total_cost,
                    AVG(latency_ms) AS avg_latency_ms
                FROM ai_usage_event
                WHERE timestamp >= ?
                GROUP BY task, model
                ORDER BY total_cost DESC, task, model
            """, (cutoff,)).fetchall()

            return [
                {
                    "task": row[0],
                    "model": row[1],
                    "requests": row[2],
                    "cache_hits": row[3] or 0,
                    "total_tokens": row[4] or 0,
                    "total_cost": float(row[5] or 0),
                    "avg_latency_ms": float(row[6] or 0),
                }
                for row in rows
            ]
        finally:
            conn.close()
