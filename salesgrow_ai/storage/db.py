"""
Database connection management.

Provides SQLite connections for the usage ledger and the shared state store.
"""

import sqlite3
from pathlib import Path

DEFAULT_DB_PATH = "salesgrow_ai.db"


def get_connection(db_path: str = DEFAULT_DB_PATH, timeout: float = 5.0) -> sqlite3.Connection:
    """Create and return a SQLite connection with foreign keys enabled.

    Args:
        db_path: Path to SQLite database file
        timeout: Seconds to wait on a locked database before failing

    Returns:
        SQLite connection with foreign key constraints enabled
    """
    path = Path(db_path)
    conn = sqlite3.connect(str(path), timeout=timeout)
    conn.execute("PRAGMA foreign_keys = ON")
    return conn
