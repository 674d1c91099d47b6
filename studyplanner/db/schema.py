"""
Database schema definition for the study planner.

This module contains the SQL schema for the SQLite database that persists
sessions, categories, goals, Pomodoro phases and focus-time buckets.
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, Optional

# Database schema version
SCHEMA_VERSION = 1

CREATE_SESSIONS_TABLE = """
CREATE TABLE IF NOT EXISTS sessions (
    id TEXT PRIMARY KEY,
    position INTEGER NOT NULL,  -- Insertion order
    title TEXT NOT NULL,
    description TEXT,
    start_time TEXT,  -- ISO format local datetime
    end_time TEXT,  -- ISO format local datetime
    category_id TEXT NOT NULL,  -- References categories.id
    priority TEXT NOT NULL DEFAULT 'medium',
    is_completed BOOLEAN NOT NULL DEFAULT 0,
    completed_at TEXT,
    associated_task_ids TEXT,  -- JSON array of task ids
    pomodoro_phase_ids TEXT,  -- JSON array of phase ids
    notes TEXT,
    pomodoro_count INTEGER NOT NULL DEFAULT 0,
    completed_pomodoros INTEGER NOT NULL DEFAULT 0,
    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""

CREATE_CATEGORIES_TABLE = """
CREATE TABLE IF NOT EXISTS categories (
    id TEXT PRIMARY KEY,
    position INTEGER NOT NULL,
    name TEXT NOT NULL,
    color TEXT NOT NULL
);
"""

CREATE_GOALS_TABLE = """
CREATE TABLE IF NOT EXISTS goals (
    id TEXT PRIMARY KEY,
    position INTEGER NOT NULL,
    title TEXT NOT NULL,
    category_id TEXT NOT NULL,
    target_hours REAL NOT NULL,
    current_hours REAL NOT NULL DEFAULT 0,
    start_date TEXT NOT NULL,
    end_date TEXT NOT NULL,
    is_completed BOOLEAN NOT NULL DEFAULT 0
);
"""

CREATE_PHASES_TABLE = """
CREATE TABLE IF NOT EXISTS pomodoro_phases (
    id TEXT PRIMARY KEY,
    task_id TEXT,
    task_name TEXT,
    phase_type TEXT NOT NULL,
    duration INTEGER NOT NULL,  -- Seconds
    started_at TEXT NOT NULL,
    completed_at TEXT
);
"""

CREATE_FOCUS_DAILY_TABLE = """
CREATE TABLE IF NOT EXISTS focus_daily (
    day TEXT PRIMARY KEY,  -- YYYY-MM-DD local date
    sessions INTEGER NOT NULL DEFAULT 0,
    focus_minutes REAL NOT NULL DEFAULT 0
);
"""

CREATE_APP_STATE_TABLE = """
CREATE TABLE IF NOT EXISTS app_state (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL  -- JSON encoded
);
"""

CREATE_SCHEMA_VERSION_TABLE = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""

# Indexes for better query performance
CREATE_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_sessions_start_time ON sessions(start_time);",
    "CREATE INDEX IF NOT EXISTS idx_sessions_category_id ON sessions(category_id);",
    "CREATE INDEX IF NOT EXISTS idx_goals_category_id ON goals(category_id);",
    "CREATE INDEX IF NOT EXISTS idx_phases_completed_at ON pomodoro_phases(completed_at);",
]

CREATE_TRIGGERS = [
    """
    CREATE TRIGGER IF NOT EXISTS update_sessions_timestamp
    AFTER UPDATE ON sessions
    BEGIN
        UPDATE sessions SET updated_at = CURRENT_TIMESTAMP WHERE id = NEW.id;
    END;
    """,
]


class DatabaseManager:
    """Manages database connections and schema operations."""

    def __init__(self, db_path: Path):
        """Initialize database manager with the given database path."""
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection with proper cleanup."""
        conn = sqlite3.connect(str(self.db_path))
        try:
            conn.execute("PRAGMA journal_mode = WAL")
            conn.row_factory = sqlite3.Row
            yield conn
        finally:
            conn.close()

    def initialize_database(self) -> None:
        """Initialize the database with the current schema."""
        with self.get_connection() as conn:
            conn.execute(CREATE_SCHEMA_VERSION_TABLE)

            if self._get_schema_version(conn) is None:
                self._create_tables(conn)
                self._set_schema_version(conn, SCHEMA_VERSION)

            conn.commit()

    def _create_tables(self, conn: sqlite3.Connection) -> None:
        """Create all database tables."""
        for table_sql in (
            CREATE_SESSIONS_TABLE,
            CREATE_CATEGORIES_TABLE,
            CREATE_GOALS_TABLE,
            CREATE_PHASES_TABLE,
            CREATE_FOCUS_DAILY_TABLE,
            CREATE_APP_STATE_TABLE,
        ):
            conn.execute(table_sql)

        for index_sql in CREATE_INDEXES:
            conn.execute(index_sql)

        for trigger_sql in CREATE_TRIGGERS:
            conn.execute(trigger_sql)

    def _get_schema_version(self, conn: sqlite3.Connection) -> Optional[int]:
        """Get the current schema version."""
        try:
            cursor = conn.execute("SELECT MAX(version) FROM schema_version")
            result = cursor.fetchone()
            return result[0] if result and result[0] is not None else None
        except sqlite3.OperationalError:
            # Table doesn't exist yet
            return None

    def _set_schema_version(self, conn: sqlite3.Connection, version: int) -> None:
        """Set the schema version."""
        conn.execute("INSERT INTO schema_version (version) VALUES (?)", (version,))

    def get_database_stats(self) -> Dict[str, Any]:
        """Get basic database statistics."""
        stats: Dict[str, Any] = {
            "total_sessions": 0,
            "completed_sessions": 0,
            "completed_phases": 0,
            "database_size": 0,
        }
        if not self.db_path.exists():
            return stats

        stats["database_size"] = self.db_path.stat().st_size
        try:
            with self.get_connection() as conn:
                row = conn.execute(
                    """
                    SELECT
                        COUNT(*) as total_sessions,
                        COUNT(CASE WHEN is_completed = 1 THEN 1 END) as completed_sessions
                    FROM sessions
                """
                ).fetchone()
                stats["total_sessions"] = row["total_sessions"]
                stats["completed_sessions"] = row["completed_sessions"]
                stats["completed_phases"] = conn.execute(
                    "SELECT COUNT(*) FROM pomodoro_phases WHERE completed_at IS NOT NULL"
                ).fetchone()[0]
        except sqlite3.OperationalError:
            # Tables don't exist yet
            pass
        return stats
