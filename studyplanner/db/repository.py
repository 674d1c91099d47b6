"""
Database repositories for the study planner.

This module provides the data access layer for study sessions, categories,
goals, Pomodoro phases and focus-time aggregates.
"""

import json
import logging
import sqlite3
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import ValidationError

from .models import (
    DailyFocusStats,
    FocusStats,
    PomodoroPhase,
    PomodoroSettings,
    StudyCategory,
    StudyGoal,
    StudySession,
)
from .schema import DatabaseManager

logger = logging.getLogger(__name__)


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored ISO timestamp, returning None if it is missing or malformed."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring malformed timestamp in storage: {value!r}")
        return None


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _position_sql(table: str) -> str:
    """SQL expression keeping an existing row's position or appending after the last one."""
    return (
        f"COALESCE((SELECT position FROM {table} WHERE id = ?), "
        f"(SELECT COALESCE(MAX(position), -1) + 1 FROM {table}))"
    )


class PlannerRepository:
    """Repository for study sessions, categories and goals."""

    def __init__(self, db_manager: DatabaseManager):
        """Initialize repository with database manager."""
        self.db_manager = db_manager

    # Sessions

    def save_session(self, session: StudySession) -> StudySession:
        """Insert or replace a study session, keeping the position of an existing row."""
        with self.db_manager.get_connection() as conn:
            conn.execute(
                f"""
                INSERT OR REPLACE INTO sessions (id, position, title, description, start_time,
                    end_time, category_id, priority, is_completed, completed_at,
                    associated_task_ids, pomodoro_phase_ids, notes, pomodoro_count,
                    completed_pomodoros)
                VALUES (?, {_position_sql("sessions")}, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    str(session.id),
                    str(session.id),
                    session.title,
                    session.description,
                    _iso(session.start_time),
                    _iso(session.end_time),
                    str(session.category_id),
                    session.priority.value,
                    session.is_completed,
                    _iso(session.completed_at),
                    json.dumps(session.associated_task_ids),
                    json.dumps([str(p) for p in session.pomodoro_phase_ids]),
                    session.notes,
                    session.pomodoro_count,
                    session.completed_pomodoros,
                ),
            )
            conn.commit()

        return session

    def delete_session(self, session_id: UUID) -> bool:
        """Delete a session by ID. Returns True if deleted, False if not found."""
        with self.db_manager.get_connection() as conn:
            cursor = conn.execute("DELETE FROM sessions WHERE id = ?", (str(session_id),))
            conn.commit()
            return cursor.rowcount > 0

    def get_all_sessions(self) -> List[StudySession]:
        """Get all sessions in insertion order, skipping unreadable rows."""
        with self.db_manager.get_connection() as conn:
            rows = conn.execute("SELECT * FROM sessions ORDER BY position ASC").fetchall()

        sessions = []
        for row in rows:
            session = self._row_to_session(row)
            if session is not None:
                sessions.append(session)
        return sessions

    def _row_to_session(self, row: sqlite3.Row) -> Optional[StudySession]:
        """Convert a database row to a StudySession model."""
        start_time = _parse_datetime(row["start_time"])
        end_time = _parse_datetime(row["end_time"])
        if start_time and end_time and end_time <= start_time:
            # Keep the record readable; interval queries will skip it
            end_time = None
        try:
            return StudySession(
                id=UUID(row["id"]),
                title=row["title"],
                description=row["description"],
                start_time=start_time,
                end_time=end_time,
                category_id=UUID(row["category_id"]),
                priority=row["priority"],
                is_completed=bool(row["is_completed"]),
                completed_at=_parse_datetime(row["completed_at"]),
                associated_task_ids=json.loads(row["associated_task_ids"] or "[]"),
                pomodoro_phase_ids=[UUID(p) for p in json.loads(row["pomodoro_phase_ids"] or "[]")],
                notes=row["notes"],
                pomodoro_count=row["pomodoro_count"],
                completed_pomodoros=row["completed_pomodoros"],
            )
        except (ValidationError, ValueError) as e:
            logger.error(f"Skipping unreadable session row {row['id']}: {e}")
            return None

    # Categories

    def save_category(self, category: StudyCategory) -> StudyCategory:
        """Insert or replace a category."""
        with self.db_manager.get_connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO categories (id, position, name, color) "
                f"VALUES (?, {_position_sql('categories')}, ?, ?)",
                (str(category.id), str(category.id), category.name, category.color),
            )
            conn.commit()

        return category

    def delete_category(self, category_id: UUID) -> bool:
        """Delete a category by ID."""
        with self.db_manager.get_connection() as conn:
            cursor = conn.execute("DELETE FROM categories WHERE id = ?", (str(category_id),))
            conn.commit()
            return cursor.rowcount > 0

    def get_all_categories(self) -> List[StudyCategory]:
        """Get all categories in insertion order."""
        with self.db_manager.get_connection() as conn:
            rows = conn.execute("SELECT * FROM categories ORDER BY position ASC").fetchall()

        return [
            StudyCategory(id=UUID(row["id"]), name=row["name"], color=row["color"])
            for row in rows
        ]

    # Goals

    def save_goal(self, goal: StudyGoal) -> StudyGoal:
        """Insert or replace a goal."""
        with self.db_manager.get_connection() as conn:
            conn.execute(
                f"""
                INSERT OR REPLACE INTO goals (id, position, title, category_id, target_hours,
                    current_hours, start_date, end_date, is_completed)
                VALUES (?, {_position_sql("goals")}, ?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    str(goal.id),
                    str(goal.id),
                    goal.title,
                    str(goal.category_id),
                    goal.target_hours,
                    goal.current_hours,
                    goal.start_date.isoformat(),
                    goal.end_date.isoformat(),
                    goal.is_completed,
                ),
            )
            conn.commit()

        return goal

    def delete_goal(self, goal_id: UUID) -> bool:
        """Delete a goal by ID."""
        with self.db_manager.get_connection() as conn:
            cursor = conn.execute("DELETE FROM goals WHERE id = ?", (str(goal_id),))
            conn.commit()
            return cursor.rowcount > 0

    def get_all_goals(self) -> List[StudyGoal]:
        """Get all goals in insertion order."""
        with self.db_manager.get_connection() as conn:
            rows = conn.execute("SELECT * FROM goals ORDER BY position ASC").fetchall()

        return [
            StudyGoal(
                id=UUID(row["id"]),
                title=row["title"],
                category_id=UUID(row["category_id"]),
                target_hours=row["target_hours"],
                current_hours=row["current_hours"],
                start_date=date.fromisoformat(row["start_date"]),
                end_date=date.fromisoformat(row["end_date"]),
                is_completed=bool(row["is_completed"]),
            )
            for row in rows
        ]


class PomodoroRepository:
    """Repository for Pomodoro phases, focus buckets and timer settings."""

    SETTINGS_KEY = "pomodoro_settings"
    TOTALS_KEY = "focus_totals"

    def __init__(self, db_manager: DatabaseManager):
        """Initialize repository with database manager."""
        self.db_manager = db_manager

    def save_phase(self, phase: PomodoroPhase) -> PomodoroPhase:
        """Insert or replace a completed phase."""
        with self.db_manager.get_connection() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO pomodoro_phases (id, task_id, task_name, phase_type,
                    duration, started_at, completed_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    str(phase.id),
                    phase.task_id,
                    phase.task_name,
                    phase.phase_type.value,
                    phase.duration,
                    phase.started_at.isoformat(),
                    _iso(phase.completed_at),
                ),
            )
            conn.commit()

        return phase

    def get_completed_phases(self) -> List[PomodoroPhase]:
        """Get all completed phases ordered by completion time."""
        with self.db_manager.get_connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM pomodoro_phases
                WHERE completed_at IS NOT NULL
                ORDER BY completed_at ASC
            """
            ).fetchall()

        phases = []
        for row in rows:
            started_at = _parse_datetime(row["started_at"])
            completed_at = _parse_datetime(row["completed_at"])
            if started_at is None or completed_at is None:
                continue
            phases.append(
                PomodoroPhase(
                    id=UUID(row["id"]),
                    task_id=row["task_id"],
                    task_name=row["task_name"],
                    phase_type=row["phase_type"],
                    duration=row["duration"],
                    started_at=started_at,
                    completed_at=completed_at,
                )
            )
        return phases

    def save_focus_stats(self, stats: FocusStats, days: Optional[List[str]] = None) -> None:
        """
        Persist focus aggregates.

        Args:
            stats: Current aggregates
            days: Day keys whose buckets changed (all buckets if None)
        """
        keys = days if days is not None else list(stats.daily.keys())
        with self.db_manager.get_connection() as conn:
            for key in keys:
                bucket = stats.daily.get(key)
                if bucket is None:
                    continue
                conn.execute(
                    "INSERT OR REPLACE INTO focus_daily (day, sessions, focus_minutes) VALUES (?, ?, ?)",
                    (key, bucket.sessions, bucket.focus_minutes),
                )
            self._put_state(
                conn,
                self.TOTALS_KEY,
                {
                    "total_focus_minutes": stats.total_focus_minutes,
                    "total_completed_sessions": stats.total_completed_sessions,
                },
            )
            conn.commit()

    def get_focus_stats(self) -> FocusStats:
        """Load focus aggregates."""
        with self.db_manager.get_connection() as conn:
            rows = conn.execute("SELECT * FROM focus_daily").fetchall()
            totals = self._get_state(conn, self.TOTALS_KEY) or {}

        return FocusStats(
            total_focus_minutes=totals.get("total_focus_minutes", 0.0),
            total_completed_sessions=totals.get("total_completed_sessions", 0),
            daily={
                row["day"]: DailyFocusStats(
                    sessions=row["sessions"], focus_minutes=row["focus_minutes"]
                )
                for row in rows
            },
        )

    def save_settings(self, settings: PomodoroSettings) -> None:
        """Persist timer settings."""
        with self.db_manager.get_connection() as conn:
            self._put_state(conn, self.SETTINGS_KEY, settings.model_dump())
            conn.commit()

    def get_settings(self) -> Optional[PomodoroSettings]:
        """Load timer settings, or None if never saved or unreadable."""
        with self.db_manager.get_connection() as conn:
            data = self._get_state(conn, self.SETTINGS_KEY)

        if data is None:
            return None
        try:
            return PomodoroSettings(**data)
        except ValidationError as e:
            logger.error(f"Ignoring invalid stored timer settings: {e}")
            return None

    def _put_state(self, conn: sqlite3.Connection, key: str, value: Dict[str, Any]) -> None:
        conn.execute(
            "INSERT OR REPLACE INTO app_state (key, value) VALUES (?, ?)",
            (key, json.dumps(value)),
        )

    def _get_state(self, conn: sqlite3.Connection, key: str) -> Optional[Dict[str, Any]]:
        row = conn.execute("SELECT value FROM app_state WHERE key = ?", (key,)).fetchone()
        if row is None:
            return None
        try:
            return json.loads(row["value"])
        except json.JSONDecodeError:
            logger.warning(f"Ignoring malformed stored state for '{key}'")
            return None
