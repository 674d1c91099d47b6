"""
Tests for database repositories (studyplanner.db.repository).

This module tests persistence of sessions, categories, goals, Pomodoro phases,
focus buckets and timer settings.
"""

import json
from datetime import date, datetime
from uuid import uuid4

import pytest

from studyplanner.db.models import (
    DailyFocusStats,
    FocusStats,
    PhaseType,
    PomodoroPhase,
    PomodoroSettings,
    SessionPriority,
    StudyCategory,
    StudyGoal,
    StudySession,
)
from studyplanner.db.repository import PlannerRepository, PomodoroRepository
from studyplanner.db.schema import SCHEMA_VERSION, DatabaseManager


def make_session(title: str, category_id, hour: int = 9) -> StudySession:
    return StudySession(
        title=title,
        start_time=datetime(2024, 1, 10, hour),
        end_time=datetime(2024, 1, 10, hour + 1),
        category_id=category_id,
    )


class TestDatabaseManager:
    """Test cases for DatabaseManager."""

    def test_initialize_records_schema_version(self, db_manager: DatabaseManager) -> None:
        """Test schema creation."""
        with db_manager.get_connection() as conn:
            version = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()[0]
            tables = {
                row["name"]
                for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
            }

        assert version == SCHEMA_VERSION
        assert {"sessions", "categories", "goals", "pomodoro_phases", "focus_daily", "app_state"} <= tables

    def test_initialize_is_idempotent(self, db_manager: DatabaseManager) -> None:
        """Test running initialization twice."""
        db_manager.initialize_database()

        assert db_manager.get_database_stats()["total_sessions"] == 0

    def test_database_stats(self, db_manager: DatabaseManager, planner_repository: PlannerRepository) -> None:
        """Test session counters."""
        category_id = uuid4()
        planner_repository.save_session(make_session("A", category_id))
        planner_repository.save_session(
            make_session("B", category_id).model_copy(update={"is_completed": True})
        )

        stats = db_manager.get_database_stats()

        assert stats["total_sessions"] == 2
        assert stats["completed_sessions"] == 1
        assert stats["database_size"] > 0


class TestPlannerRepositorySessions:
    """Test cases for session persistence."""

    def test_save_and_load_session(self, planner_repository: PlannerRepository) -> None:
        """Test that every field survives storage."""
        # Arrange
        phase_id = uuid4()
        session = StudySession(
            title="Organic chemistry",
            description="Reactions",
            start_time=datetime(2024, 1, 10, 9),
            end_time=datetime(2024, 1, 10, 10, 30),
            category_id=uuid4(),
            priority=SessionPriority.HIGH,
            is_completed=True,
            completed_at=datetime(2024, 1, 10, 10, 31),
            associated_task_ids=["t1", "t2"],
            pomodoro_phase_ids=[phase_id],
            notes="Bring flashcards",
            pomodoro_count=3,
            completed_pomodoros=2,
        )

        # Act
        planner_repository.save_session(session)
        loaded = planner_repository.get_all_sessions()

        # Assert
        assert loaded == [session]

    def test_insertion_order_kept_on_update(self, planner_repository: PlannerRepository) -> None:
        """Test that replacing a session keeps its position."""
        # Arrange
        category_id = uuid4()
        first = make_session("First", category_id, hour=15)
        second = make_session("Second", category_id, hour=8)
        planner_repository.save_session(first)
        planner_repository.save_session(second)

        # Act
        planner_repository.save_session(first.model_copy(update={"title": "First (edited)"}))

        # Assert
        assert [s.title for s in planner_repository.get_all_sessions()] == ["First (edited)", "Second"]

    def test_delete_session(self, planner_repository: PlannerRepository) -> None:
        """Test deleting present and missing sessions."""
        session = make_session("Gone", uuid4())
        planner_repository.save_session(session)

        assert planner_repository.delete_session(session.id) is True
        assert planner_repository.delete_session(session.id) is False
        assert planner_repository.get_all_sessions() == []

    def test_malformed_rows_are_tolerated(
        self, db_manager: DatabaseManager, planner_repository: PlannerRepository
    ) -> None:
        """Test bad timestamps and unreadable rows in storage."""
        # Arrange
        category_id = str(uuid4())
        with db_manager.get_connection() as conn:
            conn.executemany(
                """
                INSERT INTO sessions (id, position, title, start_time, end_time, category_id)
                VALUES (?, ?, ?, ?, ?, ?)
            """,
                [
                    (str(uuid4()), 0, "Bad start", "yesterday", "2024-01-10T10:00:00", category_id),
                    (str(uuid4()), 1, "Backwards", "2024-01-10T10:00:00", "2024-01-10T09:00:00", category_id),
                    ("not-a-uuid", 2, "Broken", None, None, category_id),
                ],
            )
            conn.commit()

        # Act
        sessions = planner_repository.get_all_sessions()

        # Assert
        assert [s.title for s in sessions] == ["Bad start", "Backwards"]
        assert sessions[0].start_time is None
        assert sessions[1].start_time == datetime(2024, 1, 10, 10)
        assert sessions[1].end_time is None


class TestPlannerRepositoryCategoriesAndGoals:
    """Test cases for category and goal persistence."""

    def test_categories_round_trip_in_order(self, planner_repository: PlannerRepository) -> None:
        """Test saving, renaming and deleting categories."""
        math = StudyCategory(name="Math", color="#FF0000")
        art = StudyCategory(name="Art", color="#00FF00")
        planner_repository.save_category(math)
        planner_repository.save_category(art)

        planner_repository.save_category(math.model_copy(update={"name": "Mathematics"}))

        assert [c.name for c in planner_repository.get_all_categories()] == ["Mathematics", "Art"]
        assert planner_repository.delete_category(art.id) is True
        assert planner_repository.get_all_categories()[0].color == "#FF0000"

    def test_goals_round_trip(self, planner_repository: PlannerRepository) -> None:
        """Test saving and updating a goal."""
        goal = StudyGoal(
            title="Finish textbook",
            category_id=uuid4(),
            target_hours=20,
            current_hours=4.5,
            start_date=date(2024, 1, 1),
            end_date=date(2024, 2, 1),
        )
        planner_repository.save_goal(goal)

        planner_repository.save_goal(goal.model_copy(update={"current_hours": 20, "is_completed": True}))
        loaded = planner_repository.get_all_goals()

        assert len(loaded) == 1
        assert loaded[0].current_hours == 20
        assert loaded[0].is_completed is True
        assert loaded[0].end_date == date(2024, 2, 1)
        assert planner_repository.delete_goal(goal.id) is True
        assert planner_repository.get_all_goals() == []


class TestPomodoroRepository:
    """Test cases for PomodoroRepository."""

    def test_completed_phases_ordered_by_completion(self, pomodoro_repository: PomodoroRepository) -> None:
        """Test that unfinished phases are not returned."""
        # Arrange
        late = PomodoroPhase(
            phase_type=PhaseType.SHORT_BREAK,
            duration=300,
            started_at=datetime(2024, 1, 10, 10),
            completed_at=datetime(2024, 1, 10, 10, 5),
        )
        early = PomodoroPhase(
            task_id="t1",
            task_name="Essay",
            phase_type=PhaseType.FOCUS,
            duration=1500,
            started_at=datetime(2024, 1, 10, 9),
            completed_at=datetime(2024, 1, 10, 9, 25),
        )
        unfinished = PomodoroPhase(phase_type=PhaseType.FOCUS, duration=1500)

        # Act
        for phase in (late, early, unfinished):
            pomodoro_repository.save_phase(phase)

        # Assert
        assert pomodoro_repository.get_completed_phases() == [early, late]

    def test_focus_stats_round_trip(self, pomodoro_repository: PomodoroRepository) -> None:
        """Test totals and daily buckets."""
        stats = FocusStats(
            total_focus_minutes=42.5,
            total_completed_sessions=3,
            daily={
                "2024-01-09": DailyFocusStats(sessions=1, focus_minutes=12.5),
                "2024-01-10": DailyFocusStats(sessions=2, focus_minutes=30),
            },
        )

        pomodoro_repository.save_focus_stats(stats)

        assert pomodoro_repository.get_focus_stats() == stats

    def test_focus_stats_partial_save(self, pomodoro_repository: PomodoroRepository) -> None:
        """Test that only the listed day buckets are written."""
        stats = FocusStats(
            total_focus_minutes=5,
            daily={
                "2024-01-09": DailyFocusStats(focus_minutes=2),
                "2024-01-10": DailyFocusStats(focus_minutes=3),
            },
        )

        pomodoro_repository.save_focus_stats(stats, ["2024-01-10", "2024-01-11"])
        loaded = pomodoro_repository.get_focus_stats()

        assert set(loaded.daily) == {"2024-01-10"}
        assert loaded.total_focus_minutes == 5

    def test_empty_focus_stats(self, pomodoro_repository: PomodoroRepository) -> None:
        """Test loading before anything was stored."""
        assert pomodoro_repository.get_focus_stats() == FocusStats()

    def test_settings_round_trip(self, pomodoro_repository: PomodoroRepository) -> None:
        """Test timer settings storage."""
        assert pomodoro_repository.get_settings() is None

        settings = PomodoroSettings(focus_duration=3000, auto_start_pomodoros=True)
        pomodoro_repository.save_settings(settings)

        assert pomodoro_repository.get_settings() == settings

    @pytest.mark.parametrize(
        "stored",
        ["{not json", json.dumps({"focus_duration": -1})],
    )
    def test_invalid_stored_settings_ignored(
        self, db_manager: DatabaseManager, pomodoro_repository: PomodoroRepository, stored: str
    ) -> None:
        """Test unreadable settings fall back to None."""
        with db_manager.get_connection() as conn:
            conn.execute(
                "INSERT INTO app_state (key, value) VALUES (?, ?)",
                (PomodoroRepository.SETTINGS_KEY, stored),
            )
            conn.commit()

        assert pomodoro_repository.get_settings() is None
