"""
Tests for data models (studyplanner.db.models).

This module tests the pydantic models used for sessions, categories, goals,
filters and timer settings.
"""

from datetime import date, datetime
from uuid import UUID, uuid4

import pytest
from pydantic import ValidationError

from studyplanner.db.models import (
    PhaseType,
    PomodoroSettings,
    SessionFilter,
    SessionPriority,
    StudyCategory,
    StudyGoal,
    StudySession,
)


class TestStudySession:
    """Test cases for StudySession model."""

    def test_valid_session(self) -> None:
        """Test creating a valid session."""
        # Arrange
        category_id = uuid4()

        # Act
        session = StudySession(
            title="  Calculus  ",
            start_time=datetime(2024, 1, 1, 9),
            end_time=datetime(2024, 1, 1, 10, 30),
            category_id=category_id,
        )

        # Assert
        assert isinstance(session.id, UUID)
        assert session.title == "Calculus"
        assert session.priority == SessionPriority.MEDIUM
        assert session.is_completed is False
        assert session.associated_task_ids == []
        assert session.duration_hours == 1.5

    def test_end_before_start_rejected(self) -> None:
        """Test that an inverted interval is rejected."""
        with pytest.raises(ValidationError, match="End time must be after start time"):
            StudySession(
                title="Backwards",
                start_time=datetime(2024, 1, 1, 10),
                end_time=datetime(2024, 1, 1, 9),
                category_id=uuid4(),
            )

    def test_zero_length_rejected(self) -> None:
        """Test that a zero-length interval is rejected."""
        with pytest.raises(ValidationError):
            StudySession(
                title="Empty",
                start_time=datetime(2024, 1, 1, 10),
                end_time=datetime(2024, 1, 1, 10),
                category_id=uuid4(),
            )

    def test_blank_title_rejected(self) -> None:
        """Test that whitespace-only titles are rejected."""
        with pytest.raises(ValidationError):
            StudySession(title="   ", category_id=uuid4())

    def test_missing_timestamps_allowed(self) -> None:
        """Test that stored records without timestamps stay readable."""
        session = StudySession(title="Legacy", category_id=uuid4())
        assert session.duration_hours is None

    def test_negative_pomodoros_rejected(self) -> None:
        """Test pomodoro counters are non-negative."""
        with pytest.raises(ValidationError):
            StudySession(title="Bad", category_id=uuid4(), pomodoro_count=-1)


class TestStudyCategory:
    """Test cases for StudyCategory model."""

    def test_color_normalized_to_upper_case(self) -> None:
        """Test hex colors are upper-cased."""
        assert StudyCategory(name="Math", color="#ff00aa").color == "#FF00AA"

    @pytest.mark.parametrize("color", ["red", "#FFF", "#GGGGGG", "FF0000"])
    def test_invalid_color_rejected(self, color: str) -> None:
        """Test non-hex colors are rejected."""
        with pytest.raises(ValidationError):
            StudyCategory(name="Math", color=color)


class TestStudyGoal:
    """Test cases for StudyGoal model."""

    def test_progress_percent_is_capped(self) -> None:
        """Test progress never exceeds 100%."""
        goal = StudyGoal(title="Read", category_id=uuid4(), target_hours=4, current_hours=6)
        assert goal.progress_percent == 100.0

    def test_target_must_be_positive(self) -> None:
        """Test a zero target is rejected."""
        with pytest.raises(ValidationError):
            StudyGoal(title="Nothing", category_id=uuid4(), target_hours=0)

    def test_end_date_before_start_rejected(self) -> None:
        """Test goal date range validation."""
        with pytest.raises(ValidationError):
            StudyGoal(
                title="Backwards",
                category_id=uuid4(),
                target_hours=1,
                start_date=date(2024, 2, 1),
                end_date=date(2024, 1, 1),
            )


class TestSessionFilter:
    """Test cases for SessionFilter model."""

    def test_defaults(self) -> None:
        """Test that the default filter shows every pending session."""
        session_filter = SessionFilter()
        assert session_filter.categories == []
        assert set(session_filter.priorities) == set(SessionPriority)
        assert session_filter.show_completed is False
        assert session_filter.start_date is None


class TestPomodoroSettings:
    """Test cases for PomodoroSettings model."""

    def test_defaults(self) -> None:
        """Test default durations and flags."""
        settings = PomodoroSettings()
        assert settings.focus_duration == 1500
        assert settings.short_break_duration == 300
        assert settings.long_break_duration == 900
        assert settings.sessions_before_long_break == 4
        assert settings.auto_start_breaks is True
        assert settings.auto_start_pomodoros is False

    def test_duration_for_each_phase(self) -> None:
        """Test duration lookup by phase type."""
        settings = PomodoroSettings(focus_duration=10, short_break_duration=2, long_break_duration=5)
        assert settings.duration_for(PhaseType.FOCUS) == 10
        assert settings.duration_for(PhaseType.SHORT_BREAK) == 2
        assert settings.duration_for(PhaseType.LONG_BREAK) == 5

    @pytest.mark.parametrize(
        "field, value",
        [("focus_duration", 0), ("sessions_before_long_break", 0), ("volume", 101)],
    )
    def test_invalid_values_rejected(self, field: str, value: int) -> None:
        """Test settings validation."""
        with pytest.raises(ValidationError):
            PomodoroSettings(**{field: value})
