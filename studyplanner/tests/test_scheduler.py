"""
Tests for the slot suggestion engine (studyplanner.core.scheduler).
"""

from datetime import date, datetime, timedelta
from uuid import uuid4

import pytest

from studyplanner.core.scheduler import SlotSuggestionEngine
from studyplanner.db.models import StudySession
from studyplanner.utils.time_intervals import intervals_overlap


def make_session(start: datetime, hours: float) -> StudySession:
    return StudySession(
        title="Busy",
        start_time=start,
        end_time=start + timedelta(hours=hours),
        category_id=uuid4(),
    )


class TestSlotSuggestionEngine:
    """Test cases for SlotSuggestionEngine."""

    def test_cap_of_two_per_day_over_three_days(self, clock) -> None:
        """Test that an empty calendar yields two windows on each of three days."""
        # Arrange
        engine = SlotSuggestionEngine(clock=clock)

        # Act
        slots = engine.suggest(60, [])

        # Assert
        assert len(slots) == 6
        days = [slot.start_time.date() for slot in slots]
        today = clock().date()
        assert days == [
            today,
            today,
            today + timedelta(days=1),
            today + timedelta(days=1),
            today + timedelta(days=2),
            today + timedelta(days=2),
        ]
        assert [slot.start_time.hour for slot in slots[:2]] == [9, 11]
        assert all(slot.end_time - slot.start_time == timedelta(minutes=60) for slot in slots)

    def test_skips_conflicting_windows(self) -> None:
        """Test that windows overlapping a session are rejected."""
        # Arrange
        day = date(2024, 1, 10)
        sessions = [make_session(datetime(2024, 1, 10, 9, 30), 2)]  # 9:30-11:30
        engine = SlotSuggestionEngine()

        # Act
        slots = engine.suggest(60, sessions, [day])

        # Assert
        # 9:00-10:00 and 11:00-12:00 both overlap; 13:00 and 15:00 are free
        assert [slot.start_time.hour for slot in slots] == [13, 15]

    def test_window_containing_a_short_session_is_rejected(self) -> None:
        """Test the containment branch of the overlap test."""
        day = date(2024, 1, 10)
        sessions = [make_session(datetime(2024, 1, 10, 9, 30), 0.5)]  # 9:30-10:00
        engine = SlotSuggestionEngine()

        slots = engine.suggest(120, sessions, [day])

        assert slots[0].start_time.hour == 11

    def test_touching_sessions_do_not_conflict(self) -> None:
        """Test a session ending exactly at 9:00 leaves the 9:00 window free."""
        day = date(2024, 1, 10)
        sessions = [make_session(datetime(2024, 1, 10, 7, 0), 2)]
        engine = SlotSuggestionEngine()

        slots = engine.suggest(60, sessions, [day])

        assert slots[0].start_time == datetime(2024, 1, 10, 9, 0)

    def test_last_window_must_end_by_day_end(self) -> None:
        """Test that long durations shrink the scan range."""
        day = date(2024, 1, 10)
        engine = SlotSuggestionEngine(max_suggestions_per_day=10)

        slots = engine.suggest(300, [], [day])

        # Starts at 9, 11, 13, 15; 17 + 5h would pass 21:00
        assert [slot.start_time.hour for slot in slots] == [9, 11, 13, 15]
        assert all(slot.end_time.hour <= 21 for slot in slots)

    def test_sessions_without_timestamps_are_ignored(self) -> None:
        """Test malformed sessions never block a window."""
        sessions = [StudySession(title="Legacy", category_id=uuid4())]
        engine = SlotSuggestionEngine()

        slots = engine.suggest(60, sessions, [date(2024, 1, 10)])

        assert len(slots) == 2

    def test_candidate_date_order_is_kept(self) -> None:
        """Test results follow the order of the given dates."""
        later, earlier = date(2024, 1, 12), date(2024, 1, 10)
        engine = SlotSuggestionEngine()

        slots = engine.suggest(60, [], [later, earlier])

        assert [slot.start_time.date() for slot in slots] == [later, later, earlier, earlier]

    def test_fully_booked_day_yields_nothing(self) -> None:
        """Test a day covered end to end."""
        day = date(2024, 1, 10)
        sessions = [make_session(datetime(2024, 1, 10, 8), 14)]
        engine = SlotSuggestionEngine()

        assert engine.suggest(60, sessions, [day]) == []

    @pytest.mark.parametrize("duration", [0, -30])
    def test_non_positive_duration_rejected(self, duration: int) -> None:
        """Test invalid durations."""
        with pytest.raises(ValueError):
            SlotSuggestionEngine().suggest(duration, [])

    def test_invalid_day_hours_rejected(self) -> None:
        """Test engine configuration validation."""
        with pytest.raises(ValueError):
            SlotSuggestionEngine(day_start_hour=21, day_end_hour=9)

    def test_suggestions_never_overlap_existing_sessions(self) -> None:
        """Test that no suggested slot overlaps any busy interval."""
        # Arrange
        days = [date(2024, 1, 10), date(2024, 1, 11), date(2024, 1, 12)]
        sessions = [
            make_session(datetime(2024, 1, 10, 10, 15), 1.5),
            make_session(datetime(2024, 1, 10, 14, 0), 3),
            make_session(datetime(2024, 1, 11, 8, 30), 1),
            make_session(datetime(2024, 1, 11, 12, 59), 0.1),
            make_session(datetime(2024, 1, 12, 20, 30), 2),
        ]
        engine = SlotSuggestionEngine(max_suggestions_per_day=5, slot_step_hours=1)

        # Act
        slots = engine.suggest(90, sessions, days)

        # Assert
        assert slots
        for slot in slots:
            for session in sessions:
                assert not intervals_overlap(
                    slot.start_time, slot.end_time, session.start_time, session.end_time
                )
