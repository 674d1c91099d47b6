"""
Tests for formatting utilities (studyplanner.utils.formatting).
"""

from datetime import datetime, timedelta

import pytest

from studyplanner.utils.formatting import (
    format_date,
    format_datetime,
    format_duration,
    format_minutes,
    format_percentage,
    format_timer,
    pluralize,
)


class TestFormatDuration:
    """Test cases for format_duration function."""

    def test_hours_minutes_seconds(self) -> None:
        """Test formatting duration with hours, minutes, and seconds."""
        assert format_duration(timedelta(hours=2, minutes=30, seconds=45), show_seconds=True) == "2h 30m 45s"

    def test_without_seconds(self) -> None:
        """Test formatting duration without seconds."""
        assert format_duration(timedelta(hours=1, minutes=45, seconds=30), show_seconds=False) == "1h 45m"

    def test_zero_duration(self) -> None:
        """Test formatting zero duration."""
        assert format_duration(timedelta(0), show_seconds=False) == "0m"
        assert format_duration(timedelta(0), show_seconds=True) == "0s"

    def test_negative_duration(self) -> None:
        """Test that negative durations are clamped."""
        assert format_duration(timedelta(seconds=-5)) == "0s"

    def test_uses_config_default(self, isolated_config) -> None:
        """Test the display.show_seconds setting."""
        isolated_config.set("display.show_seconds", True)

        assert format_duration(timedelta(seconds=42)) == "42s"


class TestTimerAndMinutes:
    """Test cases for timer readouts and minute totals."""

    @pytest.mark.parametrize(
        "seconds, expected",
        [(1500, "25:00"), (61, "01:01"), (0, "00:00"), (-3, "00:00"), (3600, "60:00")],
    )
    def test_format_timer(self, seconds: int, expected: str) -> None:
        """Test MM:SS readouts."""
        assert format_timer(seconds) == expected

    @pytest.mark.parametrize("minutes, expected", [(0, "0m"), (45.9, "45m"), (125, "2h 5m")])
    def test_format_minutes(self, minutes: float, expected: str) -> None:
        """Test minute totals."""
        assert format_minutes(minutes) == expected


class TestDatesAndText:
    """Test cases for dates, percentages and plurals."""

    def test_format_datetime_uses_config(self, isolated_config) -> None:
        """Test configured date and time formats."""
        dt = datetime(2024, 1, 10, 14, 5)

        assert format_datetime(dt) == "2024-01-10 14:05"
        assert format_date(dt) == "2024-01-10"

        isolated_config.set("date_format", "%d/%m/%Y")
        assert format_datetime(dt, include_time=False) == "10/01/2024"
        assert format_datetime(dt, include_date=False) == "14:05"

    def test_format_percentage(self) -> None:
        """Test one-decimal percentages."""
        assert format_percentage(66.666) == "66.7%"

    def test_pluralize(self) -> None:
        """Test singular and plural forms."""
        assert pluralize(1, "session") == "session"
        assert pluralize(3, "session") == "sessions"
        assert pluralize(2, "category", "categories") == "categories"
