"""
Slot suggestion engine.

Proposes free study windows on candidate days by scanning fixed-size windows
across the study day and rejecting any that overlap an existing session.
This is a greedy first-fit scan without preference weighting.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Callable, Iterable, List, Optional

from ..db.models import StudySession, TimeSlot
from ..utils.time_intervals import intervals_overlap

logger = logging.getLogger(__name__)


class SlotSuggestionEngine:
    """Greedy first-fit search for conflict-free study windows."""

    def __init__(
        self,
        day_start_hour: int = 9,
        day_end_hour: int = 21,
        slot_step_hours: int = 2,
        max_suggestions_per_day: int = 2,
        suggestion_days: int = 3,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the engine.

        Args:
            day_start_hour: First hour a window may start at
            day_end_hour: Hour by which every window must end
            slot_step_hours: Distance between consecutive window starts
            max_suggestions_per_day: Accepted windows per candidate day
            suggestion_days: Number of days (from today) used when no dates are given
            clock: Source of the current local time
        """
        if not 0 <= day_start_hour < day_end_hour <= 24:
            raise ValueError("Study day hours must satisfy 0 <= start < end <= 24")
        if slot_step_hours < 1:
            raise ValueError("Slot step must be at least one hour")

        self.day_start_hour = day_start_hour
        self.day_end_hour = day_end_hour
        self.slot_step_hours = slot_step_hours
        self.max_suggestions_per_day = max_suggestions_per_day
        self.suggestion_days = suggestion_days
        self.clock = clock

    def default_candidate_dates(self) -> List[date]:
        """Get today and the following days used when no dates are supplied."""
        today = self.clock().date()
        return [today + timedelta(days=i) for i in range(self.suggestion_days)]

    def suggest(
        self,
        duration_minutes: int,
        sessions: Iterable[StudySession],
        candidate_dates: Optional[List[date]] = None,
    ) -> List[TimeSlot]:
        """
        Suggest non-overlapping windows of the given length.

        Args:
            duration_minutes: Window length in minutes
            sessions: Existing sessions that must not be double-booked
            candidate_dates: Days to search, in the order results should follow

        Returns:
            Accepted windows ordered by candidate day, then by start time

        Raises:
            ValueError: If duration_minutes is not positive
        """
        if duration_minutes <= 0:
            raise ValueError("Duration must be a positive number of minutes")

        busy = [
            (s.start_time, s.end_time)
            for s in sessions
            if s.start_time is not None and s.end_time is not None
        ]
        dates = candidate_dates or self.default_candidate_dates()
        duration = timedelta(minutes=duration_minutes)
        last_start_hour = self.day_end_hour - duration_minutes / 60

        suggestions: List[TimeSlot] = []
        for day in dates:
            accepted = 0
            hour = self.day_start_hour
            while hour <= last_start_hour and accepted < self.max_suggestions_per_day:
                slot_start = datetime.combine(day, time(hour))
                slot_end = slot_start + duration

                if not any(
                    intervals_overlap(slot_start, slot_end, start, end) for start, end in busy
                ):
                    suggestions.append(TimeSlot(start_time=slot_start, end_time=slot_end))
                    accepted += 1

                hour += self.slot_step_hours

        logger.debug(f"Suggested {len(suggestions)} slots of {duration_minutes}m over {len(dates)} days")
        return suggestions
