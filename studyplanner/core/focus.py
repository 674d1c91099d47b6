"""
Focus-time accounting and insights.

FocusAccountant credits elapsed seconds of a running focus phase to running
totals and per-day buckets. FocusInsightsCalculator derives streaks, weekly
charts and the focus score from the completed-phase history.
"""

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional

from ..db.models import (
    DailyFocusStats,
    FocusInsights,
    FocusStats,
    PhaseType,
    PomodoroInsights,
    PomodoroPhase,
    WeeklyFocusData,
)
from ..utils.time_intervals import day_key, format_hour_label, start_of_week

logger = logging.getLogger(__name__)

FOCUS_PERIODS = ("day", "week", "month", "all")

# Normalization targets for the focus score
WEEKLY_TARGET_HOURS = 15
DAILY_TARGET_HOURS = 2


def compute_focus_score(weekly_hours: float, completion_rate: float, daily_average_hours: float) -> float:
    """
    Blend weekly hours, completion rate and daily average into a 0-100 score.

    Each component is normalized and capped at 100 before the 0.4/0.3/0.3 blend.
    """
    weekly_score = min(100.0, max(0.0, weekly_hours / WEEKLY_TARGET_HOURS * 100))
    completion_score = min(100.0, max(0.0, completion_rate))
    consistency_score = min(100.0, max(0.0, daily_average_hours / DAILY_TARGET_HOURS * 100))
    return weekly_score * 0.4 + completion_score * 0.3 + consistency_score * 0.3


class FocusAccountant:
    """Accumulates focus minutes per local day, independent of phase completion."""

    def __init__(
        self,
        stats: Optional[FocusStats] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._stats = stats or FocusStats()
        self.clock = clock

    @property
    def stats(self) -> FocusStats:
        """Current aggregates."""
        return self._stats

    def _bucket(self, key: str) -> DailyFocusStats:
        if key not in self._stats.daily:
            self._stats.daily[key] = DailyFocusStats()
        return self._stats.daily[key]

    def track(self, elapsed_seconds: float, at: Optional[datetime] = None) -> Optional[str]:
        """
        Credit elapsed focus seconds to the total and to the day's bucket.

        Args:
            elapsed_seconds: Seconds spent focusing since the last call
            at: When the seconds were spent (now if omitted)

        Returns:
            The day key that was credited, or None if nothing was added
        """
        if elapsed_seconds <= 0:
            if elapsed_seconds < 0:
                logger.debug(f"Ignoring negative focus time: {elapsed_seconds}s")
            return None

        minutes = elapsed_seconds / 60
        key = day_key(at or self.clock())
        self._stats.total_focus_minutes += minutes
        self._bucket(key).focus_minutes += minutes
        return key

    def record_completed_session(self, at: Optional[datetime] = None) -> str:
        """Count a completed focus phase for its day. Returns the day key."""
        key = day_key(at or self.clock())
        self._stats.total_completed_sessions += 1
        self._bucket(key).sessions += 1
        return key

    def get_focus_minutes(self, day: date) -> float:
        """Get the focus minutes credited to a day."""
        bucket = self._stats.daily.get(day_key(day))
        return bucket.focus_minutes if bucket else 0.0

    def get_today_focus_time(self) -> float:
        """Get today's focus minutes."""
        return self.get_focus_minutes(self.clock().date())


class FocusInsightsCalculator:
    """Read-only insight queries over completed Pomodoro phases."""

    def __init__(
        self,
        phases: Iterable[PomodoroPhase],
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.phases = [p for p in phases if p.completed_at is not None]
        self.clock = clock

    @property
    def focus_phases(self) -> List[PomodoroPhase]:
        return [p for p in self.phases if p.phase_type == PhaseType.FOCUS]

    def get_completed_phases_by_date(self, day: date) -> List[PomodoroPhase]:
        """Get phases completed on the given day."""
        return [p for p in self.phases if p.completed_at.date() == day]

    def get_total_focus_time(self, period: str = "all") -> float:
        """
        Get completed focus time in minutes.

        Args:
            period: "day" (today), "week" (last 7 days), "month" (this calendar
                month) or "all"

        Raises:
            ValueError: If the period is unknown
        """
        if period not in FOCUS_PERIODS:
            raise ValueError(f"Unknown period '{period}', expected one of {', '.join(FOCUS_PERIODS)}")

        now = self.clock()
        week_ago = now - timedelta(days=7)

        def in_period(completed_at: datetime) -> bool:
            if period == "day":
                return completed_at.date() == now.date()
            if period == "week":
                return completed_at >= week_ago
            if period == "month":
                return (completed_at.year, completed_at.month) == (now.year, now.month)
            return True

        return sum(p.duration / 60 for p in self.focus_phases if in_period(p.completed_at))

    def _daily_focus_hours(self, day: date) -> float:
        return sum(
            p.duration / 3600
            for p in self.get_completed_phases_by_date(day)
            if p.phase_type == PhaseType.FOCUS
        )

    def get_pomodoro_insights(self) -> PomodoroInsights:
        """Summarize focus hours, completion rate, peak day/hour and the focus score."""
        now = self.clock()
        focus = self.focus_phases

        total_hours = sum(p.duration for p in focus) / 3600
        week_start = start_of_week(now)
        weekly_hours = (
            sum(p.duration for p in focus if week_start <= p.completed_at <= now) / 3600
        )

        today = now.date()
        daily_average = sum(self._daily_focus_hours(today - timedelta(days=i)) for i in range(7)) / 7

        completion_rate = len(focus) / len(self.phases) * 100 if self.phases else 0.0

        by_day: Dict[str, int] = defaultdict(int)
        by_hour: Dict[int, int] = defaultdict(int)
        for phase in focus:
            by_day[phase.completed_at.strftime("%A")] += phase.duration
            by_hour[phase.completed_at.hour] += phase.duration

        most_productive_day = max(by_day, key=by_day.get) if by_day else "No data"
        most_productive_time = (
            format_hour_label(max(by_hour, key=by_hour.get)) if by_hour else "No data"
        )

        return PomodoroInsights(
            total_focus_time=total_hours,
            weekly_focus_time=weekly_hours,
            daily_average=daily_average,
            completion_rate=completion_rate,
            most_productive_day=most_productive_day,
            most_productive_time=most_productive_time,
            focus_score=compute_focus_score(weekly_hours, completion_rate, daily_average),
        )

    def get_weekly_focus_data(self) -> WeeklyFocusData:
        """Get focus hours per day, Sunday first, for this week and the week before."""
        current_start = start_of_week(self.clock()).date()
        previous_start = current_start - timedelta(days=7)
        return WeeklyFocusData(
            current_week=[self._daily_focus_hours(current_start + timedelta(days=i)) for i in range(7)],
            previous_week=[self._daily_focus_hours(previous_start + timedelta(days=i)) for i in range(7)],
        )

    def _focus_days(self) -> List[date]:
        return sorted({p.completed_at.date() for p in self.focus_phases})

    def get_current_streak(self) -> int:
        """Count consecutive days, ending today, with a completed focus phase."""
        days = set(self._focus_days())
        day = self.clock().date()
        streak = 0
        while day in days:
            streak += 1
            day -= timedelta(days=1)
        return streak

    def get_longest_streak(self) -> int:
        """Get the longest run of consecutive days with a completed focus phase."""
        longest = 0
        run = 0
        previous: Optional[date] = None
        for day in self._focus_days():
            run = run + 1 if previous and day - previous == timedelta(days=1) else 1
            longest = max(longest, run)
            previous = day
        return longest

    def get_focus_insights(self) -> FocusInsights:
        """Get streaks, focus minutes and the focus score."""
        today = self.clock().date()
        focus = self.focus_phases

        last_seven = [
            sum(p.duration / 60 for p in focus if p.completed_at.date() == today - timedelta(days=offset))
            for offset in range(6, -1, -1)
        ]
        insights = self.get_pomodoro_insights()

        return FocusInsights(
            current_streak=self.get_current_streak(),
            longest_streak=self.get_longest_streak(),
            total_focus_time=sum(p.duration for p in focus) / 60,
            today_focus_time=last_seven[-1],
            weekly_focus_time=last_seven,
            focus_score=insights.focus_score,
        )
