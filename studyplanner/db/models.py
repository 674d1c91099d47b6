"""
Data models for the study planner.

This module defines the Pydantic models for study sessions, categories, goals,
Pomodoro phases and the derived statistics built from them.
"""

import re
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

from ..utils.time_intervals import hours_between

HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")


class SessionPriority(str, Enum):
    """Priority of a study session."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PhaseType(str, Enum):
    """Kinds of Pomodoro timer phases."""

    FOCUS = "focus"
    SHORT_BREAK = "shortBreak"
    LONG_BREAK = "longBreak"


class TimerStatus(str, Enum):
    """Lifecycle states of the Pomodoro timer."""

    READY = "ready"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


class StudySession(BaseModel):
    """Model for a planned or completed study session."""

    id: UUID = Field(default_factory=uuid4, description="Unique session identifier")
    title: str = Field(..., min_length=1, max_length=255, description="Session title")
    description: Optional[str] = Field(
        None, max_length=1000, description="Optional session description"
    )
    start_time: Optional[datetime] = Field(None, description="Session start time")
    end_time: Optional[datetime] = Field(None, description="Session end time")
    category_id: UUID = Field(..., description="Referenced study category")
    priority: SessionPriority = Field(
        default=SessionPriority.MEDIUM, description="Session priority"
    )
    is_completed: bool = Field(default=False, description="Whether the session is done")
    completed_at: Optional[datetime] = Field(
        None, description="When the session was marked completed"
    )
    associated_task_ids: List[str] = Field(
        default_factory=list, description="External task references"
    )
    pomodoro_phase_ids: List[UUID] = Field(
        default_factory=list, description="Pomodoro phases linked to this session"
    )
    notes: Optional[str] = Field(None, description="Free-form notes")
    pomodoro_count: int = Field(default=0, ge=0, description="Planned pomodoros")
    completed_pomodoros: int = Field(default=0, ge=0, description="Finished pomodoros")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Normalize the session title."""
        v = v.strip()
        if not v:
            raise ValueError("Title cannot be blank")
        return v

    @model_validator(mode="after")
    def validate_interval(self) -> "StudySession":
        """Validate that end_time is after start_time when both are set."""
        if self.start_time is not None and self.end_time is not None:
            if self.end_time <= self.start_time:
                raise ValueError("End time must be after start time")
        return self

    @property
    def duration_hours(self) -> Optional[float]:
        """Get session duration in hours. Returns None if a timestamp is missing."""
        return hours_between(self.start_time, self.end_time)


class SessionDraft(BaseModel):
    """Unpersisted study session proposal, accepted by PlannerStore.add_session."""

    title: str
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    category_id: UUID
    priority: SessionPriority = SessionPriority.HIGH
    is_completed: bool = False
    associated_task_ids: List[str] = Field(default_factory=list)
    pomodoro_count: int = 0
    completed_pomodoros: int = 0


class StudyCategory(BaseModel):
    """Model for a study category."""

    id: UUID = Field(default_factory=uuid4, description="Unique category identifier")
    name: str = Field(..., min_length=1, max_length=100, description="Display name")
    color: str = Field(default="#4F46E5", description="Hex color tag")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate and normalize category name."""
        return v.strip()

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str) -> str:
        """Validate the color is a #RRGGBB hex string."""
        if not HEX_COLOR.match(v):
            raise ValueError(f"Invalid color '{v}', expected #RRGGBB")
        return v.upper()


class StudyGoal(BaseModel):
    """Model for an hours-based study goal."""

    id: UUID = Field(default_factory=uuid4, description="Unique goal identifier")
    title: str = Field(..., min_length=1, max_length=255, description="Goal title")
    category_id: UUID = Field(..., description="Category the goal tracks")
    target_hours: float = Field(..., gt=0, description="Hours needed to complete")
    current_hours: float = Field(default=0.0, ge=0, description="Hours attributed so far")
    start_date: date = Field(default_factory=date.today, description="Goal start")
    end_date: date = Field(default_factory=date.today, description="Goal deadline")
    is_completed: bool = Field(default=False, description="Whether the goal was reached")

    @model_validator(mode="after")
    def validate_dates(self) -> "StudyGoal":
        """Validate that the goal does not end before it starts."""
        if self.end_date < self.start_date:
            raise ValueError("End date cannot be before start date")
        return self

    @property
    def progress_percent(self) -> float:
        """Get goal progress as a percentage capped at 100."""
        return min(100.0, self.current_hours / self.target_hours * 100)


class SessionFilter(BaseModel):
    """Query-time filter over study sessions."""

    categories: List[UUID] = Field(
        default_factory=list, description="Category subset (empty means all)"
    )
    priorities: List[SessionPriority] = Field(
        default_factory=lambda: list(SessionPriority),
        description="Priority subset",
    )
    show_completed: bool = Field(default=False, description="Include completed sessions")
    start_date: Optional[date] = Field(None, description="Range start (inclusive)")
    end_date: Optional[date] = Field(None, description="Range end (inclusive)")


class Task(BaseModel):
    """Read-only view of an externally owned task."""

    id: str
    title: str
    description: Optional[str] = None
    priority: str = Field(default="Medium", description="Low, Medium, High or Urgent")
    due_date: Optional[datetime] = None
    completed: bool = False


class PomodoroPhase(BaseModel):
    """A single focus or break phase of the Pomodoro timer."""

    id: UUID = Field(default_factory=uuid4, description="Unique phase identifier")
    task_id: Optional[str] = Field(None, description="Associated task or session")
    task_name: Optional[str] = Field(None, description="Display name of the task")
    phase_type: PhaseType = Field(..., description="Focus or break")
    duration: int = Field(..., gt=0, description="Planned duration in seconds")
    started_at: datetime = Field(default_factory=datetime.now, description="Start time")
    completed_at: Optional[datetime] = Field(None, description="Completion time")


class PomodoroSettings(BaseModel):
    """Timer configuration. Durations are in seconds."""

    focus_duration: int = Field(default=25 * 60, gt=0)
    short_break_duration: int = Field(default=5 * 60, gt=0)
    long_break_duration: int = Field(default=15 * 60, gt=0)
    sessions_before_long_break: int = Field(default=4, ge=1)
    auto_start_breaks: bool = True
    auto_start_pomodoros: bool = False
    sound: str = "bell"
    volume: int = Field(default=50, ge=0, le=100)

    def duration_for(self, phase_type: PhaseType) -> int:
        """Get the configured duration for a phase type."""
        if phase_type == PhaseType.FOCUS:
            return self.focus_duration
        if phase_type == PhaseType.SHORT_BREAK:
            return self.short_break_duration
        return self.long_break_duration


class DailyFocusStats(BaseModel):
    """Focus accounting bucket for one local calendar day."""

    sessions: int = Field(0, description="Completed focus phases")
    focus_minutes: float = Field(0.0, description="Focus time in minutes")


class FocusStats(BaseModel):
    """Running focus-time aggregates."""

    total_focus_minutes: float = Field(0.0, description="Total focus time in minutes")
    total_completed_sessions: int = Field(0, description="Completed focus phases")
    daily: Dict[str, DailyFocusStats] = Field(
        default_factory=dict, description="Buckets keyed by YYYY-MM-DD"
    )


class TimeSlot(BaseModel):
    """A suggested free window."""

    start_time: datetime
    end_time: datetime


class CategoryHours(BaseModel):
    """Completed study hours for one category."""

    category_id: UUID
    hours: float


class SessionStats(BaseModel):
    """Summary of the session history."""

    total_hours: float = 0.0
    this_week_hours: float = 0.0
    completed_sessions: int = 0
    pending_sessions: int = 0
    current_streak: int = 0


class PomodoroInsights(BaseModel):
    """Insights derived from completed Pomodoro phases."""

    total_focus_time: float = Field(0.0, description="Total focus hours")
    weekly_focus_time: float = Field(0.0, description="Focus hours this week")
    daily_average: float = Field(0.0, description="Average focus hours over 7 days")
    completion_rate: float = Field(0.0, description="Focus share of completed phases")
    most_productive_day: str = "No data"
    most_productive_time: str = "No data"
    focus_score: float = Field(0.0, ge=0, le=100)


class FocusInsights(BaseModel):
    """Streak and focus-time overview."""

    current_streak: int = 0
    longest_streak: int = 0
    total_focus_time: float = Field(0.0, description="Total focus minutes")
    today_focus_time: float = Field(0.0, description="Today's focus minutes")
    weekly_focus_time: List[float] = Field(
        default_factory=lambda: [0.0] * 7,
        description="Focus minutes for the last 7 days, oldest first",
    )
    focus_score: float = Field(0.0, ge=0, le=100)


class WeeklyFocusData(BaseModel):
    """Focus hours per day for the current and previous week (Sunday first)."""

    current_week: List[float]
    previous_week: List[float]


class UnifiedStats(BaseModel):
    """Dashboard-wide snapshot combining planner and timer statistics."""

    total_hours: float = 0.0
    current_streak: int = 0
    focus_score: float = 0.0
    pending_tasks: int = 0
    session_stats: SessionStats = Field(default_factory=SessionStats)
    focus_insights: FocusInsights = Field(default_factory=FocusInsights)
    computed_at: datetime = Field(default_factory=datetime.now)
    extra: Dict[str, Any] = Field(default_factory=dict)
