"""
Pomodoro timer state machine.

The timer moves through Ready, Running, Paused and Completed for focus and
break phases. It does not keep time itself: a tick driver calls
``update_time_remaining`` once per elapsed second, and each tick of a running
focus phase credits one second to the focus accountant.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from ..db.models import PhaseType, PomodoroPhase, PomodoroSettings, TimerStatus
from ..db.repository import PomodoroRepository
from ..events.event_manager import EventManager
from ..events.events import EventType
from .focus import FocusAccountant, FocusInsightsCalculator

logger = logging.getLogger(__name__)


class PomodoroTimer:
    """Focus/break phase lifecycle with auto-chaining and long-break cadence."""

    def __init__(
        self,
        settings: Optional[PomodoroSettings] = None,
        repository: Optional[PomodoroRepository] = None,
        events: Optional[EventManager] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the timer and load persisted settings and history.

        Args:
            settings: Initial settings; stored settings take precedence
            repository: Durable storage for settings, phases and focus stats
            events: Receives phase lifecycle events
            clock: Source of the current local time
        """
        self.repository = repository
        self.events = events
        self.clock = clock

        self._settings = settings or PomodoroSettings()
        self._completed_phases: List[PomodoroPhase] = []
        self.accountant = FocusAccountant(clock=clock)
        self._load()

        self._status = TimerStatus.READY
        self._current_phase: Optional[PomodoroPhase] = None
        self._time_remaining = self._settings.focus_duration
        self._focus_count = 0

    def _load(self) -> None:
        if self.repository is None:
            return
        try:
            stored = self.repository.get_settings()
            if stored is not None:
                self._settings = stored
            self._completed_phases = self.repository.get_completed_phases()
            self.accountant = FocusAccountant(self.repository.get_focus_stats(), clock=self.clock)
        except Exception as e:
            logger.error(f"Failed to load timer state: {e}", exc_info=True)

    def _persist(self, method: str, *args: Any) -> None:
        if self.repository is None:
            return
        try:
            getattr(self.repository, method)(*args)
        except Exception as e:
            logger.error(f"Failed to persist timer state ({method}): {e}", exc_info=True)

    def _emit(self, event_type: EventType, data: Dict[str, Any]) -> None:
        if self.events is not None:
            self.events.emit_event(event_type, data=data)

    # State

    @property
    def status(self) -> TimerStatus:
        return self._status

    @property
    def current_phase(self) -> Optional[PomodoroPhase]:
        return self._current_phase

    @property
    def time_remaining(self) -> int:
        """Seconds left in the current phase."""
        return self._time_remaining

    @property
    def settings(self) -> PomodoroSettings:
        return self._settings

    @property
    def completed_phases(self) -> List[PomodoroPhase]:
        return list(self._completed_phases)

    @property
    def completed_phases_count(self) -> int:
        """Number of phases of any type completed so far."""
        return len(self._completed_phases)

    @property
    def focus_count(self) -> int:
        """Completed focus phases counted toward the next long break."""
        return self._focus_count

    def next_phase_type(self, finished: PhaseType) -> PhaseType:
        """Get the phase that follows a finished one."""
        if finished != PhaseType.FOCUS:
            return PhaseType.FOCUS
        if self._focus_count % self._settings.sessions_before_long_break == 0:
            return PhaseType.LONG_BREAK
        return PhaseType.SHORT_BREAK

    # Transitions

    def start_session(
        self,
        phase_type: PhaseType,
        task_id: Optional[str] = None,
        task_name: Optional[str] = None,
    ) -> PomodoroPhase:
        """
        Start a new phase from any state, replacing any current phase.

        Args:
            phase_type: focus, shortBreak or longBreak
            task_id: Optional task or session the phase belongs to
            task_name: Display name for the associated task
        """
        phase_type = PhaseType(phase_type)
        if self._current_phase is not None:
            logger.debug(f"Discarding unfinished {self._current_phase.phase_type.value} phase")

        phase = PomodoroPhase(
            task_id=task_id,
            task_name=task_name,
            phase_type=phase_type,
            duration=self._settings.duration_for(phase_type),
            started_at=self.clock(),
        )
        self._current_phase = phase
        self._status = TimerStatus.RUNNING
        self._time_remaining = phase.duration

        logger.info(f"Started {phase_type.value} phase ({phase.duration}s)")
        self._emit(
            EventType.PHASE_STARTED,
            {
                "phase_id": str(phase.id),
                "phase_type": phase_type.value,
                "duration": phase.duration,
                "task_id": task_id,
            },
        )
        return phase

    def pause_session(self) -> bool:
        """Pause a running phase. Returns False if the timer was not running."""
        if self._status != TimerStatus.RUNNING:
            logger.debug(f"Ignoring pause while {self._status.value}")
            return False
        self._status = TimerStatus.PAUSED
        return True

    def resume_session(self) -> bool:
        """Resume a paused phase. Returns False if the timer was not paused."""
        if self._status != TimerStatus.PAUSED:
            logger.debug(f"Ignoring resume while {self._status.value}")
            return False
        self._status = TimerStatus.RUNNING
        return True

    def stop_session(self) -> None:
        """Abandon the current phase without recording it and return to Ready."""
        phase = self._current_phase
        self._current_phase = None
        self._status = TimerStatus.READY
        self._time_remaining = self._settings.focus_duration

        if phase is None:
            return
        if phase.phase_type == PhaseType.FOCUS:
            self._focus_count = 0
        self._emit(
            EventType.PHASE_STOPPED,
            {"phase_id": str(phase.id), "phase_type": phase.phase_type.value},
        )

    def reset_session(self) -> None:
        """Restore the full duration of the current phase, keeping the status."""
        if self._current_phase is None:
            logger.debug("Ignoring reset without a current phase")
            return
        self._time_remaining = self._current_phase.duration

    def complete_session(self) -> Optional[PomodoroPhase]:
        """
        Finish the current phase and chain into the next one if configured.

        A finished focus phase counts toward the day's completed sessions; its
        minutes were already credited tick by tick.

        Returns:
            The finished phase, or None if there was nothing to complete
        """
        phase = self._current_phase
        if phase is None:
            logger.debug("Ignoring completion without a current phase")
            return None

        finished = phase.model_copy(update={"completed_at": self.clock()})
        self._completed_phases.append(finished)
        self._current_phase = None
        self._status = TimerStatus.COMPLETED
        self._persist("save_phase", finished)

        if finished.phase_type == PhaseType.FOCUS:
            self._focus_count += 1
            day = self.accountant.record_completed_session(finished.completed_at)
            self._persist("save_focus_stats", self.accountant.stats, [day])

        is_break = finished.phase_type != PhaseType.FOCUS
        auto_start = (
            self._settings.auto_start_pomodoros if is_break else self._settings.auto_start_breaks
        )
        next_type = self.next_phase_type(finished.phase_type)

        logger.info(f"Completed {finished.phase_type.value} phase")
        self._emit(
            EventType.PHASE_COMPLETED,
            {
                "phase_id": str(finished.id),
                "phase_type": finished.phase_type.value,
                "duration": finished.duration,
                "task_id": finished.task_id,
                "next_phase_type": next_type.value if auto_start else None,
            },
        )

        if auto_start:
            self.start_session(next_type, finished.task_id, finished.task_name)
        else:
            self._status = TimerStatus.READY
            self._time_remaining = self._settings.focus_duration

        return finished

    def update_time_remaining(self, seconds: int) -> None:
        """
        Set the seconds left; the per-second heartbeat of the tick driver.

        While a focus phase is running each call credits one second of focus time.
        """
        self._time_remaining = max(0, int(seconds))
        if self._is_focusing():
            self._credit_focus(1)

    def track_real_time_focus(self, elapsed_seconds: float) -> None:
        """Credit an arbitrary number of elapsed seconds while a focus phase runs."""
        if self._is_focusing():
            self._credit_focus(elapsed_seconds)

    def _is_focusing(self) -> bool:
        return (
            self._status == TimerStatus.RUNNING
            and self._current_phase is not None
            and self._current_phase.phase_type == PhaseType.FOCUS
        )

    def _credit_focus(self, seconds: float) -> None:
        day = self.accountant.track(seconds)
        if day is not None:
            self._persist("save_focus_stats", self.accountant.stats, [day])

    # Settings

    def update_settings(self, **fields: Any) -> PomodoroSettings:
        """
        Merge changes into the settings.

        Raises:
            ValidationError: If the merged settings are invalid
        """
        self._settings = PomodoroSettings.model_validate({**self._settings.model_dump(), **fields})
        if self._current_phase is None:
            self._time_remaining = self._settings.focus_duration
        self._persist("save_settings", self._settings)
        return self._settings

    # Insights

    def insights(self) -> FocusInsightsCalculator:
        """Get insight queries over the completed-phase history."""
        return FocusInsightsCalculator(self._completed_phases, clock=self.clock)
