"""
Pytest configuration and fixtures for study planner tests.

This module provides shared fixtures and configuration for all test modules.
"""

import tempfile
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Generator
from unittest.mock import Mock, patch

import pytest

from studyplanner.core.planner import PlannerStore
from studyplanner.core.pomodoro import PomodoroTimer
from studyplanner.db.models import PomodoroSettings, StudySession
from studyplanner.db.repository import PlannerRepository, PomodoroRepository
from studyplanner.db.schema import DatabaseManager
from studyplanner.events.event_manager import EventManager
from studyplanner.utils import config as config_module
from studyplanner.utils.config import ConfigManager

# Wednesday; the week started on Sunday 2024-01-07
FIXED_NOW = datetime(2024, 1, 10, 12, 0, 0)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture(autouse=True)
def isolated_config(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[ConfigManager, None, None]:
    """Point the global configuration at a temporary directory."""
    monkeypatch.setenv("STUDYPLANNER_HEADLESS", "true")
    with (
        patch.object(config_module, "user_config_dir", return_value=str(temp_dir / "config")),
        patch.object(config_module, "user_data_dir", return_value=str(temp_dir / "data")),
    ):
        manager = ConfigManager()
        monkeypatch.setattr(config_module, "_config_manager", manager)
        yield manager


@pytest.fixture
def clock() -> FakeClock:
    """Provide a clock fixed at a known Wednesday noon."""
    return FakeClock(FIXED_NOW)


@pytest.fixture
def today() -> date:
    """Provide the fixed clock's date."""
    return FIXED_NOW.date()


@pytest.fixture
def test_db_path(temp_dir: Path) -> Path:
    """Provide a test database path."""
    return temp_dir / "test_studyplanner.db"


@pytest.fixture
def db_manager(test_db_path: Path) -> DatabaseManager:
    """Provide a test database manager."""
    manager = DatabaseManager(test_db_path)
    manager.initialize_database()
    return manager


@pytest.fixture
def planner_repository(db_manager: DatabaseManager) -> PlannerRepository:
    """Provide a test planner repository."""
    return PlannerRepository(db_manager)


@pytest.fixture
def pomodoro_repository(db_manager: DatabaseManager) -> PomodoroRepository:
    """Provide a test Pomodoro repository."""
    return PomodoroRepository(db_manager)


@pytest.fixture
def events() -> EventManager:
    """Provide a fresh event manager."""
    return EventManager()


@pytest.fixture
def planner(clock: FakeClock, events: EventManager) -> PlannerStore:
    """Provide an in-memory planner store on the fixed clock."""
    return PlannerStore(events=events, clock=clock)


@pytest.fixture
def persistent_planner(
    planner_repository: PlannerRepository, clock: FakeClock, events: EventManager
) -> PlannerStore:
    """Provide a planner store backed by SQLite."""
    return PlannerStore(repository=planner_repository, events=events, clock=clock)


@pytest.fixture
def timer(clock: FakeClock, events: EventManager) -> PomodoroTimer:
    """Provide an in-memory timer with default settings."""
    return PomodoroTimer(settings=PomodoroSettings(), events=events, clock=clock)


@pytest.fixture
def mock_task_provider() -> Mock:
    """Provide a task provider with no pending tasks."""
    provider = Mock()
    provider.get_pending_tasks.return_value = []
    provider.get_task.return_value = None
    return provider


@pytest.fixture
def math_category_id(planner: PlannerStore):
    """Provide the ID of a freshly added Math category."""
    return planner.add_category("Math", "#FF0000")


@pytest.fixture
def sample_session(math_category_id) -> StudySession:
    """Provide a sample two-hour session."""
    return StudySession(
        title="Linear algebra",
        description="Chapter 3",
        start_time=datetime(2024, 1, 10, 9, 0),
        end_time=datetime(2024, 1, 10, 11, 0),
        category_id=math_category_id,
        associated_task_ids=["task-1"],
        pomodoro_count=4,
    )
