"""
Tests for collaborator integrations (studyplanner.integrations.collaborators).

The bridge turns planner events into task-list and motivation calls; a
failing collaborator must never affect the planner.
"""

from datetime import datetime
from unittest.mock import Mock, patch

import pytest

from studyplanner.core.planner import PlannerStore
from studyplanner.db.models import Task
from studyplanner.events.events import EventType
from studyplanner.integrations.collaborators import CollaboratorBridge, InMemoryTaskProvider


@pytest.fixture
def motivation() -> Mock:
    """Provide a mock motivation service."""
    return Mock()


class TestInMemoryTaskProvider:
    """Test cases for InMemoryTaskProvider."""

    def test_pending_and_complete(self) -> None:
        """Test that completed tasks leave the pending list."""
        provider = InMemoryTaskProvider([Task(id="1", title="Essay"), Task(id="2", title="Lab")])

        provider.complete_task("1")

        assert [task.id for task in provider.get_pending_tasks()] == ["2"]
        assert provider.get_task("1").completed is True

    def test_complete_unknown_task(self) -> None:
        """Test completing a task that does not exist."""
        with pytest.raises(KeyError):
            InMemoryTaskProvider().complete_task("missing")

    def test_add_task(self) -> None:
        """Test adding a task."""
        provider = InMemoryTaskProvider()
        provider.add_task(Task(id="9", title="Read", priority="High"))

        assert provider.get_task("9").priority == "High"


class TestCollaboratorBridge:
    """Test cases for CollaboratorBridge."""

    def test_completed_session_completes_tasks(self, events) -> None:
        """Test forwarding of associated task IDs."""
        # Arrange
        provider = Mock()
        CollaboratorBridge(events, task_provider=provider)

        # Act
        events.emit_event(EventType.SESSION_COMPLETED, {"associated_task_ids": ["a", "b"]})

        # Assert
        assert [c.args[0] for c in provider.complete_task.call_args_list] == ["a", "b"]

    def test_task_failure_does_not_stop_others(self, events) -> None:
        """Test a failing task completion is logged and skipped."""
        provider = Mock()
        provider.complete_task.side_effect = [KeyError("a"), None]
        CollaboratorBridge(events, task_provider=provider)

        with patch("studyplanner.events.event_manager.logger") as mock_logger:
            events.emit_event(EventType.SESSION_COMPLETED, {"associated_task_ids": ["a", "b"]})

        assert provider.complete_task.call_count == 2
        mock_logger.error.assert_not_called()

    def test_goal_completion_unlocks_achievement(self, events, motivation: Mock) -> None:
        """Test the goal achievement signal."""
        CollaboratorBridge(events, motivation=motivation)

        events.emit_event(EventType.GOAL_COMPLETED, {"goal_id": "g"})

        motivation.update_achievement_progress.assert_called_once_with("3", 100)
        motivation.unlock_achievement.assert_called_once_with("3")

    def test_progress_failure_still_unlocks_achievement(self, events, motivation: Mock) -> None:
        """Test that the unlock is sent even when the progress update fails."""
        # Arrange
        motivation.update_achievement_progress.side_effect = RuntimeError("boom")
        CollaboratorBridge(events, motivation=motivation)

        # Act
        with patch("studyplanner.integrations.collaborators.logger") as mock_logger:
            events.emit_event(EventType.GOAL_COMPLETED, {"goal_id": "g"})

        # Assert
        motivation.unlock_achievement.assert_called_once_with("3")
        mock_logger.warning.assert_called_once()

    def test_streak_activity(self, events, motivation: Mock) -> None:
        """Test the streak signal."""
        CollaboratorBridge(events, motivation=motivation)

        events.emit_event(EventType.STREAK_ACTIVITY)

        motivation.increment_streak.assert_called_once()

    def test_motivation_failure_is_swallowed(self, events, motivation: Mock) -> None:
        """Test a failing motivation service."""
        motivation.increment_streak.side_effect = RuntimeError("offline")
        CollaboratorBridge(events, motivation=motivation)

        with patch("studyplanner.events.event_manager.logger") as mock_logger:
            events.emit_event(EventType.STREAK_ACTIVITY)

        motivation.increment_streak.assert_called_once()
        mock_logger.error.assert_not_called()

    def test_missing_collaborators_are_skipped(self, events) -> None:
        """Test a bridge without collaborators."""
        CollaboratorBridge(events)

        with patch("studyplanner.events.event_manager.logger") as mock_logger:
            events.emit_event(EventType.SESSION_COMPLETED, {"associated_task_ids": ["a"]})
            events.emit_event(EventType.GOAL_COMPLETED)
            events.emit_event(EventType.STREAK_ACTIVITY)

        mock_logger.error.assert_not_called()

    def test_detach(self, events, motivation: Mock) -> None:
        """Test that a detached bridge stops forwarding."""
        bridge = CollaboratorBridge(events, motivation=motivation)

        bridge.detach()
        events.emit_event(EventType.STREAK_ACTIVITY)

        motivation.increment_streak.assert_not_called()


class TestPlannerThroughBridge:
    """Test cases for the planner wired to collaborators via events."""

    def test_completing_session_with_failing_tasks(self, clock, events, motivation: Mock) -> None:
        """Test that the planner's completion stands when the task list fails."""
        # Arrange
        provider = Mock()
        provider.complete_task.side_effect = RuntimeError("task list unavailable")
        CollaboratorBridge(events, task_provider=provider, motivation=motivation)
        planner = PlannerStore(events=events, clock=clock)
        category_id = planner.add_category("Physics")
        session_id = planner.add_session(
            title="Mechanics",
            start_time=datetime(2024, 1, 10, 9),
            end_time=datetime(2024, 1, 10, 10),
            category_id=category_id,
            associated_task_ids=["t1"],
        )

        # Act
        planner.complete_session(session_id)

        # Assert
        assert planner.get_session(session_id).is_completed is True
        provider.complete_task.assert_called_once_with("t1")
        motivation.increment_streak.assert_called_once()

    def test_goal_completion_reaches_motivation(self, clock, events, motivation: Mock) -> None:
        """Test a session that completes a goal unlocks the achievement."""
        CollaboratorBridge(events, motivation=motivation)
        planner = PlannerStore(events=events, clock=clock)
        category_id = planner.add_category("Physics")
        planner.add_goal("Two hours", category_id, target_hours=2)

        planner.add_session(
            title="Mechanics",
            start_time=datetime(2024, 1, 9, 9),
            end_time=datetime(2024, 1, 9, 11),
            category_id=category_id,
        )

        motivation.unlock_achievement.assert_called_once_with("3")
        motivation.increment_streak.assert_not_called()

    def test_session_added_as_completed_completes_tasks(self, clock, events) -> None:
        """Test that recording a finished session completes its tasks."""
        # Arrange
        provider = InMemoryTaskProvider([Task(id="t1", title="Essay"), Task(id="t2", title="Lab")])
        CollaboratorBridge(events, task_provider=provider)
        planner = PlannerStore(events=events, clock=clock)
        category_id = planner.add_category("Physics")

        # Act
        planner.add_session(
            title="Mechanics",
            start_time=datetime(2024, 1, 9, 9),
            end_time=datetime(2024, 1, 9, 10),
            category_id=category_id,
            is_completed=True,
            associated_task_ids=["t1"],
        )

        # Assert
        assert [task.id for task in provider.get_pending_tasks()] == ["t2"]
