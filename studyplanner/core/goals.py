"""
Goal progress tracking.

Study hours are attributed to goals when a session is created. A goal's
``current_hours`` never decreases and ``is_completed`` flips to True exactly
once, as soon as ``current_hours`` reaches ``target_hours``.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from ..db.models import StudyGoal, StudySession

logger = logging.getLogger(__name__)


@dataclass
class GoalAttribution:
    """Goals touched by attributing one session."""

    updated: List[StudyGoal] = field(default_factory=list)
    completed: List[StudyGoal] = field(default_factory=list)


class GoalProgressTracker:
    """Attributes session hours to open goals and detects goal completion."""

    def attribute(self, goals: List[StudyGoal], session: StudySession) -> GoalAttribution:
        """
        Add a session's elapsed hours to every open goal in its category.

        Args:
            goals: Goals to consider; matching goals are updated in place
            session: Newly created session

        Returns:
            The goals that were updated and those that became completed
        """
        result = GoalAttribution()
        hours = session.duration_hours
        if hours is None or hours <= 0:
            return result

        for goal in goals:
            if goal.is_completed or goal.category_id != session.category_id:
                continue

            goal.current_hours += hours
            result.updated.append(goal)

            if goal.current_hours >= goal.target_hours:
                goal.is_completed = True
                result.completed.append(goal)
                logger.info(f"Goal '{goal.title}' reached {goal.target_hours}h")

        return result

    def apply_update(self, goal: StudyGoal, fields: Dict[str, Any]) -> Tuple[StudyGoal, bool]:
        """
        Merge edits into a goal while keeping progress monotonic.

        Args:
            goal: Current goal state
            fields: Fields to change

        Returns:
            The validated, merged goal and whether this update completed it
        """
        changes = dict(fields)
        changes.pop("id", None)

        new_hours = changes.get("current_hours")
        if new_hours is not None and new_hours < goal.current_hours:
            logger.warning(
                f"Ignoring decrease of goal '{goal.title}' hours "
                f"from {goal.current_hours} to {new_hours}"
            )
            changes.pop("current_hours")

        if goal.is_completed and changes.get("is_completed") is False:
            logger.warning(f"Goal '{goal.title}' is already completed; ignoring reopen")
            changes.pop("is_completed")

        merged = StudyGoal.model_validate({**goal.model_dump(), **changes})
        newly_completed = False
        if not goal.is_completed:
            if merged.is_completed or merged.current_hours >= merged.target_hours:
                merged.is_completed = True
                newly_completed = True

        return merged, newly_completed
