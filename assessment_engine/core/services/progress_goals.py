"""Service for the per-course target grades learners set for themselves."""

from __future__ import annotations

from assessment_engine.core.grade_models import ProgressGoal


class ProgressGoalRegistry:
    """At most one goal per course; saving again overwrites it."""

    def __init__(self) -> None:
        self._goals: dict[str, ProgressGoal] = {}

    def set_goal(self, course_id: str, target_letter_grade: str) -> ProgressGoal:
        goal = ProgressGoal.for_letter(course_id, target_letter_grade)
        self._goals[course_id] = goal
        return goal

    def get_goal(self, course_id: str) -> ProgressGoal | None:
        return self._goals.get(course_id)

    def remove_goal(self, course_id: str) -> None:
        self._goals.pop(course_id, None)

    def get_goals(self) -> list[ProgressGoal]:
        return list(self._goals.values())
