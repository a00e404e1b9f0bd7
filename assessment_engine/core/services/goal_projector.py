"""Projects the average a learner still needs to reach a target grade.

Every category except the one holding the remaining work is treated as fixed
at its current contribution:

    fixed = overall - category_contribution
    required_category_pct = (target - fixed) / category_weight
    required_average = (required_category_pct * (possible + remaining)
                        - earned) / remaining

with percentages scaled to points where needed. A result of 0 or below means
the target is already met. Above 100 means the remaining work cannot get
there. Neither case is clamped.
"""

from __future__ import annotations

from dataclasses import dataclass

from assessment_engine.constants.grading_constants import (
    GOAL_AT_RISK_GAP,
    GOAL_AT_RISK_MAX_GAP,
    GOAL_AT_RISK_REQUIRED_AVERAGE,
    GOAL_ON_TRACK_MAX_GAP,
    WEIGHT_SUM_TOLERANCE,
)
from assessment_engine.core.errors import InvalidWeightConfiguration
from assessment_engine.core.grade_models import (
    CourseGradeResult,
    GoalStatus,
    GradeCategory,
    ProgressGoal,
)


@dataclass(frozen=True, slots=True)
class RemainingWork:
    """Not-yet-completed items that all belong to one category."""

    item_count: int
    possible_points: float
    category: GradeCategory = GradeCategory.ASSIGNMENTS


@dataclass(frozen=True, slots=True)
class GoalProjection:
    course_id: str
    target_percentage: float
    current_percentage: float
    required_average: float | None
    status: GoalStatus

    @property
    def gap(self) -> float:
        return self.target_percentage - self.current_percentage

    @property
    def is_met(self) -> bool:
        return self.required_average is not None and self.required_average <= 0

    @property
    def is_unreachable(self) -> bool:
        return self.required_average is not None and self.required_average > 100


def classify_goal_status(
    current_percentage: float,
    target_percentage: float,
    required_average: float | None,
) -> GoalStatus:
    if current_percentage >= target_percentage:
        return GoalStatus.ACHIEVED

    gap = target_percentage - current_percentage
    if required_average is not None:
        if required_average > 100:
            return GoalStatus.BEHIND
        if required_average > GOAL_AT_RISK_REQUIRED_AVERAGE or gap > GOAL_AT_RISK_GAP:
            return GoalStatus.AT_RISK

    # Gap bands apply whether or not a projection exists.
    if gap <= GOAL_ON_TRACK_MAX_GAP:
        return GoalStatus.ON_TRACK
    if gap <= GOAL_AT_RISK_MAX_GAP:
        return GoalStatus.AT_RISK
    return GoalStatus.BEHIND


class GoalProjector:
    """Stateless projection of required scores on remaining work."""

    def required_average(
        self,
        current: CourseGradeResult,
        target_percentage: float,
        remaining_item_count: int,
        remaining_items_weight: float,
        *,
        remaining_possible: float,
        category: GradeCategory = GradeCategory.ASSIGNMENTS,
    ) -> float | None:
        """Average percentage needed on the remaining items, or None if none remain."""
        if remaining_item_count < 0:
            raise ValueError("Remaining item count must not be negative.")
        if remaining_item_count == 0:
            return None
        if remaining_possible <= 0:
            raise ValueError("Remaining items must be worth a positive number of points.")

        breakdown = current.breakdown_for(category)
        if abs(remaining_items_weight - breakdown.weight) > WEIGHT_SUM_TOLERANCE:
            raise InvalidWeightConfiguration(
                f"Remaining items weight {remaining_items_weight} does not match the "
                f"{category.value} weight {breakdown.weight} of the course result."
            )
        if remaining_items_weight <= 0:
            # A zero-weight category cannot move the course grade.
            return None

        fixed_contribution = current.overall_percentage - breakdown.weighted_contribution
        required_category_pct = (target_percentage - fixed_contribution) / remaining_items_weight

        total_possible = breakdown.total_points + remaining_possible
        required_points = required_category_pct / 100 * total_possible - breakdown.earned_points
        required = required_points / remaining_possible * 100

        if current.overall_percentage >= target_percentage:
            return min(required, 0.0)
        return required

    def project(
        self,
        current: CourseGradeResult,
        goal: ProgressGoal,
        remaining: RemainingWork,
    ) -> GoalProjection:
        required = self.required_average(
            current,
            goal.target_percentage,
            remaining.item_count,
            current.breakdown_for(remaining.category).weight,
            remaining_possible=remaining.possible_points,
            category=remaining.category,
        )
        return GoalProjection(
            course_id=current.course_id,
            target_percentage=goal.target_percentage,
            current_percentage=current.overall_percentage,
            required_average=required,
            status=classify_goal_status(current.overall_percentage, goal.target_percentage, required),
        )
