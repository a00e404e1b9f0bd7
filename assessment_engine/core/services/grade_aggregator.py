"""Combines category point totals into a weighted course grade."""

from __future__ import annotations

import logging
from typing import Mapping, Sequence

from assessment_engine.constants.grading_constants import (
    FAILING_LETTER_GRADE,
    GRADE_POINTS,
    LETTER_GRADE_BOUNDARIES,
    TREND_EPSILON,
)
from assessment_engine.core.errors import InvalidWeightConfiguration
from assessment_engine.core.grade_models import (
    CategoryTotals,
    CourseGradeResult,
    GradeBreakdown,
    GradeCategory,
    GradeTrend,
    GradeWeights,
)
from assessment_engine.core.late_penalty import GradedWork
from assessment_engine.core.models import AttemptResult

logger = logging.getLogger(__name__)


def letter_grade(percentage: float) -> str:
    for lower_bound, letter in LETTER_GRADE_BOUNDARIES:
        if percentage >= lower_bound:
            return letter
    return FAILING_LETTER_GRADE


def grade_points(letter: str) -> float:
    return GRADE_POINTS.get(letter, 0.0)


def compute_trend(current: float, previous: float | None) -> GradeTrend:
    if previous is None:
        return GradeTrend.STABLE
    if current > previous + TREND_EPSILON:
        return GradeTrend.IMPROVING
    if current < previous - TREND_EPSILON:
        return GradeTrend.DECLINING
    return GradeTrend.STABLE


class GradeAggregator:
    """Stateless weighted-grade calculator.

    Weights are never renormalized: a configuration that does not sum to 1.0
    is rejected before anything is computed.
    """

    def aggregate(
        self,
        weights: GradeWeights,
        category_totals: Mapping[GradeCategory, CategoryTotals],
        previous: CourseGradeResult | None = None,
        course_id: str = "",
        course_name: str = "",
    ) -> CourseGradeResult:
        if not weights.is_valid:
            logger.warning("Rejected grade weights for course %s: %s", course_id or "?", weights)
            raise InvalidWeightConfiguration(
                f"Grade weights must be non-negative and sum to 1.0 (got {weights.total:.4f})."
            )

        breakdowns = tuple(
            self._breakdown(category, weights.weight_for(category), category_totals.get(category))
            for category in GradeCategory
        )
        overall = max(0.0, sum(b.weighted_contribution for b in breakdowns))
        letter = letter_grade(overall)
        return CourseGradeResult(
            course_id=course_id,
            course_name=course_name,
            overall_percentage=overall,
            letter_grade=letter,
            grade_points=grade_points(letter),
            trend=compute_trend(overall, previous.overall_percentage if previous else None),
            breakdowns=breakdowns,
        )

    @staticmethod
    def _breakdown(
        category: GradeCategory,
        weight: float,
        totals: CategoryTotals | None,
    ) -> GradeBreakdown:
        totals = totals or CategoryTotals()
        percentage = (totals.earned / totals.possible) * 100 if totals.possible > 0 else 0.0
        return GradeBreakdown(
            category=category,
            weight=weight,
            earned_points=totals.earned,
            total_points=totals.possible,
            percentage=percentage,
            weighted_contribution=percentage * weight,
        )

    # --- Across courses ---

    @staticmethod
    def calculate_gpa(results: Sequence[CourseGradeResult]) -> float:
        """Mean grade points on the 4.0 scale; 0.0 when there are no courses."""
        if not results:
            return 0.0
        return sum(result.grade_points for result in results) / len(results)

    @staticmethod
    def weighted_average_percent(results: Sequence[CourseGradeResult]) -> float:
        if not results:
            return 0.0
        return sum(result.overall_percentage for result in results) / len(results)

    def overall_letter_grade(self, results: Sequence[CourseGradeResult]) -> str:
        return letter_grade(self.weighted_average_percent(results))


def quiz_totals(results: Sequence[AttemptResult]) -> CategoryTotals:
    """Each attempt counts as one data point worth 100 points."""
    return CategoryTotals(
        earned=sum(result.score for result in results),
        possible=100.0 * len(results),
    )


def participation_totals(sessions_attended: int, sessions_held: int) -> CategoryTotals:
    if sessions_attended < 0 or sessions_held < 0 or sessions_attended > sessions_held:
        raise ValueError("Attendance counts must satisfy 0 <= attended <= held.")
    return CategoryTotals(earned=float(sessions_attended), possible=float(sessions_held))


def assignment_totals(work: Sequence[GradedWork]) -> CategoryTotals:
    """Sum assignment points after each item's late penalty."""
    return CategoryTotals(
        earned=sum(item.adjusted_points for item in work),
        possible=sum(item.possible_points for item in work),
    )
