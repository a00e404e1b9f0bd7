"""Domain models for weighted course grades, goals and levels."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from assessment_engine.constants.grading_constants import (
    DEFAULT_WEIGHTS,
    TARGET_PERCENTAGES,
    WEIGHT_SUM_TOLERANCE,
)


class GradeCategory(str, Enum):
    ASSIGNMENTS = "assignments"
    QUIZZES = "quizzes"
    PARTICIPATION = "participation"
    MIDTERM = "midterm"
    FINAL_EXAM = "final_exam"

    @property
    def display_name(self) -> str:
        return _CATEGORY_DISPLAY_NAMES[self]


_CATEGORY_DISPLAY_NAMES = {
    GradeCategory.ASSIGNMENTS: "Assignments",
    GradeCategory.QUIZZES: "Quizzes",
    GradeCategory.PARTICIPATION: "Participation",
    GradeCategory.MIDTERM: "Midterm",
    GradeCategory.FINAL_EXAM: "Final Exam",
}


class GradeTrend(str, Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


class GoalStatus(str, Enum):
    ON_TRACK = "on_track"
    AT_RISK = "at_risk"
    BEHIND = "behind"
    ACHIEVED = "achieved"


@dataclass(frozen=True, slots=True)
class GradeWeights:
    """Fraction of the course grade carried by each category."""

    assignments: float
    quizzes: float
    participation: float
    midterm: float
    final_exam: float

    @classmethod
    def default(cls) -> GradeWeights:
        return cls(**DEFAULT_WEIGHTS)

    @property
    def total(self) -> float:
        return self.assignments + self.quizzes + self.participation + self.midterm + self.final_exam

    @property
    def is_valid(self) -> bool:
        """All weights non-negative and summing to 1.0 within tolerance."""
        values = (self.assignments, self.quizzes, self.participation, self.midterm, self.final_exam)
        if any(value < 0 for value in values):
            return False
        return abs(self.total - 1.0) <= WEIGHT_SUM_TOLERANCE

    def weight_for(self, category: GradeCategory) -> float:
        return getattr(self, category.value)

    def with_weight(self, category: GradeCategory, value: float) -> GradeWeights:
        values = {c.value: self.weight_for(c) for c in GradeCategory}
        values[category.value] = value
        return GradeWeights(**values)


@dataclass(frozen=True, slots=True)
class CategoryTotals:
    """Earned and possible points for one category of already-graded work."""

    earned: float = 0.0
    possible: float = 0.0

    def __post_init__(self) -> None:
        if self.earned < 0 or self.possible < 0:
            raise ValueError("Category points must not be negative.")

    def plus(self, earned: float, possible: float) -> CategoryTotals:
        return CategoryTotals(earned=self.earned + earned, possible=self.possible + possible)


@dataclass(frozen=True, slots=True)
class GradeBreakdown:
    category: GradeCategory
    weight: float
    earned_points: float
    total_points: float
    percentage: float
    weighted_contribution: float


@dataclass(frozen=True, slots=True)
class CourseGradeResult:
    """One computation of a course grade; a newer result supersedes it."""

    course_id: str
    overall_percentage: float
    letter_grade: str
    grade_points: float
    trend: GradeTrend
    breakdowns: tuple[GradeBreakdown, ...] = field(default=())
    course_name: str = ""

    def breakdown_for(self, category: GradeCategory) -> GradeBreakdown:
        for breakdown in self.breakdowns:
            if breakdown.category is category:
                return breakdown
        raise KeyError(category)


@dataclass(frozen=True, slots=True)
class ProgressGoal:
    """Target letter grade a learner set for one course."""

    course_id: str
    target_letter_grade: str
    target_percentage: float

    @classmethod
    def for_letter(cls, course_id: str, letter: str) -> ProgressGoal:
        try:
            percentage = TARGET_PERCENTAGES[letter]
        except KeyError as exc:
            raise ValueError(f"Unknown target letter grade: {letter!r}") from exc
        return cls(course_id=course_id, target_letter_grade=letter, target_percentage=percentage)


@dataclass(frozen=True, slots=True)
class LevelProgress:
    """Snapshot of where a cumulative XP total sits on the level staircase."""

    xp: int
    level: int
    level_start_xp: int
    next_level_xp: int
    progress: float

    @property
    def xp_to_next_level(self) -> int:
        return self.next_level_xp - self.xp
