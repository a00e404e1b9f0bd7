"""Late submission penalties applied to a graded percentage."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class LatePenaltyKind(str, Enum):
    NONE = "none"
    PERCENT_PER_DAY = "percent_per_day"
    FLAT_DEDUCTION = "flat_deduction"
    NO_CREDIT = "no_credit"


@dataclass(frozen=True, slots=True)
class LatePenaltyPolicy:
    """How an assignment penalizes late work.

    ``per_day`` is a percentage for PERCENT_PER_DAY and points for
    FLAT_DEDUCTION. Work later than ``max_late_days`` earns nothing.
    """

    kind: LatePenaltyKind = LatePenaltyKind.NONE
    per_day: float = 0.0
    max_late_days: int = 7

    def __post_init__(self) -> None:
        if self.per_day < 0:
            raise ValueError("Late penalty per day must not be negative.")
        if self.max_late_days < 0:
            raise ValueError("Maximum late days must not be negative.")

    def penalty_percent(self, days_late: int, max_points: float) -> float:
        """Percentage points deducted, capped at 100."""
        if self.kind is LatePenaltyKind.NONE or days_late <= 0:
            return 0.0
        if days_late > self.max_late_days or self.kind is LatePenaltyKind.NO_CREDIT:
            return 100.0
        if self.kind is LatePenaltyKind.PERCENT_PER_DAY:
            return min(days_late * self.per_day, 100.0)
        if max_points <= 0:
            return 0.0
        return min(days_late * self.per_day / max_points * 100, 100.0)

    def apply(self, raw_percent: float, days_late: int, max_points: float) -> float:
        if self.kind is LatePenaltyKind.NONE or days_late <= 0:
            return raw_percent
        return max(raw_percent - self.penalty_percent(days_late, max_points), 0.0)

    def apply_to_points(self, raw_points: float, days_late: int, max_points: float) -> float:
        if max_points <= 0:
            return raw_points
        adjusted = self.apply(raw_points / max_points * 100, days_late, max_points)
        return adjusted / 100 * max_points

    def can_submit(self, days_late: int) -> bool:
        return self.kind is LatePenaltyKind.NONE or days_late <= self.max_late_days

    def summary(self, days_late: int) -> str | None:
        """Short badge text such as "2 days late, -20%", or None when not penalized."""
        if self.kind is LatePenaltyKind.NONE or days_late <= 0:
            return None
        day_label = "day" if days_late == 1 else "days"
        if days_late > self.max_late_days:
            return f"{days_late} {day_label} late, exceeds {self.max_late_days}-day limit, no credit"
        if self.kind is LatePenaltyKind.PERCENT_PER_DAY:
            return f"{days_late} {day_label} late, -{int(min(days_late * self.per_day, 100))}%"
        if self.kind is LatePenaltyKind.FLAT_DEDUCTION:
            return f"{days_late} {day_label} late, -{int(days_late * self.per_day)} pts"
        return f"{days_late} {day_label} late, no credit"


def days_late(due_at: datetime, submitted_at: datetime) -> int:
    """Whole days between the due date and submission, never negative."""
    if submitted_at <= due_at:
        return 0
    return (submitted_at - due_at).days


@dataclass(frozen=True, slots=True)
class GradedWork:
    """One graded assignment with how late it came in and the policy it falls under."""

    earned_points: float
    possible_points: float
    days_late: int = 0
    policy: LatePenaltyPolicy = field(default_factory=LatePenaltyPolicy)

    def __post_init__(self) -> None:
        if self.earned_points < 0 or self.possible_points < 0:
            raise ValueError("Assignment points must not be negative.")
        if self.days_late < 0:
            raise ValueError("Days late must not be negative.")

    @property
    def adjusted_points(self) -> float:
        return self.policy.apply_to_points(self.earned_points, self.days_late, self.possible_points)

    @property
    def penalty_summary(self) -> str | None:
        return self.policy.summary(self.days_late)
