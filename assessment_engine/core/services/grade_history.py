"""Service remembering the latest course grade so trends can be computed."""

from __future__ import annotations

from typing import Mapping

from assessment_engine.core.grade_models import CategoryTotals, CourseGradeResult, GradeCategory, GradeWeights
from assessment_engine.core.services.grade_aggregator import GradeAggregator


class GradeHistory:
    """Keeps the most recent result per course; each new result supersedes it."""

    def __init__(self, aggregator: GradeAggregator | None = None) -> None:
        self._aggregator = aggregator or GradeAggregator()
        self._latest: dict[str, CourseGradeResult] = {}

    def latest(self, course_id: str) -> CourseGradeResult | None:
        return self._latest.get(course_id)

    def recompute(
        self,
        course_id: str,
        weights: GradeWeights,
        category_totals: Mapping[GradeCategory, CategoryTotals],
        course_name: str = "",
    ) -> CourseGradeResult:
        """Aggregate against the stored result and store the new one.

        A rejected weight configuration leaves the stored result untouched.
        """
        result = self._aggregator.aggregate(
            weights,
            category_totals,
            previous=self._latest.get(course_id),
            course_id=course_id,
            course_name=course_name,
        )
        self._latest[course_id] = result
        return result

    def all_results(self) -> list[CourseGradeResult]:
        return list(self._latest.values())

    def forget(self, course_id: str) -> None:
        self._latest.pop(course_id, None)

    def clear(self) -> None:
        self._latest.clear()
