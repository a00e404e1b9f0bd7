"""Business logic shared between the HTTP host and the engine services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
import logging
import math
from threading import Lock
from typing import Mapping, Sequence
from uuid import uuid4

from assessment_engine.constants.grading_constants import (
    DEFAULT_CURVE_TARGET_MEAN,
    DEFAULT_CURVE_TARGET_STD_DEV,
)
from assessment_engine.constants.quiz_constants import DEFAULT_TICK_SECONDS
from assessment_engine.core.errors import UnknownAttempt, UnknownCourse
from assessment_engine.core.grade_models import (
    CategoryTotals,
    CourseGradeResult,
    GradeCategory,
    GradeWeights,
    LevelProgress,
    ProgressGoal,
)
from assessment_engine.core.late_penalty import GradedWork
from assessment_engine.core.models import Answer, AttemptResult, QuizDefinition
from assessment_engine.core.services.goal_projector import GoalProjection, GoalProjector, RemainingWork
from assessment_engine.core.services.grade_aggregator import GradeAggregator, assignment_totals
from assessment_engine.core.services.grade_curves import CurveKind, apply_curve
from assessment_engine.core.services.grade_history import GradeHistory
from assessment_engine.core.services.grade_statistics import GradeStatistics
from assessment_engine.core.services.progress_goals import ProgressGoalRegistry
from assessment_engine.core.services.quiz_catalog import QuizCatalog
from assessment_engine.core.services.quiz_session import QuizSession, SessionState
from assessment_engine.core.services.scoring_rules import ScoringRules
from assessment_engine.core.xp_levels import award_xp, describe_level

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AttemptView:
    """Immutable snapshot of one attempt returned to consumers."""

    attempt_id: str
    learner_id: str
    quiz_id: str
    state: SessionState
    current_index: int
    question_count: int
    remaining_seconds: int | None
    elapsed_seconds: int
    answered_count: int
    ready_to_submit: bool
    result: AttemptResult | None


class AssessmentManager:
    """Facade over catalog, sessions, grade history, goals and XP.

    Every call takes the same lock, so operations on one session never
    interleave even when the HTTP host and the tick scheduler run on
    different threads.
    """

    def __init__(
        self,
        scoring_rules: ScoringRules | None = None,
        aggregator: GradeAggregator | None = None,
        projector: GoalProjector | None = None,
    ) -> None:
        self._lock = Lock()

        # Services
        self._rules = scoring_rules or ScoringRules()
        self._aggregator = aggregator or GradeAggregator()
        self._projector = projector or GoalProjector()
        self._catalog = QuizCatalog()
        self._history = GradeHistory(self._aggregator)
        self._goals = ProgressGoalRegistry()

        # In-progress attempts are ticked; finished ones are kept for results and statistics.
        self._active: dict[str, QuizSession] = {}
        self._finished: dict[str, QuizSession] = {}
        self._learners: dict[str, str] = {}
        self._xp: dict[str, int] = {}

    # --- Quiz Catalog Delegation ---

    def register_quiz(self, quiz: QuizDefinition) -> None:
        with self._lock:
            self._catalog.register(quiz)
            logger.info("Registered quiz %s (%d questions)", quiz.id, quiz.question_count)

    def get_quiz(self, quiz_id: str) -> QuizDefinition:
        with self._lock:
            return self._catalog.get(quiz_id)

    def get_quizzes(self) -> list[QuizDefinition]:
        with self._lock:
            return self._catalog.get_quizzes()

    # --- Attempt Lifecycle ---

    def start_attempt(self, quiz_id: str, learner_id: str) -> AttemptView:
        with self._lock:
            quiz = self._catalog.get(quiz_id)
            self._catalog.mark_attempted(quiz_id)
            attempt_id = uuid4().hex
            self._active[attempt_id] = QuizSession(quiz, self._rules)
            self._learners[attempt_id] = learner_id
            logger.info("Learner %s opened attempt %s on quiz %s", learner_id, attempt_id, quiz_id)
            return self._view(attempt_id)

    def get_attempt(self, attempt_id: str) -> AttemptView:
        with self._lock:
            return self._view(attempt_id)

    def get_answers(self, attempt_id: str) -> list[Answer]:
        with self._lock:
            return self._session(attempt_id).get_answers()

    def discard_attempt(self, attempt_id: str) -> None:
        """Abandon an attempt; nothing is scored or kept."""
        with self._lock:
            self._session(attempt_id)
            self._active.pop(attempt_id, None)
            self._finished.pop(attempt_id, None)
            self._learners.pop(attempt_id, None)
            logger.info("Discarded attempt %s", attempt_id)

    def answer(self, attempt_id: str, question_index: int, value: Answer) -> AttemptView:
        with self._lock:
            self._session(attempt_id).answer(question_index, value)
            return self._view(attempt_id)

    def assign_match(
        self,
        attempt_id: str,
        question_index: int,
        pair_index: int,
        selection: str | None,
    ) -> AttemptView:
        with self._lock:
            self._session(attempt_id).assign_match(question_index, pair_index, selection)
            return self._view(attempt_id)

    def advance(self, attempt_id: str) -> AttemptView:
        with self._lock:
            self._session(attempt_id).advance()
            return self._view(attempt_id)

    def retreat(self, attempt_id: str) -> AttemptView:
        with self._lock:
            self._session(attempt_id).retreat()
            return self._view(attempt_id)

    def jump_to(self, attempt_id: str, question_index: int) -> AttemptView:
        with self._lock:
            self._session(attempt_id).jump_to(question_index)
            return self._view(attempt_id)

    def tick(self, attempt_id: str, elapsed: float | timedelta = DEFAULT_TICK_SECONDS) -> AttemptView:
        with self._lock:
            result = self._session(attempt_id).tick(elapsed)
            if result is not None:
                self._finish(attempt_id, result)
            return self._view(attempt_id)

    def tick_all(self, elapsed: float | timedelta = DEFAULT_TICK_SECONDS) -> list[str]:
        """Tick every in-progress attempt; returns ids of attempts that timed out."""
        timed_out: list[str] = []
        with self._lock:
            for attempt_id, session in list(self._active.items()):
                result = session.tick(elapsed)
                if result is not None:
                    self._finish(attempt_id, result)
                    timed_out.append(attempt_id)
        return timed_out

    def submit(self, attempt_id: str) -> AttemptResult:
        with self._lock:
            result = self._session(attempt_id).submit()
            self._finish(attempt_id, result)
            return result

    # --- Grades & Goals ---

    def recompute_course_grade(
        self,
        course_id: str,
        weights: GradeWeights,
        category_totals: Mapping[GradeCategory, CategoryTotals],
        course_name: str = "",
        assignments: Sequence[GradedWork] | None = None,
    ) -> CourseGradeResult:
        """Aggregate and store a course grade.

        When ``assignments`` is given, the assignments category is rebuilt from
        those items with their late penalties applied.
        """
        totals = dict(category_totals)
        if assignments is not None:
            totals[GradeCategory.ASSIGNMENTS] = assignment_totals(assignments)
        with self._lock:
            return self._history.recompute(course_id, weights, totals, course_name)

    def get_course_grade(self, course_id: str) -> CourseGradeResult:
        with self._lock:
            return self._latest(course_id)

    def get_gpa(self) -> float:
        with self._lock:
            return self._aggregator.calculate_gpa(self._history.all_results())

    def get_course_statistics(self) -> GradeStatistics:
        """Spread of overall percentages across every graded course."""
        with self._lock:
            return GradeStatistics.from_scores(
                result.overall_percentage for result in self._history.all_results()
            )

    # --- Quiz Results ---

    def get_quiz_results(self, quiz_id: str) -> dict[str, AttemptResult]:
        """Finished attempts on one quiz, keyed by attempt id."""
        with self._lock:
            return self._quiz_results(quiz_id)

    def get_quiz_statistics(self, quiz_id: str) -> GradeStatistics:
        with self._lock:
            results = self._quiz_results(quiz_id)
            return GradeStatistics.from_scores(result.score for result in results.values())

    def curve_quiz_scores(
        self,
        quiz_id: str,
        kind: CurveKind,
        amount: float = 0.0,
        target_mean: float = DEFAULT_CURVE_TARGET_MEAN,
        target_std_dev: float = DEFAULT_CURVE_TARGET_STD_DEV,
    ) -> dict[str, float]:
        """Curved score per finished attempt. Stored results are not changed."""
        with self._lock:
            results = self._quiz_results(quiz_id)
            curved = apply_curve(
                [result.score for result in results.values()],
                kind,
                amount=amount,
                target_mean=target_mean,
                target_std_dev=target_std_dev,
            )
            logger.info("Applied %s curve to %d attempt(s) on quiz %s", kind.value, len(curved), quiz_id)
            return dict(zip(results, curved))

    def set_goal(self, course_id: str, target_letter_grade: str) -> ProgressGoal:
        with self._lock:
            return self._goals.set_goal(course_id, target_letter_grade)

    def get_goal(self, course_id: str) -> ProgressGoal | None:
        with self._lock:
            return self._goals.get_goal(course_id)

    def project_goal(self, course_id: str, remaining: RemainingWork) -> GoalProjection | None:
        """Projection against the stored goal, or None when no goal is set."""
        with self._lock:
            goal = self._goals.get_goal(course_id)
            if goal is None:
                return None
            return self._projector.project(self._latest(course_id), goal, remaining)

    # --- XP ---

    def get_xp(self, learner_id: str) -> int:
        with self._lock:
            return self._xp.get(learner_id, 0)

    def get_level(self, learner_id: str) -> LevelProgress:
        with self._lock:
            return describe_level(self._xp.get(learner_id, 0))

    # --- Internals (lock held) ---

    def _session(self, attempt_id: str) -> QuizSession:
        session = self._active.get(attempt_id) or self._finished.get(attempt_id)
        if session is None:
            raise UnknownAttempt(attempt_id)
        return session

    def _quiz_results(self, quiz_id: str) -> dict[str, AttemptResult]:
        self._catalog.get(quiz_id)
        return {
            attempt_id: session.result
            for attempt_id, session in self._finished.items()
            if session.quiz.id == quiz_id and session.result is not None
        }

    def _latest(self, course_id: str) -> CourseGradeResult:
        result = self._history.latest(course_id)
        if result is None:
            raise UnknownCourse(course_id)
        return result

    def _finish(self, attempt_id: str, result: AttemptResult) -> None:
        """Retire a just-submitted attempt and award its XP. Later calls are no-ops."""
        session = self._active.pop(attempt_id, None)
        if session is None:
            return
        self._finished[attempt_id] = session
        learner_id = self._learners[attempt_id]
        total, levels_gained = award_xp(self._xp.get(learner_id, 0), result.xp_awarded)
        self._xp[learner_id] = total
        if levels_gained:
            logger.info("Learner %s gained %d level(s), now at %d XP", learner_id, levels_gained, total)

    def _view(self, attempt_id: str) -> AttemptView:
        session = self._session(attempt_id)
        remaining = session.remaining_seconds
        return AttemptView(
            attempt_id=attempt_id,
            learner_id=self._learners[attempt_id],
            quiz_id=session.quiz.id,
            state=session.state,
            current_index=session.current_index,
            question_count=session.quiz.question_count,
            remaining_seconds=None if remaining is None else math.floor(remaining),
            elapsed_seconds=math.floor(session.elapsed_seconds),
            answered_count=session.answered_count(),
            ready_to_submit=session.is_ready_to_submit(),
            result=session.result,
        )
