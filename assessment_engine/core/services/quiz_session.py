"""State machine for one learner's attempt at a quiz."""

from __future__ import annotations

from datetime import timedelta
from enum import Enum
import logging

from assessment_engine.constants.quiz_constants import (
    DEFAULT_TICK_SECONDS,
    LOW_TIME_WARNING_SECONDS,
)
from assessment_engine.core.errors import InvalidAnswerShape, InvalidQuestionIndex, SessionAlreadySubmitted
from assessment_engine.core.models import (
    Answer,
    AttemptResult,
    EssayAnswer,
    FreeResponseQuestion,
    MatchingAnswer,
    MatchingQuestion,
    OptionAnswer,
    QuestionDefinition,
    QuizDefinition,
    TextAnswer,
    empty_answer_for,
)
from assessment_engine.core.services.scoring_rules import ScoringRules

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"


class QuizSession:
    """Holds the answers, cursor and countdown of an in-progress attempt.

    The session never reads a clock. The host calls ``tick`` once per interval;
    when a timed quiz runs out, ``tick`` submits on the learner's behalf.
    Callers must serialize every call on a session.
    """

    def __init__(self, quiz: QuizDefinition, scoring_rules: ScoringRules | None = None) -> None:
        self._quiz = quiz
        self._rules = scoring_rules or ScoringRules()
        self._answers: list[Answer] = [empty_answer_for(q) for q in quiz.questions]
        self._cursor: int = 0
        self._remaining = timedelta(seconds=quiz.time_limit_seconds)
        self._elapsed = timedelta()
        self._state = SessionState.IN_PROGRESS
        self._result: AttemptResult | None = None
        logger.info(
            "Started attempt on quiz %s (%d questions, limit %d min)",
            quiz.id,
            quiz.question_count,
            quiz.time_limit_minutes,
        )

    # --- Read-only state ---

    @property
    def quiz(self) -> QuizDefinition:
        return self._quiz

    @property
    def state(self) -> SessionState:
        return self._state

    def is_submitted(self) -> bool:
        return self._state is SessionState.SUBMITTED

    @property
    def current_index(self) -> int:
        return self._cursor

    @property
    def current_question(self) -> QuestionDefinition:
        return self._quiz.questions[self._cursor]

    @property
    def remaining_seconds(self) -> float | None:
        """Seconds left on the countdown, or None for untimed quizzes."""
        if not self._quiz.is_timed:
            return None
        return self._remaining.total_seconds()

    @property
    def elapsed_seconds(self) -> float:
        return self._elapsed.total_seconds()

    @property
    def result(self) -> AttemptResult | None:
        return self._result

    def get_answers(self) -> list[Answer]:
        return list(self._answers)

    def get_answer(self, question_index: int) -> Answer:
        self._check_index(question_index)
        return self._answers[question_index]

    def formatted_remaining(self) -> str:
        shown = self._remaining if self._quiz.is_timed else self._elapsed
        minutes, seconds = divmod(int(shown.total_seconds()), 60)
        return f"{minutes:02d}:{seconds:02d}"

    def is_low_on_time(self) -> bool:
        return self._quiz.is_timed and self._remaining < timedelta(seconds=LOW_TIME_WARNING_SECONDS)

    def answered_count(self) -> int:
        count = 0
        for question, answer in zip(self._quiz.questions, self._answers):
            if isinstance(question, MatchingQuestion):
                if answer.is_complete:
                    count += 1
            elif self._rules.has_response(answer):
                count += 1
        return count

    def is_ready_to_submit(self) -> bool:
        """Gate for the voluntary submit control; timeouts ignore it.

        Matching questions must be fully assigned even though they are never
        auto-graded. Free-response questions never block.
        """
        return all(
            self._rules.is_complete(question, answer)
            for question, answer in zip(self._quiz.questions, self._answers)
        )

    def essay_word_count(self, question_index: int) -> int:
        answer = self.get_answer(question_index)
        if not isinstance(answer, EssayAnswer):
            raise InvalidAnswerShape(f"Question {question_index} is not a free-response question.")
        return answer.word_count

    def meets_word_hint(self, question_index: int) -> bool:
        answer = self.get_answer(question_index)
        question = self._quiz.questions[question_index]
        if not isinstance(question, FreeResponseQuestion) or not isinstance(answer, EssayAnswer):
            raise InvalidAnswerShape(f"Question {question_index} is not a free-response question.")
        return self._rules.meets_word_hint(question, answer)

    # --- Mutations ---

    def answer(self, question_index: int, value: Answer) -> None:
        """Overwrite one slot. Correctness is only decided on submit."""
        self._ensure_in_progress()
        self._check_index(question_index)
        self._rules.check_shape(self._quiz.questions[question_index], value)
        self._answers[question_index] = value

    def select_option(self, question_index: int, option_index: int | None) -> None:
        self.answer(question_index, OptionAnswer(index=option_index))

    def enter_text(self, question_index: int, text: str) -> None:
        self.answer(question_index, TextAnswer(text=text))

    def write_essay(self, question_index: int, text: str) -> None:
        self.answer(question_index, EssayAnswer(text=text))

    def assign_match(self, question_index: int, pair_index: int, selection: str | None) -> None:
        """Set the learner's match for one pair of a matching question."""
        self._ensure_in_progress()
        current = self.get_answer(question_index)
        if not isinstance(current, MatchingAnswer):
            raise InvalidAnswerShape(f"Question {question_index} is not a matching question.")
        if not 0 <= pair_index < len(current.selections):
            raise InvalidAnswerShape(
                f"Pair {pair_index} is outside question {question_index}'s "
                f"{len(current.selections)} pairs."
            )
        selections = list(current.selections)
        selections[pair_index] = selection
        self.answer(question_index, MatchingAnswer(selections=tuple(selections)))

    def advance(self) -> int:
        self._ensure_in_progress()
        if self._cursor < self._quiz.question_count - 1:
            self._cursor += 1
        return self._cursor

    def retreat(self) -> int:
        self._ensure_in_progress()
        if self._cursor > 0:
            self._cursor -= 1
        return self._cursor

    def jump_to(self, question_index: int) -> int:
        self._ensure_in_progress()
        self._check_index(question_index)
        self._cursor = question_index
        return self._cursor

    def tick(self, elapsed: float | timedelta = DEFAULT_TICK_SECONDS) -> AttemptResult | None:
        """Advance the countdown; returns the result if this tick timed out.

        Ticks after submission do nothing, so a timeout submits exactly once.
        """
        step = elapsed if isinstance(elapsed, timedelta) else timedelta(seconds=elapsed)
        if step < timedelta():
            raise ValueError("Elapsed time must not be negative.")
        if self.is_submitted():
            return None

        self._elapsed += step
        if not self._quiz.is_timed:
            return None

        self._remaining = max(timedelta(), self._remaining - step)
        if self._remaining == timedelta():
            logger.info("Time expired on quiz %s; submitting automatically", self._quiz.id)
            return self._finalize(timed_out=True)
        return None

    def submit(self) -> AttemptResult:
        """Freeze the answers and score them. Repeated calls return the same result."""
        if self._result is not None:
            return self._result
        return self._finalize(timed_out=False)

    # --- Internals ---

    def _finalize(self, timed_out: bool) -> AttemptResult:
        frozen = tuple(self._answers)
        scored = self._rules.score_attempt(self._quiz.questions, frozen)
        self._result = AttemptResult(
            quiz_id=self._quiz.id,
            score=scored.score,
            auto_gradable_count=scored.auto_gradable_count,
            correct_count=scored.correct_count,
            has_pending_manual_review=scored.has_pending_manual_review,
            answers=frozen,
            timed_out=timed_out,
            elapsed_seconds=self._elapsed.total_seconds(),
            xp_awarded=self._quiz.xp_reward,
            question_results=scored.question_results,
        )
        self._state = SessionState.SUBMITTED
        logger.info(
            "Submitted quiz %s: %.1f%% (%d/%d auto-graded, pending review: %s)",
            self._quiz.id,
            scored.score,
            scored.correct_count,
            scored.auto_gradable_count,
            scored.has_pending_manual_review,
        )
        return self._result

    def _ensure_in_progress(self) -> None:
        if self.is_submitted():
            raise SessionAlreadySubmitted(f"Attempt on quiz {self._quiz.id!r} was already submitted.")

    def _check_index(self, question_index: int) -> None:
        if not 0 <= question_index < self._quiz.question_count:
            raise InvalidQuestionIndex(question_index, self._quiz.question_count)
