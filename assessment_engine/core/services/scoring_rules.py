"""Stateless scoring rules for single questions and whole attempts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from assessment_engine.core.errors import InvalidAnswerShape
from assessment_engine.core.models import (
    Answer,
    EssayAnswer,
    FillInBlankQuestion,
    FreeResponseQuestion,
    MatchingAnswer,
    MatchingQuestion,
    OptionAnswer,
    QuestionDefinition,
    SingleSelectQuestion,
    TextAnswer,
    TrueFalseQuestion,
)


@dataclass(frozen=True, slots=True)
class QuestionScore:
    """Outcome of scoring one answer."""

    is_correct: bool
    counts_toward_score: bool


@dataclass(frozen=True, slots=True)
class AttemptScore:
    """Aggregate of scoring every question in an attempt."""

    score: float
    auto_gradable_count: int
    correct_count: int
    has_pending_manual_review: bool
    question_results: tuple[bool | None, ...]


def normalize_text(text: str) -> str:
    return text.strip().lower()


class ScoringRules:
    """Decides correctness per question kind.

    Holds no state; construct one and pass it to every session that needs it.
    """

    def score(self, question: QuestionDefinition, answer: Answer) -> QuestionScore:
        self.check_shape(question, answer)

        if isinstance(question, (SingleSelectQuestion, TrueFalseQuestion)):
            return QuestionScore(
                is_correct=answer.index is not None and answer.index == question.correct_index,
                counts_toward_score=True,
            )

        if isinstance(question, FillInBlankQuestion):
            submitted = normalize_text(answer.text)
            is_correct = bool(submitted) and any(
                submitted == normalize_text(accepted) for accepted in question.accepted_answers
            )
            return QuestionScore(is_correct=is_correct, counts_toward_score=True)

        # Matching and free-response are left for a person to grade.
        return QuestionScore(is_correct=False, counts_toward_score=False)

    def score_attempt(
        self,
        questions: Sequence[QuestionDefinition],
        answers: Sequence[Answer],
    ) -> AttemptScore:
        """Score every question; manual-review kinds never affect the number."""
        if len(questions) != len(answers):
            raise InvalidAnswerShape(
                f"Expected {len(questions)} answers but received {len(answers)}."
            )

        auto_gradable = 0
        correct = 0
        pending_review = False
        results: list[bool | None] = []
        for question, answer in zip(questions, answers):
            outcome = self.score(question, answer)
            if outcome.counts_toward_score:
                auto_gradable += 1
                if outcome.is_correct:
                    correct += 1
                results.append(outcome.is_correct)
            else:
                results.append(None)
                if self.has_response(answer):
                    pending_review = True

        score = (correct / auto_gradable) * 100 if auto_gradable else 0.0
        return AttemptScore(
            score=score,
            auto_gradable_count=auto_gradable,
            correct_count=correct,
            has_pending_manual_review=pending_review,
            question_results=tuple(results),
        )

    @staticmethod
    def check_shape(question: QuestionDefinition, answer: Answer) -> None:
        """Raise InvalidAnswerShape when the answer cannot belong to the question."""
        if isinstance(question, (SingleSelectQuestion, TrueFalseQuestion)):
            if not isinstance(answer, OptionAnswer):
                raise InvalidAnswerShape(f"Question {question.id!r} expects an option answer.")
            if answer.index is not None and not 0 <= answer.index < len(question.options):
                raise InvalidAnswerShape(
                    f"Option {answer.index} is not offered by question {question.id!r}."
                )
        elif isinstance(question, FillInBlankQuestion):
            if not isinstance(answer, TextAnswer):
                raise InvalidAnswerShape(f"Question {question.id!r} expects a text answer.")
        elif isinstance(question, MatchingQuestion):
            if not isinstance(answer, MatchingAnswer):
                raise InvalidAnswerShape(f"Question {question.id!r} expects a matching answer.")
            if len(answer.selections) != len(question.pairs):
                raise InvalidAnswerShape(
                    f"Question {question.id!r} has {len(question.pairs)} pairs "
                    f"but {len(answer.selections)} selections were given."
                )
        elif isinstance(question, FreeResponseQuestion):
            if not isinstance(answer, EssayAnswer):
                raise InvalidAnswerShape(f"Question {question.id!r} expects an essay answer.")
        else:
            raise InvalidAnswerShape(f"Unsupported question type: {type(question).__name__}")

    @staticmethod
    def has_response(answer: Answer) -> bool:
        """True when the learner entered anything at all for this slot."""
        if isinstance(answer, OptionAnswer):
            return answer.index is not None
        if isinstance(answer, MatchingAnswer):
            return any(selection is not None and selection.strip() for selection in answer.selections)
        return bool(answer.text.strip())

    @staticmethod
    def is_complete(question: QuestionDefinition, answer: Answer) -> bool:
        """Whether this slot satisfies the voluntary-submit requirement."""
        if isinstance(question, FreeResponseQuestion):
            return True
        if isinstance(answer, MatchingAnswer):
            return answer.is_complete
        return ScoringRules.has_response(answer)

    @staticmethod
    def meets_word_hint(question: FreeResponseQuestion, answer: EssayAnswer) -> bool:
        return question.min_words <= 0 or answer.word_count >= question.min_words
