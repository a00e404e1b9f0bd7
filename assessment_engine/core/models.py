"""Domain models for quizzes, answers, and attempt results.

Each question kind is its own immutable record carrying only the fields that
kind needs, and each answer slot is one of four answer records. Sessions keep a
single ordered tuple of answers, one per question.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Union

from assessment_engine.constants.quiz_constants import DEFAULT_ESSAY_MIN_WORDS
from assessment_engine.core.errors import InvalidQuestionDefinition


class QuestionKind(str, Enum):
    SINGLE_SELECT = "multiple_choice"
    TRUE_FALSE = "true_false"
    FILL_IN_BLANK = "fill_in_blank"
    MATCHING = "matching"
    FREE_RESPONSE = "essay"

    @property
    def requires_manual_review(self) -> bool:
        return self in (QuestionKind.MATCHING, QuestionKind.FREE_RESPONSE)

    @property
    def is_auto_gradable(self) -> bool:
        return not self.requires_manual_review


class _QuestionBase:
    __slots__ = ()

    kind: ClassVar[QuestionKind]

    @property
    def requires_manual_review(self) -> bool:
        return self.kind.requires_manual_review


def _check_option_key(question_id: str, options: tuple[str, ...], correct_index: int) -> None:
    if len(options) < 2:
        raise InvalidQuestionDefinition(f"Question {question_id!r} needs at least two options.")
    if any(not option.strip() for option in options):
        raise InvalidQuestionDefinition(f"Question {question_id!r} has an empty option.")
    if not 0 <= correct_index < len(options):
        raise InvalidQuestionDefinition(
            f"Question {question_id!r} correct index {correct_index} is outside its options."
        )


@dataclass(frozen=True, slots=True)
class SingleSelectQuestion(_QuestionBase):
    """Multiple-choice question with exactly one correct option."""

    id: str
    prompt: str
    options: tuple[str, ...]
    correct_index: int
    explanation: str = ""

    kind: ClassVar[QuestionKind] = QuestionKind.SINGLE_SELECT

    def __post_init__(self) -> None:
        object.__setattr__(self, "options", tuple(self.options))
        _check_option_key(self.id, self.options, self.correct_index)


@dataclass(frozen=True, slots=True)
class TrueFalseQuestion(_QuestionBase):
    """True/false question; option 0 is "True" and option 1 is "False"."""

    id: str
    prompt: str
    correct_index: int
    options: tuple[str, ...] = ("True", "False")
    explanation: str = ""

    kind: ClassVar[QuestionKind] = QuestionKind.TRUE_FALSE

    def __post_init__(self) -> None:
        object.__setattr__(self, "options", tuple(self.options))
        if len(self.options) != 2:
            raise InvalidQuestionDefinition(f"Question {self.id!r} must have exactly two options.")
        _check_option_key(self.id, self.options, self.correct_index)


@dataclass(frozen=True, slots=True)
class FillInBlankQuestion(_QuestionBase):
    """Free-text question matched case-insensitively against accepted answers."""

    id: str
    prompt: str
    accepted_answers: tuple[str, ...]
    explanation: str = ""

    kind: ClassVar[QuestionKind] = QuestionKind.FILL_IN_BLANK

    def __post_init__(self) -> None:
        cleaned = tuple(answer.strip() for answer in self.accepted_answers)
        if not any(cleaned):
            raise InvalidQuestionDefinition(
                f"Question {self.id!r} needs at least one accepted answer."
            )
        object.__setattr__(self, "accepted_answers", tuple(a for a in cleaned if a))


@dataclass(frozen=True, slots=True)
class MatchingPair:
    prompt: str
    answer: str


@dataclass(frozen=True, slots=True)
class MatchingQuestion(_QuestionBase):
    """Ordered prompt -> answer pairs; always graded by a person."""

    id: str
    prompt: str
    pairs: tuple[MatchingPair, ...]
    explanation: str = ""

    kind: ClassVar[QuestionKind] = QuestionKind.MATCHING

    def __post_init__(self) -> None:
        object.__setattr__(self, "pairs", tuple(self.pairs))
        if len(self.pairs) < 2:
            raise InvalidQuestionDefinition(f"Question {self.id!r} needs at least two pairs.")

    @property
    def answer_choices(self) -> list[str]:
        """Right-hand sides offered to the learner, in definition order."""
        return [pair.answer for pair in self.pairs]


@dataclass(frozen=True, slots=True)
class FreeResponseQuestion(_QuestionBase):
    """Essay question; the word-count hint never blocks submission."""

    id: str
    prompt: str
    essay_prompt: str = ""
    min_words: int = DEFAULT_ESSAY_MIN_WORDS
    explanation: str = ""

    kind: ClassVar[QuestionKind] = QuestionKind.FREE_RESPONSE

    def __post_init__(self) -> None:
        if self.min_words < 0:
            raise InvalidQuestionDefinition(f"Question {self.id!r} has a negative word hint.")


QuestionDefinition = Union[
    SingleSelectQuestion,
    TrueFalseQuestion,
    FillInBlankQuestion,
    MatchingQuestion,
    FreeResponseQuestion,
]


# --- Answers ---


@dataclass(frozen=True, slots=True)
class OptionAnswer:
    """Selected option for single-select and true/false questions."""

    index: int | None = None


@dataclass(frozen=True, slots=True)
class TextAnswer:
    """Typed text for fill-in-blank questions."""

    text: str = ""


@dataclass(frozen=True, slots=True)
class MatchingAnswer:
    """Selected match per pair, in pair order; None marks an unassigned pair."""

    selections: tuple[str | None, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "selections", tuple(self.selections))

    @property
    def is_complete(self) -> bool:
        return bool(self.selections) and all(
            selection is not None and selection.strip() for selection in self.selections
        )


@dataclass(frozen=True, slots=True)
class EssayAnswer:
    """Essay text for free-response questions."""

    text: str = ""

    @property
    def word_count(self) -> int:
        return len(self.text.split())


Answer = Union[OptionAnswer, TextAnswer, MatchingAnswer, EssayAnswer]


def empty_answer_for(question: QuestionDefinition) -> Answer:
    """Return the unanswered slot matching the question's kind."""
    if isinstance(question, (SingleSelectQuestion, TrueFalseQuestion)):
        return OptionAnswer()
    if isinstance(question, FillInBlankQuestion):
        return TextAnswer()
    if isinstance(question, MatchingQuestion):
        return MatchingAnswer(selections=(None,) * len(question.pairs))
    if isinstance(question, FreeResponseQuestion):
        return EssayAnswer()
    raise InvalidQuestionDefinition(f"Unsupported question type: {type(question).__name__}")


# --- Quiz and attempt records ---


@dataclass(frozen=True, slots=True)
class QuizDefinition:
    """Ordered questions plus the limits that apply to every attempt."""

    id: str
    title: str
    course_id: str
    questions: tuple[QuestionDefinition, ...]
    time_limit_minutes: int = 0
    xp_reward: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "questions", tuple(self.questions))
        if not self.questions:
            raise InvalidQuestionDefinition(f"Quiz {self.id!r} must contain at least one question.")
        if self.time_limit_minutes < 0:
            raise InvalidQuestionDefinition(f"Quiz {self.id!r} has a negative time limit.")
        if self.xp_reward < 0:
            raise InvalidQuestionDefinition(f"Quiz {self.id!r} has a negative XP reward.")

    @property
    def question_count(self) -> int:
        return len(self.questions)

    @property
    def is_timed(self) -> bool:
        return self.time_limit_minutes > 0

    @property
    def time_limit_seconds(self) -> int:
        return self.time_limit_minutes * 60

    @property
    def auto_gradable_count(self) -> int:
        return sum(1 for question in self.questions if question.kind.is_auto_gradable)


@dataclass(frozen=True, slots=True)
class AttemptResult:
    """Finalized outcome of one attempt. Created once, never mutated."""

    quiz_id: str
    score: float
    auto_gradable_count: int
    correct_count: int
    has_pending_manual_review: bool
    answers: tuple[Answer, ...]
    timed_out: bool = False
    elapsed_seconds: float = 0.0
    xp_awarded: int = 0
    question_results: tuple[bool | None, ...] = field(default=())
