"""Exceptions raised by the assessment engine.

Every error here is local and deterministic: the same inputs always fail the
same way, so callers report them instead of retrying.
"""

from __future__ import annotations


class AssessmentError(Exception):
    """Base class for all engine errors."""


class InvalidQuestionIndex(AssessmentError, IndexError):
    """Raised when a caller addresses a question outside the quiz."""

    def __init__(self, index: int, question_count: int) -> None:
        super().__init__(f"Question index {index} out of range [0, {question_count})")
        self.index = index
        self.question_count = question_count


class SessionAlreadySubmitted(AssessmentError, RuntimeError):
    """Raised when a submitted attempt is mutated."""


class InvalidWeightConfiguration(AssessmentError, ValueError):
    """Raised when grade weights are negative or do not sum to 1.0."""


class InvalidAnswerShape(AssessmentError, ValueError):
    """Raised when an answer does not fit the kind of question it targets."""


class InvalidQuestionDefinition(AssessmentError, ValueError):
    """Raised when a question or quiz definition breaks its invariants."""


class UnknownAttempt(AssessmentError, KeyError):
    """Raised when no in-progress or finished attempt has the given id."""


class UnknownQuiz(AssessmentError, KeyError):
    """Raised when no registered quiz has the given id."""


class UnknownCourse(AssessmentError, KeyError):
    """Raised when no grade has been computed yet for the given course."""
