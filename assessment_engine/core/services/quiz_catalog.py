"""Service holding the quiz definitions learners can attempt."""

from __future__ import annotations

from assessment_engine.core.errors import InvalidQuestionDefinition, UnknownQuiz
from assessment_engine.core.models import QuizDefinition


class QuizCatalog:
    """Registered quizzes keyed by id.

    A quiz is frozen once anyone has attempted it; replacing it afterwards
    is refused.
    """

    def __init__(self) -> None:
        self._quizzes: dict[str, QuizDefinition] = {}
        self._attempted: set[str] = set()

    def register(self, quiz: QuizDefinition) -> None:
        if quiz.id in self._attempted:
            raise InvalidQuestionDefinition(f"Quiz {quiz.id!r} has been attempted and cannot change.")
        question_ids = [question.id for question in quiz.questions]
        if len(set(question_ids)) != len(question_ids):
            raise InvalidQuestionDefinition(f"Quiz {quiz.id!r} repeats a question id.")
        self._quizzes[quiz.id] = quiz

    def get(self, quiz_id: str) -> QuizDefinition:
        try:
            return self._quizzes[quiz_id]
        except KeyError:
            raise UnknownQuiz(quiz_id) from None

    def mark_attempted(self, quiz_id: str) -> None:
        self.get(quiz_id)
        self._attempted.add(quiz_id)

    def has_quiz(self, quiz_id: str) -> bool:
        return quiz_id in self._quizzes

    def get_quizzes(self) -> list[QuizDefinition]:
        return list(self._quizzes.values())

    def get_quiz_count(self) -> int:
        return len(self._quizzes)
