"""Shared quiz fixtures for the test suite."""

from __future__ import annotations

import pytest

from assessment_engine.core.models import (
    FillInBlankQuestion,
    FreeResponseQuestion,
    MatchingPair,
    MatchingQuestion,
    QuizDefinition,
    SingleSelectQuestion,
    TrueFalseQuestion,
)


def make_single_select(question_id: str = "q1", correct_index: int = 1) -> SingleSelectQuestion:
    return SingleSelectQuestion(
        id=question_id,
        prompt="What is 2 + 2?",
        options=("3", "4", "5", "22"),
        correct_index=correct_index,
    )


def make_matching(question_id: str = "m1") -> MatchingQuestion:
    return MatchingQuestion(
        id=question_id,
        prompt="Match each country to its capital.",
        pairs=(
            MatchingPair(prompt="France", answer="Paris"),
            MatchingPair(prompt="Japan", answer="Tokyo"),
        ),
    )


def make_essay(question_id: str = "e1", min_words: int = 30) -> FreeResponseQuestion:
    return FreeResponseQuestion(
        id=question_id,
        prompt="Describe the water cycle.",
        min_words=min_words,
    )


@pytest.fixture
def three_question_quiz() -> QuizDefinition:
    """Two single-select questions and one essay with a five-minute limit."""
    return QuizDefinition(
        id="quiz-1",
        title="Warm-up",
        course_id="course-1",
        questions=(
            make_single_select("q1", correct_index=1),
            make_single_select("q2", correct_index=2),
            make_essay("q3"),
        ),
        time_limit_minutes=5,
        xp_reward=50,
    )


@pytest.fixture
def mixed_quiz() -> QuizDefinition:
    """One question of every kind, untimed."""
    return QuizDefinition(
        id="quiz-mixed",
        title="Everything",
        course_id="course-1",
        questions=(
            make_single_select("q1", correct_index=0),
            TrueFalseQuestion(id="q2", prompt="The sun is a star.", correct_index=0),
            FillInBlankQuestion(id="q3", prompt="Capital of Italy?", accepted_answers=("Rome", "Roma")),
            make_matching("q4"),
            make_essay("q5", min_words=0),
        ),
    )


def forty_words() -> str:
    return " ".join(["water"] * 40)
