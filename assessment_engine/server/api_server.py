"""FastAPI server that exposes the assessment engine to learner clients."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timedelta
import logging
from threading import Event, Thread
from typing import Iterator, Literal

from fastapi import Depends, FastAPI, HTTPException, Response
from pydantic import BaseModel, Field
import uvicorn

from assessment_engine.constants.about import APP_NAME, APP_VERSION
from assessment_engine.constants.grading_constants import (
    DEFAULT_CURVE_TARGET_MEAN,
    DEFAULT_CURVE_TARGET_STD_DEV,
    DEFAULT_WEIGHTS,
)
from assessment_engine.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT, TICK_INTERVAL_SECONDS
from assessment_engine.constants.quiz_constants import DEFAULT_ESSAY_MIN_WORDS
from assessment_engine.core.assessment_manager import AssessmentManager, AttemptView
from assessment_engine.core.errors import (
    AssessmentError,
    SessionAlreadySubmitted,
    UnknownAttempt,
    UnknownCourse,
    UnknownQuiz,
)
from assessment_engine.core.grade_models import (
    CategoryTotals,
    CourseGradeResult,
    GradeCategory,
    GradeWeights,
    ProgressGoal,
)
from assessment_engine.core.late_penalty import GradedWork, LatePenaltyKind, LatePenaltyPolicy, days_late
from assessment_engine.core.models import (
    Answer,
    AttemptResult,
    EssayAnswer,
    FillInBlankQuestion,
    FreeResponseQuestion,
    MatchingAnswer,
    MatchingPair,
    MatchingQuestion,
    OptionAnswer,
    QuestionDefinition,
    QuestionKind,
    QuizDefinition,
    SingleSelectQuestion,
    TextAnswer,
    TrueFalseQuestion,
)
from assessment_engine.core.services.goal_projector import GoalProjection, RemainingWork
from assessment_engine.core.services.grade_curves import CurveKind
from assessment_engine.core.services.grade_statistics import GradeStatistics

logger = logging.getLogger(__name__)


# --- Payload schemas ---


class PairPayload(BaseModel):
    prompt: str
    answer: str


class QuestionPayload(BaseModel):
    """One question; only the fields for its kind are read."""

    id: str
    prompt: str
    kind: QuestionKind
    options: list[str] = Field(default_factory=list)
    correct_index: int | None = None
    accepted_answers: list[str] = Field(default_factory=list)
    pairs: list[PairPayload] = Field(default_factory=list)
    essay_prompt: str = ""
    min_words: int = DEFAULT_ESSAY_MIN_WORDS
    explanation: str = ""


class QuizPayload(BaseModel):
    id: str
    title: str
    course_id: str
    questions: list[QuestionPayload]
    time_limit_minutes: int = 0
    xp_reward: int = 0


class StartAttemptPayload(BaseModel):
    quiz_id: str
    learner_id: str


class AnswerPayload(BaseModel):
    """Payload schema for one answer slot."""

    question_index: int
    kind: Literal["option", "text", "matching", "essay"]
    option_index: int | None = None
    text: str = ""
    selections: list[str | None] = Field(default_factory=list)


class JumpPayload(BaseModel):
    question_index: int


class TickPayload(BaseModel):
    elapsed_seconds: float = Field(default=1.0, ge=0)


class WeightsPayload(BaseModel):
    assignments: float = DEFAULT_WEIGHTS["assignments"]
    quizzes: float = DEFAULT_WEIGHTS["quizzes"]
    participation: float = DEFAULT_WEIGHTS["participation"]
    midterm: float = DEFAULT_WEIGHTS["midterm"]
    final_exam: float = DEFAULT_WEIGHTS["final_exam"]


class TotalsPayload(BaseModel):
    earned: float = 0.0
    possible: float = 0.0


class LatePolicyPayload(BaseModel):
    kind: LatePenaltyKind = LatePenaltyKind.NONE
    per_day: float = Field(default=0.0, ge=0)
    max_late_days: int = Field(default=7, ge=0)


class GradedWorkPayload(BaseModel):
    """One graded assignment; due and submitted times override ``days_late`` when both are set."""

    earned_points: float = Field(ge=0)
    possible_points: float = Field(ge=0)
    days_late: int = Field(default=0, ge=0)
    due_at: datetime | None = None
    submitted_at: datetime | None = None
    policy: LatePolicyPayload = Field(default_factory=LatePolicyPayload)


class CourseGradePayload(BaseModel):
    weights: WeightsPayload = Field(default_factory=WeightsPayload)
    totals: dict[GradeCategory, TotalsPayload] = Field(default_factory=dict)
    assignments: list[GradedWorkPayload] | None = None
    course_name: str = ""


class GoalPayload(BaseModel):
    target_letter_grade: str


class RemainingWorkPayload(BaseModel):
    item_count: int
    possible_points: float
    category: GradeCategory = GradeCategory.ASSIGNMENTS


class CurvePayload(BaseModel):
    kind: CurveKind
    amount: float = 0.0
    target_mean: float = DEFAULT_CURVE_TARGET_MEAN
    target_std_dev: float = DEFAULT_CURVE_TARGET_STD_DEV


# --- Conversions ---


def _build_question(payload: QuestionPayload) -> QuestionDefinition:
    if payload.kind in (QuestionKind.SINGLE_SELECT, QuestionKind.TRUE_FALSE):
        if payload.correct_index is None:
            raise HTTPException(status_code=422, detail=f"Question {payload.id!r} needs a correct_index.")
        if payload.kind is QuestionKind.TRUE_FALSE:
            return TrueFalseQuestion(
                id=payload.id,
                prompt=payload.prompt,
                correct_index=payload.correct_index,
                explanation=payload.explanation,
            )
        return SingleSelectQuestion(
            id=payload.id,
            prompt=payload.prompt,
            options=tuple(payload.options),
            correct_index=payload.correct_index,
            explanation=payload.explanation,
        )
    if payload.kind is QuestionKind.FILL_IN_BLANK:
        return FillInBlankQuestion(
            id=payload.id,
            prompt=payload.prompt,
            accepted_answers=tuple(payload.accepted_answers),
            explanation=payload.explanation,
        )
    if payload.kind is QuestionKind.MATCHING:
        return MatchingQuestion(
            id=payload.id,
            prompt=payload.prompt,
            pairs=tuple(MatchingPair(prompt=p.prompt, answer=p.answer) for p in payload.pairs),
            explanation=payload.explanation,
        )
    return FreeResponseQuestion(
        id=payload.id,
        prompt=payload.prompt,
        essay_prompt=payload.essay_prompt,
        min_words=payload.min_words,
        explanation=payload.explanation,
    )


def _build_graded_work(payload: GradedWorkPayload) -> GradedWork:
    late_days = payload.days_late
    if payload.due_at is not None and payload.submitted_at is not None:
        late_days = days_late(payload.due_at, payload.submitted_at)
    return GradedWork(
        earned_points=payload.earned_points,
        possible_points=payload.possible_points,
        days_late=late_days,
        policy=LatePenaltyPolicy(
            kind=payload.policy.kind,
            per_day=payload.policy.per_day,
            max_late_days=payload.policy.max_late_days,
        ),
    )


def _build_answer(payload: AnswerPayload) -> Answer:
    if payload.kind == "option":
        return OptionAnswer(index=payload.option_index)
    if payload.kind == "text":
        return TextAnswer(text=payload.text)
    if payload.kind == "matching":
        return MatchingAnswer(selections=tuple(payload.selections))
    return EssayAnswer(text=payload.text)


def _answer_to_dict(answer: Answer) -> dict[str, object]:
    if isinstance(answer, OptionAnswer):
        return {"kind": "option", "option_index": answer.index}
    if isinstance(answer, TextAnswer):
        return {"kind": "text", "text": answer.text}
    if isinstance(answer, MatchingAnswer):
        return {"kind": "matching", "selections": list(answer.selections)}
    return {"kind": "essay", "text": answer.text, "word_count": answer.word_count}


def _question_to_dict(question: QuestionDefinition) -> dict[str, object]:
    """Learner-facing view; answer keys are never sent."""
    data: dict[str, object] = {
        "id": question.id,
        "prompt": question.prompt,
        "kind": question.kind.value,
        "requires_manual_review": question.requires_manual_review,
    }
    if isinstance(question, (SingleSelectQuestion, TrueFalseQuestion)):
        data["options"] = list(question.options)
    elif isinstance(question, MatchingQuestion):
        data["pair_prompts"] = [pair.prompt for pair in question.pairs]
        data["answer_choices"] = question.answer_choices
    elif isinstance(question, FreeResponseQuestion):
        data["essay_prompt"] = question.essay_prompt
        data["min_words"] = question.min_words
    return data


def _result_to_dict(result: AttemptResult) -> dict[str, object]:
    return {
        "quiz_id": result.quiz_id,
        "score": result.score,
        "auto_gradable_count": result.auto_gradable_count,
        "correct_count": result.correct_count,
        "has_pending_manual_review": result.has_pending_manual_review,
        "timed_out": result.timed_out,
        "elapsed_seconds": result.elapsed_seconds,
        "xp_awarded": result.xp_awarded,
        "question_results": list(result.question_results),
        "answers": [_answer_to_dict(answer) for answer in result.answers],
    }


def _attempt_to_dict(view: AttemptView) -> dict[str, object]:
    return {
        "attempt_id": view.attempt_id,
        "learner_id": view.learner_id,
        "quiz_id": view.quiz_id,
        "state": view.state.value,
        "current_index": view.current_index,
        "question_count": view.question_count,
        "remaining_seconds": view.remaining_seconds,
        "elapsed_seconds": view.elapsed_seconds,
        "answered_count": view.answered_count,
        "ready_to_submit": view.ready_to_submit,
        "result": _result_to_dict(view.result) if view.result else None,
    }


def _grade_to_dict(result: CourseGradeResult) -> dict[str, object]:
    return {
        "course_id": result.course_id,
        "course_name": result.course_name,
        "overall_percentage": result.overall_percentage,
        "letter_grade": result.letter_grade,
        "grade_points": result.grade_points,
        "trend": result.trend.value,
        "breakdowns": [
            {
                "category": b.category.value,
                "weight": b.weight,
                "earned_points": b.earned_points,
                "total_points": b.total_points,
                "percentage": b.percentage,
                "weighted_contribution": b.weighted_contribution,
            }
            for b in result.breakdowns
        ],
    }


def _statistics_to_dict(stats: GradeStatistics) -> dict[str, object]:
    return {
        "count": stats.count,
        "mean": stats.mean,
        "median": stats.median,
        "minimum": stats.minimum,
        "maximum": stats.maximum,
        "standard_deviation": stats.standard_deviation,
        "distribution": list(stats.distribution),
    }


def _goal_to_dict(goal: ProgressGoal) -> dict[str, object]:
    return {
        "course_id": goal.course_id,
        "target_letter_grade": goal.target_letter_grade,
        "target_percentage": goal.target_percentage,
    }


def _projection_to_dict(projection: GoalProjection) -> dict[str, object]:
    return {
        "course_id": projection.course_id,
        "target_percentage": projection.target_percentage,
        "current_percentage": projection.current_percentage,
        "required_average": projection.required_average,
        "status": projection.status.value,
        "is_met": projection.is_met,
        "is_unreachable": projection.is_unreachable,
    }


@contextmanager
def _engine_errors() -> Iterator[None]:
    """Translate engine errors into HTTP errors."""
    try:
        yield
    except (UnknownAttempt, UnknownQuiz, UnknownCourse) as exc:
        raise HTTPException(status_code=404, detail=f"Not found: {exc.args[0]}") from exc
    except SessionAlreadySubmitted as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except (AssessmentError, ValueError) as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


def _get_manager_dependency(manager: AssessmentManager):
    def dependency() -> AssessmentManager:
        return manager

    return dependency


def create_api_app(manager: AssessmentManager) -> FastAPI:
    """Create a FastAPI application wired to the provided assessment manager."""
    app = FastAPI(title=f"{APP_NAME} API", version=APP_VERSION)
    manager_dep = _get_manager_dependency(manager)

    @app.get("/")
    def get_about() -> dict[str, object]:
        return {"name": APP_NAME, "version": APP_VERSION}

    # --- Quizzes ---

    @app.post("/quizzes", status_code=201)
    def register_quiz(
        payload: QuizPayload,
        manager: AssessmentManager = Depends(manager_dep),
    ) -> dict[str, object]:
        with _engine_errors():
            quiz = QuizDefinition(
                id=payload.id,
                title=payload.title,
                course_id=payload.course_id,
                questions=tuple(_build_question(q) for q in payload.questions),
                time_limit_minutes=payload.time_limit_minutes,
                xp_reward=payload.xp_reward,
            )
            manager.register_quiz(quiz)
        return {"quiz_id": quiz.id, "question_count": quiz.question_count}

    @app.get("/quizzes/{quiz_id}")
    def get_quiz(quiz_id: str, manager: AssessmentManager = Depends(manager_dep)) -> dict[str, object]:
        with _engine_errors():
            quiz = manager.get_quiz(quiz_id)
        return {
            "id": quiz.id,
            "title": quiz.title,
            "course_id": quiz.course_id,
            "time_limit_minutes": quiz.time_limit_minutes,
            "xp_reward": quiz.xp_reward,
            "questions": [_question_to_dict(q) for q in quiz.questions],
        }

    @app.get("/quizzes/{quiz_id}/statistics")
    def get_quiz_statistics(quiz_id: str, manager: AssessmentManager = Depends(manager_dep)) -> dict[str, object]:
        with _engine_errors():
            return _statistics_to_dict(manager.get_quiz_statistics(quiz_id))

    @app.post("/quizzes/{quiz_id}/curve")
    def curve_quiz(
        quiz_id: str,
        payload: CurvePayload,
        manager: AssessmentManager = Depends(manager_dep),
    ) -> dict[str, object]:
        with _engine_errors():
            curved = manager.curve_quiz_scores(
                quiz_id,
                payload.kind,
                amount=payload.amount,
                target_mean=payload.target_mean,
                target_std_dev=payload.target_std_dev,
            )
        return {"quiz_id": quiz_id, "kind": payload.kind.value, "scores": curved}

    # --- Attempts ---

    @app.post("/attempts", status_code=201)
    def start_attempt(
        payload: StartAttemptPayload,
        manager: AssessmentManager = Depends(manager_dep),
    ) -> dict[str, object]:
        with _engine_errors():
            view = manager.start_attempt(payload.quiz_id, payload.learner_id)
        return _attempt_to_dict(view)

    @app.get("/attempts/{attempt_id}")
    def get_attempt(attempt_id: str, manager: AssessmentManager = Depends(manager_dep)) -> dict[str, object]:
        with _engine_errors():
            view = manager.get_attempt(attempt_id)
            answers = manager.get_answers(attempt_id)
        data = _attempt_to_dict(view)
        data["answers"] = [_answer_to_dict(answer) for answer in answers]
        return data

    @app.delete("/attempts/{attempt_id}", status_code=204)
    def discard_attempt(attempt_id: str, manager: AssessmentManager = Depends(manager_dep)) -> Response:
        with _engine_errors():
            manager.discard_attempt(attempt_id)
        return Response(status_code=204)

    @app.post("/attempts/{attempt_id}/answers")
    def answer_question(
        attempt_id: str,
        payload: AnswerPayload,
        manager: AssessmentManager = Depends(manager_dep),
    ) -> dict[str, object]:
        with _engine_errors():
            view = manager.answer(attempt_id, payload.question_index, _build_answer(payload))
        return _attempt_to_dict(view)

    @app.post("/attempts/{attempt_id}/advance")
    def advance(attempt_id: str, manager: AssessmentManager = Depends(manager_dep)) -> dict[str, object]:
        with _engine_errors():
            return _attempt_to_dict(manager.advance(attempt_id))

    @app.post("/attempts/{attempt_id}/retreat")
    def retreat(attempt_id: str, manager: AssessmentManager = Depends(manager_dep)) -> dict[str, object]:
        with _engine_errors():
            return _attempt_to_dict(manager.retreat(attempt_id))

    @app.post("/attempts/{attempt_id}/jump")
    def jump(
        attempt_id: str,
        payload: JumpPayload,
        manager: AssessmentManager = Depends(manager_dep),
    ) -> dict[str, object]:
        with _engine_errors():
            return _attempt_to_dict(manager.jump_to(attempt_id, payload.question_index))

    @app.post("/attempts/{attempt_id}/tick")
    def tick(
        attempt_id: str,
        payload: TickPayload,
        manager: AssessmentManager = Depends(manager_dep),
    ) -> dict[str, object]:
        with _engine_errors():
            return _attempt_to_dict(manager.tick(attempt_id, payload.elapsed_seconds))

    @app.post("/attempts/{attempt_id}/submit")
    def submit(attempt_id: str, manager: AssessmentManager = Depends(manager_dep)) -> dict[str, object]:
        with _engine_errors():
            return _result_to_dict(manager.submit(attempt_id))

    # --- Courses ---

    @app.put("/courses/{course_id}/grade")
    def recompute_grade(
        course_id: str,
        payload: CourseGradePayload,
        manager: AssessmentManager = Depends(manager_dep),
    ) -> dict[str, object]:
        with _engine_errors():
            weights = GradeWeights(**payload.weights.model_dump())
            totals = {
                category: CategoryTotals(earned=t.earned, possible=t.possible)
                for category, t in payload.totals.items()
            }
            assignments = None
            if payload.assignments is not None:
                assignments = [_build_graded_work(item) for item in payload.assignments]
            result = manager.recompute_course_grade(
                course_id,
                weights,
                totals,
                payload.course_name,
                assignments=assignments,
            )
        return _grade_to_dict(result)

    @app.get("/courses/{course_id}/grade")
    def get_grade(course_id: str, manager: AssessmentManager = Depends(manager_dep)) -> dict[str, object]:
        with _engine_errors():
            return _grade_to_dict(manager.get_course_grade(course_id))

    @app.put("/courses/{course_id}/goal")
    def set_goal(
        course_id: str,
        payload: GoalPayload,
        manager: AssessmentManager = Depends(manager_dep),
    ) -> dict[str, object]:
        with _engine_errors():
            return _goal_to_dict(manager.set_goal(course_id, payload.target_letter_grade))

    @app.get("/courses/{course_id}/goal")
    def get_goal(course_id: str, manager: AssessmentManager = Depends(manager_dep)) -> dict[str, object]:
        goal = manager.get_goal(course_id)
        if goal is None:
            raise HTTPException(status_code=404, detail=f"No goal set for course {course_id}")
        return _goal_to_dict(goal)

    @app.post("/courses/{course_id}/projection")
    def project_goal(
        course_id: str,
        payload: RemainingWorkPayload,
        manager: AssessmentManager = Depends(manager_dep),
    ) -> dict[str, object]:
        remaining = RemainingWork(
            item_count=payload.item_count,
            possible_points=payload.possible_points,
            category=payload.category,
        )
        with _engine_errors():
            projection = manager.project_goal(course_id, remaining)
        if projection is None:
            raise HTTPException(status_code=404, detail=f"No goal set for course {course_id}")
        return _projection_to_dict(projection)

    @app.get("/gpa")
    def get_gpa(manager: AssessmentManager = Depends(manager_dep)) -> dict[str, object]:
        return {"gpa": manager.get_gpa()}

    @app.get("/courses/statistics")
    def get_course_statistics(manager: AssessmentManager = Depends(manager_dep)) -> dict[str, object]:
        return _statistics_to_dict(manager.get_course_statistics())

    # --- Learners ---

    @app.get("/learners/{learner_id}/level")
    def get_level(learner_id: str, manager: AssessmentManager = Depends(manager_dep)) -> dict[str, object]:
        progress = manager.get_level(learner_id)
        return {
            "xp": progress.xp,
            "level": progress.level,
            "level_start_xp": progress.level_start_xp,
            "next_level_xp": progress.next_level_xp,
            "progress": progress.progress,
            "xp_to_next_level": progress.xp_to_next_level,
        }

    return app


def start_tick_scheduler(
    manager: AssessmentManager,
    interval_seconds: float = TICK_INTERVAL_SECONDS,
    stop_event: Event | None = None,
) -> Thread:
    """Tick every open attempt once per interval from a daemon thread."""
    stop = stop_event or Event()
    elapsed = timedelta(seconds=interval_seconds)

    def run_ticker() -> None:
        while not stop.wait(interval_seconds):
            for attempt_id in manager.tick_all(elapsed):
                logger.info("Attempt %s submitted on timeout", attempt_id)

    thread = Thread(target=run_ticker, name="AttemptTicker", daemon=True)
    thread.start()
    return thread


def start_api_server(
    manager: AssessmentManager,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> Thread:
    """Start the FastAPI server in a background daemon thread."""
    app = create_api_app(manager)
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)

    def run_server() -> None:
        server.run()

    thread = Thread(target=run_server, name="AssessmentApiServer", daemon=True)
    thread.start()
    return thread
