import pytest

from assessment_engine.core.errors import InvalidWeightConfiguration
from assessment_engine.core.grade_models import (
    CategoryTotals,
    GradeCategory,
    GradeTrend,
    GradeWeights,
)
from assessment_engine.core.late_penalty import GradedWork, LatePenaltyKind, LatePenaltyPolicy
from assessment_engine.core.models import AttemptResult
from assessment_engine.core.services.grade_aggregator import (
    GradeAggregator,
    assignment_totals,
    grade_points,
    letter_grade,
    participation_totals,
    quiz_totals,
)
from assessment_engine.core.services.grade_history import GradeHistory

WEIGHTS = GradeWeights(assignments=0.4, quizzes=0.3, participation=0.1, midterm=0.1, final_exam=0.1)
TOTALS = {
    GradeCategory.ASSIGNMENTS: CategoryTotals(earned=180, possible=200),
    GradeCategory.QUIZZES: CategoryTotals(earned=85, possible=100),
    GradeCategory.PARTICIPATION: CategoryTotals(earned=10, possible=10),
    GradeCategory.MIDTERM: CategoryTotals(earned=88, possible=100),
    GradeCategory.FINAL_EXAM: CategoryTotals(earned=0, possible=0),
}

aggregator = GradeAggregator()


def test_weighted_course_grade():
    result = aggregator.aggregate(WEIGHTS, TOTALS, course_id="bio")

    contributions = {b.category: b.weighted_contribution for b in result.breakdowns}
    assert contributions[GradeCategory.ASSIGNMENTS] == pytest.approx(36.0)
    assert contributions[GradeCategory.QUIZZES] == pytest.approx(25.5)
    assert contributions[GradeCategory.PARTICIPATION] == pytest.approx(10.0)
    assert contributions[GradeCategory.MIDTERM] == pytest.approx(8.8)
    assert contributions[GradeCategory.FINAL_EXAM] == 0.0
    assert result.breakdown_for(GradeCategory.FINAL_EXAM).percentage == 0.0

    assert result.overall_percentage == pytest.approx(80.3)
    assert result.overall_percentage == pytest.approx(sum(contributions.values()))
    assert result.letter_grade == "B-"
    assert result.grade_points == pytest.approx(2.7)
    assert result.trend is GradeTrend.STABLE


def test_missing_categories_count_as_zero():
    result = aggregator.aggregate(GradeWeights.default(), {})
    assert result.overall_percentage == 0.0
    assert result.letter_grade == "F"
    assert len(result.breakdowns) == 5


def test_extra_credit_is_not_capped():
    totals = {category: CategoryTotals(earned=110, possible=100) for category in GradeCategory}
    result = aggregator.aggregate(WEIGHTS, totals)
    assert result.overall_percentage == pytest.approx(110.0)
    assert result.letter_grade == "A"


@pytest.mark.parametrize(
    "weights",
    [
        GradeWeights(assignments=0.4, quizzes=0.3, participation=0.1, midterm=0.1, final_exam=0.2),
        GradeWeights(assignments=0.4, quizzes=0.3, participation=0.1, midterm=0.1, final_exam=0.0),
        GradeWeights(assignments=1.2, quizzes=-0.2, participation=0.0, midterm=0.0, final_exam=0.0),
    ],
)
def test_invalid_weights_are_rejected(weights):
    with pytest.raises(InvalidWeightConfiguration):
        aggregator.aggregate(weights, TOTALS)


def test_weights_within_tolerance_are_accepted():
    weights = GradeWeights(assignments=0.4005, quizzes=0.3, participation=0.1, midterm=0.1, final_exam=0.1)
    aggregator.aggregate(weights, TOTALS)


@pytest.mark.parametrize(
    "percentage, letter",
    [
        (100, "A"), (93, "A"), (92.99, "A-"), (90, "A-"), (89.9, "B+"), (87, "B+"),
        (85, "B"), (82, "B-"), (78, "C+"), (75, "C"), (71, "C-"), (68, "D+"),
        (60, "D"), (59.99, "F"), (0, "F"),
    ],
)
def test_letter_grade_table(percentage, letter):
    assert letter_grade(percentage) == letter


def test_grade_points_table():
    assert grade_points("A") == 4.0
    assert grade_points("B+") == 3.3
    assert grade_points("D") == 1.0
    assert grade_points("F") == 0.0


def test_trend_follows_previous_result():
    history = GradeHistory()
    first = history.recompute("bio", WEIGHTS, TOTALS)
    assert first.trend is GradeTrend.STABLE

    better = dict(TOTALS)
    better[GradeCategory.FINAL_EXAM] = CategoryTotals(earned=95, possible=100)
    second = history.recompute("bio", WEIGHTS, better)
    assert second.trend is GradeTrend.IMPROVING

    third = history.recompute("bio", WEIGHTS, better)
    assert third.trend is GradeTrend.STABLE

    fourth = history.recompute("bio", WEIGHTS, TOTALS)
    assert fourth.trend is GradeTrend.DECLINING
    assert history.latest("bio") is fourth


def test_rejected_weights_leave_history_untouched():
    history = GradeHistory()
    stored = history.recompute("bio", WEIGHTS, TOTALS)
    bad = WEIGHTS.with_weight(GradeCategory.FINAL_EXAM, 0.5)
    with pytest.raises(InvalidWeightConfiguration):
        history.recompute("bio", bad, TOTALS)
    assert history.latest("bio") is stored


def test_gpa_and_average_across_courses():
    history = GradeHistory()
    history.recompute("bio", WEIGHTS, TOTALS)
    perfect = {category: CategoryTotals(earned=1, possible=1) for category in GradeCategory}
    history.recompute("art", WEIGHTS, perfect)

    results = history.all_results()
    assert aggregator.calculate_gpa(results) == pytest.approx((2.7 + 4.0) / 2)
    assert aggregator.weighted_average_percent(results) == pytest.approx((80.3 + 100) / 2)
    assert aggregator.overall_letter_grade(results) == "A-"
    assert aggregator.calculate_gpa([]) == 0.0


def test_category_helpers():
    attempts = [
        AttemptResult(quiz_id="a", score=50.0, auto_gradable_count=2, correct_count=1,
                      has_pending_manual_review=False, answers=()),
        AttemptResult(quiz_id="b", score=100.0, auto_gradable_count=1, correct_count=1,
                      has_pending_manual_review=False, answers=()),
    ]
    assert quiz_totals(attempts) == CategoryTotals(earned=150.0, possible=200.0)
    assert participation_totals(9, 10) == CategoryTotals(earned=9.0, possible=10.0)
    with pytest.raises(ValueError):
        participation_totals(11, 10)


def test_assignment_totals_apply_late_penalties():
    ten_percent_a_day = LatePenaltyPolicy(kind=LatePenaltyKind.PERCENT_PER_DAY, per_day=10)
    work = [
        GradedWork(earned_points=90, possible_points=100),
        GradedWork(earned_points=90, possible_points=100, days_late=2, policy=ten_percent_a_day),
        GradedWork(earned_points=50, possible_points=50, days_late=9, policy=ten_percent_a_day),
    ]
    assert assignment_totals(work) == CategoryTotals(earned=160.0, possible=250.0)
    assert assignment_totals([]) == CategoryTotals()
