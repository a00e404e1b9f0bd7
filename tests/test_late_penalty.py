from datetime import datetime, timedelta

import pytest

from assessment_engine.core.late_penalty import GradedWork, LatePenaltyKind, LatePenaltyPolicy, days_late

PER_DAY = LatePenaltyPolicy(kind=LatePenaltyKind.PERCENT_PER_DAY, per_day=10)
FLAT = LatePenaltyPolicy(kind=LatePenaltyKind.FLAT_DEDUCTION, per_day=5)
NO_CREDIT = LatePenaltyPolicy(kind=LatePenaltyKind.NO_CREDIT)


def test_no_policy_leaves_score_alone():
    policy = LatePenaltyPolicy()
    assert policy.apply(85.0, 30, 100) == 85.0
    assert policy.can_submit(30)
    assert policy.summary(3) is None


def test_percent_per_day():
    assert PER_DAY.apply(85.0, 2, 100) == pytest.approx(65.0)
    assert PER_DAY.apply(15.0, 2, 100) == 0.0
    assert PER_DAY.apply(85.0, 0, 100) == 85.0
    assert PER_DAY.summary(2) == "2 days late, -20%"
    assert PER_DAY.summary(1) == "1 day late, -10%"


def test_flat_deduction_scales_with_max_points():
    assert FLAT.penalty_percent(2, 50) == pytest.approx(20.0)
    assert FLAT.apply_to_points(45, 2, 50) == pytest.approx(35.0)
    assert FLAT.summary(2) == "2 days late, -10 pts"


def test_no_credit_after_due_date():
    assert NO_CREDIT.apply(95.0, 1, 100) == 0.0
    assert NO_CREDIT.apply(95.0, 0, 100) == 95.0
    assert NO_CREDIT.summary(1) == "1 day late, no credit"


def test_past_the_late_limit_earns_nothing():
    assert PER_DAY.penalty_percent(8, 100) == 100.0
    assert PER_DAY.apply(99.0, 8, 100) == 0.0
    assert not PER_DAY.can_submit(8)
    assert PER_DAY.can_submit(7)
    assert PER_DAY.summary(8) == "8 days late, exceeds 7-day limit, no credit"


def test_negative_settings_are_rejected():
    with pytest.raises(ValueError):
        LatePenaltyPolicy(kind=LatePenaltyKind.PERCENT_PER_DAY, per_day=-1)
    with pytest.raises(ValueError):
        LatePenaltyPolicy(max_late_days=-1)


def test_days_late_counts_whole_days():
    due = datetime(2024, 3, 1, 23, 59)
    assert days_late(due, due - timedelta(hours=3)) == 0
    assert days_late(due, due + timedelta(hours=5)) == 0
    assert days_late(due, due + timedelta(days=1, hours=5)) == 1
    assert days_late(due, due + timedelta(days=3)) == 3


def test_graded_work_applies_its_policy():
    on_time = GradedWork(earned_points=45, possible_points=50)
    late = GradedWork(earned_points=45, possible_points=50, days_late=2, policy=FLAT)
    assert on_time.adjusted_points == 45
    assert on_time.penalty_summary is None
    assert late.adjusted_points == pytest.approx(35.0)
    assert late.penalty_summary == "2 days late, -10 pts"
    with pytest.raises(ValueError):
        GradedWork(earned_points=10, possible_points=10, days_late=-1)
