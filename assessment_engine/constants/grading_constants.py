"""Grading tables and thresholds shared across the engine."""

# Lower bound (inclusive) of each letter band, highest first.
LETTER_GRADE_BOUNDARIES: tuple[tuple[float, str], ...] = (
    (93.0, "A"),
    (90.0, "A-"),
    (87.0, "B+"),
    (83.0, "B"),
    (80.0, "B-"),
    (77.0, "C+"),
    (73.0, "C"),
    (70.0, "C-"),
    (67.0, "D+"),
    (60.0, "D"),
)
FAILING_LETTER_GRADE: str = "F"

GRADE_POINTS: dict[str, float] = {
    "A": 4.0,
    "A-": 3.7,
    "B+": 3.3,
    "B": 3.0,
    "B-": 2.7,
    "C+": 2.3,
    "C": 2.0,
    "C-": 1.7,
    "D+": 1.3,
    "D": 1.0,
    "F": 0.0,
}

# Canonical percentage stored with a progress goal for each target letter.
TARGET_PERCENTAGES: dict[str, float] = {
    letter: lower_bound for lower_bound, letter in LETTER_GRADE_BOUNDARIES
}

WEIGHT_SUM_TOLERANCE: float = 0.001
TREND_EPSILON: float = 0.01

DEFAULT_WEIGHTS: dict[str, float] = {
    "assignments": 0.40,
    "quizzes": 0.30,
    "participation": 0.10,
    "midterm": 0.10,
    "final_exam": 0.10,
}

GOAL_AT_RISK_REQUIRED_AVERAGE: float = 90.0
GOAL_AT_RISK_GAP: float = 15.0
GOAL_ON_TRACK_MAX_GAP: float = 5.0
GOAL_AT_RISK_MAX_GAP: float = 12.0

DEFAULT_CURVE_TARGET_MEAN: float = 75.0
DEFAULT_CURVE_TARGET_STD_DEV: float = 10.0
