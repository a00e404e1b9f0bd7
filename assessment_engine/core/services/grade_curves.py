"""Curves an instructor can apply to a set of graded percentages.

Every curve returns new scores in input order, clamped to [0, 100].
"""

from __future__ import annotations

from enum import Enum
import math
from typing import Sequence

from assessment_engine.constants.grading_constants import (
    DEFAULT_CURVE_TARGET_MEAN,
    DEFAULT_CURVE_TARGET_STD_DEV,
)


class CurveKind(str, Enum):
    FLAT = "flat"
    PERCENTAGE_BOOST = "percentage_boost"
    SQUARE_ROOT = "square_root"
    BELL = "bell"


def _clamp(score: float) -> float:
    return min(max(score, 0.0), 100.0)


def flat_curve(scores: Sequence[float], points: float) -> list[float]:
    return [_clamp(score + points) for score in scores]


def percentage_boost(scores: Sequence[float], factor: float) -> list[float]:
    """Multiply each score, e.g. ``factor=1.1`` for a 10% boost."""
    if factor < 0:
        raise ValueError("Boost factor must not be negative.")
    return [_clamp(score * factor) for score in scores]


def square_root_curve(scores: Sequence[float]) -> list[float]:
    return [_clamp(math.sqrt(max(score, 0.0)) * 10) for score in scores]


def bell_curve(scores: Sequence[float], target_mean: float, target_std_dev: float) -> list[float]:
    """Rescale to a target mean and spread using z-scores.

    Fewer than two scores, or scores with no spread, are returned unchanged.
    """
    if target_std_dev < 0:
        raise ValueError("Target standard deviation must not be negative.")
    if len(scores) < 2:
        return list(scores)

    mean = sum(scores) / len(scores)
    std_dev = math.sqrt(sum((score - mean) ** 2 for score in scores) / len(scores))
    if std_dev == 0:
        return list(scores)
    return [_clamp(target_mean + (score - mean) / std_dev * target_std_dev) for score in scores]


def apply_curve(
    scores: Sequence[float],
    kind: CurveKind,
    amount: float = 0.0,
    target_mean: float = DEFAULT_CURVE_TARGET_MEAN,
    target_std_dev: float = DEFAULT_CURVE_TARGET_STD_DEV,
) -> list[float]:
    """Dispatch to one curve. ``amount`` is points for FLAT and the factor for PERCENTAGE_BOOST."""
    if kind is CurveKind.FLAT:
        return flat_curve(scores, amount)
    if kind is CurveKind.PERCENTAGE_BOOST:
        return percentage_boost(scores, amount)
    if kind is CurveKind.SQUARE_ROOT:
        return square_root_curve(scores)
    return bell_curve(scores, target_mean, target_std_dev)
