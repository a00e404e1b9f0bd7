"""Cumulative XP to level mapping.

Reaching level N (N > 1) takes ``1 + 100 * (1 + 2 + ... + N-1)`` XP, so the
gap between levels grows by 100 each time. Level 1 starts at 0 XP and there
is no top level.
"""

from __future__ import annotations

import math

from assessment_engine.core.grade_models import LevelProgress

XP_STEP = 100


def xp_required(level: int) -> int:
    if level < 1:
        raise ValueError("Levels start at 1.")
    if level == 1:
        return 0
    return 1 + XP_STEP * (level - 1) * level // 2


def level_for_xp(xp: int) -> int:
    """Largest level whose threshold is at or below ``xp``."""
    if xp < 0:
        raise ValueError("XP must not be negative.")
    if xp == 0:
        return 1
    # 50 * N * (N - 1) <= xp - 1  <=>  N <= (1 + sqrt(1 + 4k)) / 2 with k = (xp - 1) // 50
    k = (xp - 1) // (XP_STEP // 2)
    return (1 + math.isqrt(1 + 4 * k)) // 2


def progress_in_level(xp: int) -> float:
    """Fraction of the way from the current level's threshold to the next, in [0, 1)."""
    level = level_for_xp(xp)
    start = xp_required(level)
    end = xp_required(level + 1)
    return (xp - start) / (end - start)


def xp_to_next_level(xp: int) -> int:
    return xp_required(level_for_xp(xp) + 1) - xp


def describe_level(xp: int) -> LevelProgress:
    level = level_for_xp(xp)
    return LevelProgress(
        xp=xp,
        level=level,
        level_start_xp=xp_required(level),
        next_level_xp=xp_required(level + 1),
        progress=progress_in_level(xp),
    )


def award_xp(total_xp: int, gained: int) -> tuple[int, int]:
    """Add ``gained`` XP and report how many levels were crossed."""
    if gained < 0:
        raise ValueError("Awarded XP must not be negative.")
    new_total = total_xp + gained
    return new_total, level_for_xp(new_total) - level_for_xp(total_xp)
