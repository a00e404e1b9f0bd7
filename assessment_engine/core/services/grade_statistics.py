"""Summary statistics over a set of percentage scores."""

from __future__ import annotations

from dataclasses import dataclass, field
import math
from typing import Iterable

HISTOGRAM_BUCKETS = 10


@dataclass(frozen=True, slots=True)
class GradeStatistics:
    count: int = 0
    mean: float = 0.0
    median: float = 0.0
    minimum: float = 0.0
    maximum: float = 0.0
    standard_deviation: float = 0.0
    # Buckets 0-9, 10-19, ..., 90-100.
    distribution: tuple[int, ...] = field(default=(0,) * HISTOGRAM_BUCKETS)

    @classmethod
    def from_scores(cls, scores: Iterable[float]) -> GradeStatistics:
        ordered = sorted(scores)
        if not ordered:
            return cls()

        count = len(ordered)
        mean = sum(ordered) / count
        mid = count // 2
        median = ordered[mid] if count % 2 else (ordered[mid - 1] + ordered[mid]) / 2
        variance = sum((score - mean) ** 2 for score in ordered) / count

        buckets = [0] * HISTOGRAM_BUCKETS
        for score in ordered:
            bucket = min(max(int(score // 10), 0), HISTOGRAM_BUCKETS - 1)
            buckets[bucket] += 1

        return cls(
            count=count,
            mean=mean,
            median=median,
            minimum=ordered[0],
            maximum=ordered[-1],
            standard_deviation=math.sqrt(variance),
            distribution=tuple(buckets),
        )
