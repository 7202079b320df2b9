"""
quality/trend.py

Classifies a set of per-column slopes into a dataset-level trend label.
No I/O, no side effects.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from quality.thresholds import DECLINING_THRESHOLD, IMPROVING_THRESHOLD, VOLATILITY_FACTOR

IMPROVING = "improving"
STABLE = "stable"
DECLINING = "declining"
VOLATILE = "volatile"
INSUFFICIENT_DATA = "insufficient_data"


@dataclass(frozen=True)
class TrendSummary:
    direction: str
    avg_trend: float | None = None
    trend_variance: float | None = None


class TrendClassifier:
    """
    Maps per-column regression slopes to one trend label.

        condition                          |  label
        -----------------------------------|-------------
        variance > 2 * |avg|               |  volatile
        avg > +0.1                         |  improving
        avg < -0.1                         |  declining
        otherwise                          |  stable

    Variance is the population variance of the slopes. Checks run in the
    order above, so a volatile set is never reported as improving.
    """

    VOLATILITY_FACTOR: float = VOLATILITY_FACTOR
    IMPROVING_THRESHOLD: float = IMPROVING_THRESHOLD
    DECLINING_THRESHOLD: float = DECLINING_THRESHOLD

    def classify(self, slopes: Sequence[float]) -> TrendSummary:
        if not slopes:
            return TrendSummary(direction=INSUFFICIENT_DATA)

        avg_trend = sum(slopes) / len(slopes)
        variance = sum((slope - avg_trend) ** 2 for slope in slopes) / len(slopes)

        if variance > abs(avg_trend) * self.VOLATILITY_FACTOR:
            direction = VOLATILE
        elif avg_trend > self.IMPROVING_THRESHOLD:
            direction = IMPROVING
        elif avg_trend < self.DECLINING_THRESHOLD:
            direction = DECLINING
        else:
            direction = STABLE

        return TrendSummary(direction=direction, avg_trend=avg_trend, trend_variance=variance)
