"""
quality/statistics.py

Descriptive statistics used by the quality scorer: sample mean/std,
z-score outliers and the least-squares slope of a series.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from quality.thresholds import OUTLIER_MIN_VALUES, OUTLIER_Z_THRESHOLD, TREND_MIN_POINTS


def mean_and_std(values: Sequence[float]) -> tuple[float, float]:
    """
    Return the mean and the sample standard deviation (``ddof=1``).

    The standard deviation is 0.0 for fewer than two values.
    """

    if not values:
        return 0.0, 0.0
    array = np.asarray(values, dtype=float)
    mean = float(array.mean())
    if array.size < 2:
        return mean, 0.0
    return mean, float(array.std(ddof=1))


def is_outlier(
    value: float,
    mean: float,
    std: float,
    threshold: float = OUTLIER_Z_THRESHOLD,
) -> bool:
    """
    Strict z-score test: ``|value - mean| / std > threshold``.

    A column without spread has no outliers.
    """

    if std <= 0.0 or not math.isfinite(std):
        return False
    return abs(value - mean) / std > threshold


def count_outliers(values: Sequence[float], min_values: int = OUTLIER_MIN_VALUES) -> int:
    """
    Count z-score outliers; columns with ``min_values`` values or fewer are
    not tested.
    """

    if len(values) <= min_values:
        return 0
    mean, std = mean_and_std(values)
    return sum(1 for value in values if is_outlier(value, mean, std))


def ols_slope(values: Sequence[float], min_points: int = TREND_MIN_POINTS) -> float:
    """
    Least-squares slope of ``values`` against their index.

        m = sum((x - mean_x) * (y - mean_y)) / sum((x - mean_x) ** 2)

    Series shorter than ``min_points`` and degenerate series return 0.0.
    """

    n = len(values)
    if n < min_points:
        return 0.0

    x = np.arange(n, dtype=float)
    y = np.asarray(values, dtype=float)

    cov_xy = float(((x - x.mean()) * (y - y.mean())).sum())
    var_x = float(((x - x.mean()) ** 2).sum())
    if var_x == 0.0:
        return 0.0
    return cov_xy / var_x
