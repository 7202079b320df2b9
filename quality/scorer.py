"""
quality/scorer.py

Quality & health scoring for a normalized dataset.

Produces a frozen QualityReport: per-column completeness and type counts,
z-score outliers, a dataset trend label, the composite 0-100 score and
advisory strings for the summary layer.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Mapping, Sequence

from inference.detector import DATE, NUMERIC
from ingestion.models import CellValue, Record
from quality.statistics import count_outliers, ols_slope
from quality.thresholds import (
    COMPLETENESS_RISK_THRESHOLD,
    DUPLICATE_WEIGHT,
    MISSING_WEIGHT,
    OUTLIER_PENALTY_MULTIPLIER,
    OUTLIER_WEIGHT,
    RISKY_OUTLIER_SHARE,
    SMALL_SAMPLE_ROWS,
    TREND_MIN_ROWS,
)
from quality.trend import DECLINING, IMPROVING, VOLATILE, TrendClassifier

logger = logging.getLogger(__name__)

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class ColumnQuality:
    column: str
    rows: int
    missing: int
    missing_pct: float
    completeness: float
    dominant_type: str
    numeric_count: int
    date_count: int
    string_count: int
    outlier_count: int
    is_risky: bool


@dataclass(frozen=True)
class QualityReport:
    """
    Immutable result of one scoring pass.

    ``overall_score`` is in [0, 100] and ``data_quality`` (mean column
    completeness) in [0, 1].
    """

    original_row_count: int
    cleaned_row_count: int
    duplicates_removed: int
    overall_score: float
    data_quality: float
    trend_direction: str
    per_column: tuple[ColumnQuality, ...]
    risk_factors: tuple[str, ...] = ()
    opportunities: tuple[str, ...] = ()
    critical_issues: tuple[str, ...] = ()
    avg_trend: float | None = None
    trend_variance: float | None = None

    def column(self, name: str) -> ColumnQuality | None:
        for column in self.per_column:
            if column.column == name:
                return column
        return None

    @property
    def column_types(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for column in self.per_column:
            counts[column.dominant_type] = counts.get(column.dominant_type, 0) + 1
        return counts


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _is_missing(value: CellValue) -> bool:
    return value is None or value == ""


def _is_number(value: CellValue) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def numeric_values(records: Sequence[Record], column: str) -> list[float]:
    return [float(record[column]) for record in records if _is_number(record.get(column))]


def _column_quality(records: Sequence[Record], column: str, column_type: str) -> ColumnQuality:
    rows = len(records)
    values = [record.get(column) for record in records]

    missing = sum(1 for value in values if _is_missing(value))
    numeric = sum(1 for value in values if _is_number(value))
    dates = sum(1 for value in values if isinstance(value, str) and _ISO_DATE_RE.match(value))
    strings = rows - numeric - dates - missing

    completeness = (rows - missing) / rows if rows else 0.0
    missing_pct = (missing / rows) * 100 if rows else 0.0

    outliers = 0
    is_risky = False
    if column_type == NUMERIC:
        series = numeric_values(records, column)
        outliers = count_outliers(series)
        is_risky = outliers > len(series) * RISKY_OUTLIER_SHARE

    return ColumnQuality(
        column=column,
        rows=rows,
        missing=missing,
        missing_pct=round(missing_pct, 1),
        completeness=completeness,
        dominant_type=column_type,
        numeric_count=numeric,
        date_count=dates,
        string_count=strings,
        outlier_count=outliers,
        is_risky=is_risky,
    )


def composite_score(
    avg_missing_pct: float,
    duplicates_removed: int,
    original_row_count: int,
    total_outliers: int,
    cleaned_row_count: int,
) -> float:
    """
    ``max(0, 100 - 0.6*missing - 0.3*duplicates - 0.1*outliers)``, one decimal.
    """

    dup_penalty = duplicates_removed / max(original_row_count, 1) * 100
    outlier_penalty = total_outliers / max(cleaned_row_count, 1) * OUTLIER_PENALTY_MULTIPLIER
    raw = (
        100
        - MISSING_WEIGHT * avg_missing_pct
        - DUPLICATE_WEIGHT * dup_penalty
        - OUTLIER_WEIGHT * outlier_penalty
    )
    return max(0.0, round(raw, 1))


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def score(
    records: Sequence[Record],
    column_types: Mapping[str, str],
    original_row_count: int | None = None,
) -> QualityReport:
    """
    Score normalized records.

    ``column_types`` maps column name to its inferred type, in column order.
    ``original_row_count`` is the row count before deduplication; it
    defaults to ``len(records)`` (no duplicates removed).
    """

    cleaned_count = len(records)
    original_count = cleaned_count if original_row_count is None else original_row_count
    duplicates_removed = max(original_count - cleaned_count, 0)

    per_column = tuple(
        _column_quality(records, column, column_type)
        for column, column_type in column_types.items()
    )

    risk_factors: list[str] = []
    opportunities: list[str] = []
    critical_issues: list[str] = []

    # Completeness
    if per_column and cleaned_count:
        data_quality = sum(column.completeness for column in per_column) / len(per_column)
    else:
        data_quality = 0.0
    for column in per_column:
        if cleaned_count and column.completeness < COMPLETENESS_RISK_THRESHOLD:
            risk_factors.append(
                f"{column.column} has {(1 - column.completeness) * 100:.1f}% missing data"
            )

    # Trend
    numeric_columns = [column for column, column_type in column_types.items() if column_type == NUMERIC]
    classifier = TrendClassifier()
    if numeric_columns and cleaned_count >= TREND_MIN_ROWS:
        slopes = [ols_slope(numeric_values(records, column)) for column in numeric_columns]
        trend = classifier.classify(slopes)
    else:
        trend = classifier.classify([])

    if trend.direction == VOLATILE:
        risk_factors.append("High volatility detected in key metrics")
    elif trend.direction == IMPROVING:
        opportunities.append("Positive trends detected in multiple metrics")
    elif trend.direction == DECLINING:
        critical_issues.append("Declining trends detected in key metrics")

    # Outliers
    for column in per_column:
        if column.is_risky:
            tested = column.numeric_count
            risk_factors.append(
                f"{column.column} has {column.outlier_count} potential outliers "
                f"({column.outlier_count / tested * 100:.1f}%)"
            )

    # Shape
    if cleaned_count < SMALL_SAMPLE_ROWS:
        risk_factors.append("Limited sample size may affect analysis reliability")
    if not numeric_columns:
        risk_factors.append("No numeric columns found for quantitative analysis")
    if not any(column_type == DATE for column_type in column_types.values()):
        opportunities.append("Consider adding timestamp data for temporal analysis")

    avg_missing_pct = (
        sum((1 - column.completeness) * 100 for column in per_column) / len(per_column)
        if per_column and cleaned_count
        else 0.0
    )
    total_outliers = sum(column.outlier_count for column in per_column)
    overall = composite_score(
        avg_missing_pct,
        duplicates_removed,
        original_count,
        total_outliers,
        cleaned_count,
    )

    logger.info(
        "Scored dataset rows=%s columns=%s score=%s data_quality=%.3f trend=%s",
        cleaned_count,
        len(per_column),
        overall,
        data_quality,
        trend.direction,
    )

    return QualityReport(
        original_row_count=original_count,
        cleaned_row_count=cleaned_count,
        duplicates_removed=duplicates_removed,
        overall_score=overall,
        data_quality=data_quality,
        trend_direction=trend.direction,
        per_column=per_column,
        risk_factors=tuple(risk_factors),
        opportunities=tuple(opportunities),
        critical_issues=tuple(critical_issues),
        avg_trend=trend.avg_trend,
        trend_variance=trend.trend_variance,
    )
