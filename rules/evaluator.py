"""
rules/evaluator.py

Evaluates one business rule against a batch of rows.

The metric is always the sum of the rule's column over every row. Other
aggregations (mean, count, min, max) are not supported.
"""

from __future__ import annotations

import math
from typing import Iterable

from inference.detector import to_finite_number
from ingestion.models import Record
from rules.baseline import BaselineProvider
from rules.errors import RuleConfigurationError
from rules.models import ABSOLUTE, LOW, PERCENTAGE, TREND, BusinessRule, RuleEvaluationResult
from rules.operators import compare_absolute, compare_percentage
from rules.severity import calculate_severity


def calculate_metric_value(rows: Iterable[Record], column: str) -> float:
    """
    Sum ``column`` over ``rows``; values that are not numbers count as 0.
    """

    total = 0.0
    for row in rows:
        number = to_finite_number(row.get(column))
        if number is not None:
            total += number
    return total


def _format_threshold(value: float) -> str:
    if math.isfinite(value) and float(value).is_integer():
        return str(int(value))
    return str(value)


def absolute_message(rule: BusinessRule, current_value: float) -> str:
    return (
        f"{rule.rule_name}: Current value ({current_value:.2f}) "
        f"violates threshold ({_format_threshold(rule.threshold_value)})"
    )


def percentage_message(rule: BusinessRule, current_value: float, baseline: float, deviation: float) -> str:
    direction = "increased" if current_value > baseline else "decreased"
    return (
        f"{rule.rule_name}: Metric {direction} by {deviation:.1f}% "
        f"(from {baseline:.2f} to {current_value:.2f}), "
        f"exceeding {_format_threshold(rule.threshold_value)}% threshold"
    )


def evaluate(
    rule: BusinessRule,
    rows: Iterable[Record],
    baseline_provider: BaselineProvider | None = None,
) -> RuleEvaluationResult:
    """
    Evaluate ``rule`` against ``rows``.

    Absolute rules compare the metric with the threshold directly; their
    severity uses ``|current - threshold| / |threshold|`` as the ratio.
    Percentage rules compare the change from the baseline; a missing or zero
    baseline never violates. Raises RuleConfigurationError for trend rules
    and for unknown operators or comparison types.
    """

    current_value = calculate_metric_value(rows, rule.metric_column)
    threshold = float(rule.threshold_value)

    if rule.comparison_type == ABSOLUTE:
        violated = compare_absolute(current_value, rule.operator, threshold)
        deviation = abs(current_value - threshold)
        return RuleEvaluationResult(
            violated=violated,
            current_value=current_value,
            severity=calculate_severity(deviation, threshold),
            message=absolute_message(rule, current_value),
            deviation=deviation,
        )

    if rule.comparison_type == PERCENTAGE:
        provider = baseline_provider or BaselineProvider()
        baseline = provider.baseline_for(rule)
        if baseline is None or baseline == 0:
            # Operator still validated so a broken rule is reported even
            # before history exists.
            compare_percentage(0.0, rule.operator, threshold)
            return RuleEvaluationResult(
                violated=False,
                current_value=current_value,
                severity=LOW,
                message=f"{rule.rule_name}: No baseline available for comparison",
                previous_value=baseline,
            )

        percentage_change = (current_value - baseline) / baseline * 100
        deviation = abs(percentage_change)
        violated = compare_percentage(percentage_change, rule.operator, threshold)
        return RuleEvaluationResult(
            violated=violated,
            current_value=current_value,
            severity=calculate_severity(deviation, threshold),
            message=percentage_message(rule, current_value, baseline, deviation),
            previous_value=baseline,
            deviation=deviation,
            percentage_change=percentage_change,
        )

    if rule.comparison_type == TREND:
        raise RuleConfigurationError(
            "Trend comparison is not supported by the evaluator.",
            rule_id=rule.id,
        )

    raise RuleConfigurationError(
        f"Unsupported comparison type '{rule.comparison_type}'.",
        rule_id=rule.id,
    )
