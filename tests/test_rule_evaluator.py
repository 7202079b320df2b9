"""
tests/test_rule_evaluator.py

Pytest unit tests for single-rule evaluation.

Coverage
--------
- Severity buckets and the zero-threshold case
- Operator resolution and equality tolerance
- Absolute rules (sum metric, message, severity)
- Percentage rules against fixed and history-derived baselines
- Configuration errors (trend comparison, unknown operator / window)
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from rules.baseline import BaselineProvider, InMemoryMetricHistory, MetricObservation
from rules.errors import RuleConfigurationError, RuleEvaluationError
from rules.evaluator import calculate_metric_value, evaluate
from rules.models import (
    ABSOLUTE,
    CRITICAL,
    FIXED_VALUE,
    HIGH,
    LOW,
    MEDIUM,
    MOVING_AVERAGE,
    PERCENTAGE,
    PREVIOUS_PERIOD,
    TREND,
    BusinessRule,
)
from rules.operators import compare_absolute, compare_percentage
from rules.severity import calculate_severity

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

REVENUE_ROWS = [{"revenue": 100}, {"revenue": "200"}]


def _rule(**overrides: object) -> BusinessRule:
    values: dict[str, object] = {
        "id": "rule-1",
        "agent_id": "agent-1",
        "rule_name": "Revenue cap",
        "metric_column": "revenue",
        "operator": ">",
        "threshold_value": 250.0,
        "comparison_type": ABSOLUTE,
    }
    values.update(overrides)
    return BusinessRule(**values)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Severity
# ---------------------------------------------------------------------------


class TestSeverity:
    @pytest.mark.parametrize(
        ("deviation", "expected"),
        [(9.0, LOW), (12.0, LOW), (16.0, MEDIUM), (21.0, HIGH), (35.0, CRITICAL)],
    )
    def test_ratio_buckets(self, deviation: float, expected: str) -> None:
        assert calculate_severity(deviation, 10.0) == expected

    def test_bucket_lower_bounds_are_inclusive(self) -> None:
        assert calculate_severity(15.0, 10.0) == MEDIUM
        assert calculate_severity(20.0, 10.0) == HIGH
        assert calculate_severity(30.0, 10.0) == CRITICAL

    def test_negative_threshold_uses_magnitude(self) -> None:
        assert calculate_severity(35.0, -10.0) == CRITICAL

    def test_zero_threshold(self) -> None:
        assert calculate_severity(5.0, 0.0) == CRITICAL
        assert calculate_severity(0.0, 0.0) == LOW


# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------


class TestOperators:
    @pytest.mark.parametrize(
        ("operator", "value", "expected"),
        [
            (">", 11.0, True),
            ("greater_than", 10.0, False),
            ("<", 9.0, True),
            (">=", 10.0, True),
            ("≥", 10.0, True),
            ("<=", 10.0, True),
            ("≤", 10.1, False),
            ("!=", 10.5, True),
            ("≠", 10.0, False),
        ],
    )
    def test_absolute(self, operator: str, value: float, expected: bool) -> None:
        assert compare_absolute(value, operator, 10.0) is expected

    def test_equality_uses_tolerance(self) -> None:
        assert compare_absolute(100.0005, "=", 100.0) is True
        assert compare_absolute(100.0005, "==", 100.0) is True
        assert compare_absolute(100.01, "equals", 100.0) is False
        assert compare_absolute(100.0005, "not_equals", 100.0) is False

    def test_percentage(self) -> None:
        assert compare_percentage(30.0, "increases_by_more_than", 20.0) is True
        assert compare_percentage(-30.0, "increases_by_more_than", 20.0) is False
        assert compare_percentage(-30.0, "decreases_by_more_than", 20.0) is True
        assert compare_percentage(-30.0, "changes_by_more_than", 20.0) is True
        assert compare_percentage(10.0, "changes_by_more_than", 20.0) is False

    def test_percentage_symbols(self) -> None:
        assert compare_percentage(30.0, ">", 20.0) is True
        assert compare_percentage(-30.0, "<", 20.0) is True
        assert compare_percentage(-30.0, "≠", 20.0) is True

    def test_unknown_operators(self) -> None:
        with pytest.raises(RuleConfigurationError):
            compare_absolute(1.0, "~", 1.0)
        with pytest.raises(RuleConfigurationError):
            compare_percentage(1.0, "=", 1.0)


# ---------------------------------------------------------------------------
# Absolute rules
# ---------------------------------------------------------------------------


class TestAbsoluteRules:
    def test_metric_is_sum_of_numeric_values(self) -> None:
        rows = [{"v": "1,000"}, {"v": "abc"}, {"v": None}, {}, {"v": 2.5}]
        assert calculate_metric_value(rows, "v") == pytest.approx(1002.5)

    def test_sum_above_threshold_violates(self) -> None:
        result = evaluate(_rule(), REVENUE_ROWS)

        assert result.violated is True
        assert result.current_value == 300.0
        assert result.deviation == 50.0
        assert result.severity == LOW
        assert result.message == "Revenue cap: Current value (300.00) violates threshold (250)"

    def test_sum_below_threshold_passes(self) -> None:
        result = evaluate(_rule(threshold_value=500.0), REVENUE_ROWS)
        assert result.violated is False

    def test_large_breach_is_critical(self) -> None:
        result = evaluate(_rule(threshold_value=50.0), REVENUE_ROWS)
        assert result.violated is True
        assert result.severity == CRITICAL

    def test_unknown_operator_raises(self) -> None:
        with pytest.raises(RuleConfigurationError) as excinfo:
            evaluate(_rule(operator="~"), REVENUE_ROWS)
        assert isinstance(excinfo.value, RuleEvaluationError)


# ---------------------------------------------------------------------------
# Percentage rules
# ---------------------------------------------------------------------------


class TestPercentageRules:
    def test_fixed_baseline_increase(self) -> None:
        rule = _rule(
            comparison_type=PERCENTAGE,
            baseline_calculation=FIXED_VALUE,
            baseline_value=100.0,
            threshold_value=20.0,
            rule_name="Revenue jump",
        )

        result = evaluate(rule, [{"revenue": 130}])

        assert result.violated is True
        assert result.previous_value == 100.0
        assert result.percentage_change == pytest.approx(30.0)
        assert result.severity == MEDIUM
        assert result.message == (
            "Revenue jump: Metric increased by 30.0% (from 100.00 to 130.00), exceeding 20% threshold"
        )

    def test_decrease_against_increase_operator_passes(self) -> None:
        rule = _rule(
            comparison_type=PERCENTAGE,
            baseline_calculation=FIXED_VALUE,
            baseline_value=100.0,
            threshold_value=20.0,
        )
        result = evaluate(rule, [{"revenue": 70}])
        assert result.violated is False
        assert result.percentage_change == pytest.approx(-30.0)

    def test_decrease_operator(self) -> None:
        rule = _rule(
            comparison_type=PERCENTAGE,
            baseline_calculation=FIXED_VALUE,
            baseline_value=100.0,
            threshold_value=20.0,
            operator="decreases_by_more_than",
        )
        result = evaluate(rule, [{"revenue": 70}])
        assert result.violated is True
        assert "decreased by 30.0%" in result.message

    def test_missing_baseline_never_violates(self) -> None:
        rule = _rule(comparison_type=PERCENTAGE, baseline_calculation=PREVIOUS_PERIOD, threshold_value=1.0)
        result = evaluate(rule, REVENUE_ROWS)
        assert result.violated is False
        assert result.severity == LOW
        assert result.message == "Revenue cap: No baseline available for comparison"

    def test_zero_baseline_never_violates(self) -> None:
        rule = _rule(
            comparison_type=PERCENTAGE,
            baseline_calculation=FIXED_VALUE,
            baseline_value=0.0,
            threshold_value=1.0,
        )
        assert evaluate(rule, REVENUE_ROWS).violated is False

    def test_invalid_operator_is_reported_without_baseline(self) -> None:
        rule = _rule(comparison_type=PERCENTAGE, operator="=")
        with pytest.raises(RuleConfigurationError):
            evaluate(rule, REVENUE_ROWS)

    def test_previous_period_uses_latest_value_in_window(self) -> None:
        history = InMemoryMetricHistory()
        history.record(MetricObservation("rule-1", 50.0, NOW - timedelta(days=45)))
        history.record(MetricObservation("rule-1", 200.0, NOW - timedelta(days=10)))
        history.record(MetricObservation("rule-1", 250.0, NOW - timedelta(days=1)))
        provider = BaselineProvider(history=history, clock=lambda: NOW)

        rule = _rule(comparison_type=PERCENTAGE, time_window="monthly", threshold_value=10.0)
        result = evaluate(rule, REVENUE_ROWS, provider)

        assert result.previous_value == 250.0
        assert result.percentage_change == pytest.approx(20.0)
        assert result.violated is True

    def test_moving_average_baseline(self) -> None:
        history = InMemoryMetricHistory()
        history.record(MetricObservation("rule-1", 100.0, NOW - timedelta(days=3)))
        history.record(MetricObservation("rule-1", 200.0, NOW - timedelta(days=2)))
        provider = BaselineProvider(history=history, clock=lambda: NOW)

        rule = _rule(comparison_type=PERCENTAGE, baseline_calculation=MOVING_AVERAGE, time_window="weekly")
        assert provider.baseline_for(rule) == pytest.approx(150.0)

    def test_history_outside_window_is_ignored(self) -> None:
        history = InMemoryMetricHistory()
        history.record(MetricObservation("rule-1", 100.0, NOW - timedelta(days=2)))
        provider = BaselineProvider(history=history, clock=lambda: NOW)

        rule = _rule(comparison_type=PERCENTAGE, time_window="daily")
        assert provider.baseline_for(rule) is None

    def test_history_drops_observations_past_retention(self) -> None:
        history = InMemoryMetricHistory()
        history.record(MetricObservation("rule-1", 10.0, NOW - timedelta(days=120)))
        history.record(MetricObservation("rule-1", 20.0, NOW - timedelta(days=60)))
        history.record(MetricObservation("rule-1", 30.0, NOW))
        history.record(MetricObservation("rule-2", 5.0, NOW - timedelta(days=120)))

        assert [item.value for item in history.get_observations("rule-1")] == [20.0, 30.0]
        assert [item.value for item in history.get_observations("rule-2")] == [5.0]


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------


class TestConfigurationErrors:
    def test_trend_comparison_is_unsupported(self) -> None:
        with pytest.raises(RuleConfigurationError) as excinfo:
            evaluate(_rule(comparison_type=TREND), REVENUE_ROWS)
        assert excinfo.value.rule_id == "rule-1"

    def test_unknown_comparison_type(self) -> None:
        with pytest.raises(RuleConfigurationError):
            evaluate(_rule(comparison_type="ratio"), REVENUE_ROWS)

    def test_unknown_time_window(self) -> None:
        rule = _rule(comparison_type=PERCENTAGE, time_window="hourly")
        with pytest.raises(RuleConfigurationError):
            evaluate(rule, REVENUE_ROWS)

    def test_unknown_baseline_calculation(self) -> None:
        rule = _rule(comparison_type=PERCENTAGE, baseline_calculation="median")
        with pytest.raises(RuleConfigurationError):
            evaluate(rule, REVENUE_ROWS)

    def test_error_payload(self) -> None:
        error = RuleConfigurationError("bad rule", rule_id="r9")
        assert error.to_dict()["rule_id"] == "r9"
