"""
rules/models.py

Business rule, evaluation result and violation records.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Any

# Comparison types
ABSOLUTE = "absolute"
PERCENTAGE = "percentage"
TREND = "trend"
COMPARISON_TYPES: frozenset[str] = frozenset({ABSOLUTE, PERCENTAGE, TREND})

# Baseline strategies
PREVIOUS_PERIOD = "previous_period"
MOVING_AVERAGE = "moving_average"
FIXED_VALUE = "fixed_value"
BASELINE_CALCULATIONS: frozenset[str] = frozenset({PREVIOUS_PERIOD, MOVING_AVERAGE, FIXED_VALUE})

# Severity buckets, mildest first
LOW = "low"
MEDIUM = "medium"
HIGH = "high"
CRITICAL = "critical"
SEVERITIES: tuple[str, ...] = (LOW, MEDIUM, HIGH, CRITICAL)

TIME_WINDOWS: dict[str, timedelta] = {
    "daily": timedelta(days=1),
    "weekly": timedelta(weeks=1),
    "monthly": timedelta(days=30),
    "quarterly": timedelta(days=90),
}


@dataclass
class BusinessRule:
    """
    A user-defined threshold rule attached to an agent.

    Only ``trigger_count``, ``last_triggered`` and ``last_evaluation`` change
    after creation; they are bookkeeping written back by the processor.
    """

    id: str
    agent_id: str
    rule_name: str
    metric_column: str
    operator: str
    threshold_value: float
    comparison_type: str = PERCENTAGE
    time_window: str = "monthly"
    baseline_calculation: str = PREVIOUS_PERIOD
    baseline_value: float | None = None
    user_id: str | None = None
    description: str | None = None
    alert_frequency: str = "immediate"
    is_active: bool = True
    trigger_count: int = 0
    last_triggered: datetime | None = None
    last_evaluation: datetime | None = None

    @property
    def window(self) -> timedelta | None:
        return TIME_WINDOWS.get(self.time_window)


@dataclass(frozen=True)
class RuleEvaluationResult:
    violated: bool
    current_value: float
    severity: str
    message: str
    previous_value: float | None = None
    deviation: float | None = None
    percentage_change: float | None = None


@dataclass(frozen=True)
class Violation:
    """
    One rule breach from one evaluation pass.
    """

    rule_id: str
    agent_id: str
    metric_value: float
    threshold_value: float
    severity: str
    message: str
    created_at: datetime
    baseline_value: float = 0.0
    percentage_change: float = 0.0
    user_id: str | None = None
    notification_sent: bool = False

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["created_at"] = self.created_at.isoformat()
        return payload
