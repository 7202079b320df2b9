"""
app/schemas/business_rules.py

Request and response schemas for business rule endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from app.schemas.common import CamelModel
from rules.models import BusinessRule, Violation


class BusinessRuleEvaluateRequest(CamelModel):
    """
    Both fields are optional here so a missing one can be reported with
    the endpoint's own 400 message.
    """

    agent_id: str | None = None
    data: list[dict[str, Any]] | None = None


class BusinessRuleCreateRequest(CamelModel):
    agent_id: str = Field(..., min_length=1)
    rule_name: str = Field(..., min_length=1)
    metric_column: str = Field(..., min_length=1)
    operator: str = Field(..., min_length=1)
    threshold_value: float
    comparison_type: str = "percentage"
    time_window: str = "monthly"
    baseline_calculation: str = "previous_period"
    baseline_value: float | None = None
    user_id: str | None = None
    description: str | None = None
    alert_frequency: str = "immediate"
    is_active: bool = True


class BusinessRuleResponse(CamelModel):
    id: str
    agent_id: str
    rule_name: str
    metric_column: str
    operator: str
    threshold_value: float
    comparison_type: str
    time_window: str
    baseline_calculation: str
    baseline_value: float | None = None
    user_id: str | None = None
    description: str | None = None
    alert_frequency: str
    is_active: bool
    trigger_count: int = Field(..., ge=0)
    last_triggered: datetime | None = None
    last_evaluation: datetime | None = None

    @classmethod
    def from_rule(cls, rule: BusinessRule) -> "BusinessRuleResponse":
        return cls(
            id=rule.id,
            agent_id=rule.agent_id,
            rule_name=rule.rule_name,
            metric_column=rule.metric_column,
            operator=rule.operator,
            threshold_value=rule.threshold_value,
            comparison_type=rule.comparison_type,
            time_window=rule.time_window,
            baseline_calculation=rule.baseline_calculation,
            baseline_value=rule.baseline_value,
            user_id=rule.user_id,
            description=rule.description,
            alert_frequency=rule.alert_frequency,
            is_active=rule.is_active,
            trigger_count=rule.trigger_count,
            last_triggered=rule.last_triggered,
            last_evaluation=rule.last_evaluation,
        )


class ViolationResponse(CamelModel):
    rule_id: str
    agent_id: str
    user_id: str | None = None
    metric_value: float
    threshold_value: float
    percentage_change: float
    baseline_value: float
    violation_severity: str
    message: str
    notification_sent: bool = False
    created_at: datetime

    @classmethod
    def from_violation(cls, violation: Violation) -> "ViolationResponse":
        return cls(
            rule_id=violation.rule_id,
            agent_id=violation.agent_id,
            user_id=violation.user_id,
            metric_value=violation.metric_value,
            threshold_value=violation.threshold_value,
            percentage_change=violation.percentage_change,
            baseline_value=violation.baseline_value,
            violation_severity=violation.severity,
            message=violation.message,
            notification_sent=violation.notification_sent,
            created_at=violation.created_at,
        )


class BusinessRuleEvaluationResponse(CamelModel):
    """
    API response model for one evaluation pass.
    """

    message: str
    rules_evaluated: int = Field(..., ge=0)
    violations_created: int = Field(..., ge=0)
    violations: list[ViolationResponse] = Field(default_factory=list)
