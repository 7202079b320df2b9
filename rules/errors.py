"""
rules/errors.py

Exceptions raised by business rule evaluation and violation persistence.
"""

from __future__ import annotations


class RuleEvaluationError(RuntimeError):
    """
    Raised when a single rule cannot be evaluated.

    The batch processor logs it and moves on to the next rule.
    """

    def __init__(self, message: str, *, rule_id: str | None = None) -> None:
        super().__init__(message)
        self.rule_id = rule_id

    def to_dict(self) -> dict[str, object]:
        return {"message": str(self), "rule_id": self.rule_id}


class RuleConfigurationError(RuleEvaluationError):
    """
    Raised when a rule's definition cannot be evaluated as configured
    (unknown operator, unsupported comparison type or baseline strategy).
    """


class ViolationPersistenceError(RuntimeError):
    """
    Raised when violations cannot be stored after all attempts.
    """

    def __init__(self, message: str, *, attempts: int, violation_count: int) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.violation_count = violation_count

    def to_dict(self) -> dict[str, object]:
        return {
            "message": str(self),
            "attempts": self.attempts,
            "violation_count": self.violation_count,
        }
