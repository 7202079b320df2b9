"""
rules/operators.py

Comparison operators for absolute and percentage rules.

Rules may store operators as symbols (``>``, ``<=``, ``≠``...) or as names
(``greater_than``...). Both are resolved to the canonical name before
comparing.
"""

from __future__ import annotations

from rules.errors import RuleConfigurationError
from rules.settings import as_float, load_rule_settings

EQUALITY_TOLERANCE: float = as_float(load_rule_settings().get("equality_tolerance"), 0.001)

GREATER_THAN = "greater_than"
LESS_THAN = "less_than"
EQUALS = "equals"
NOT_EQUALS = "not_equals"
GREATER_THAN_OR_EQUAL = "greater_than_or_equal"
LESS_THAN_OR_EQUAL = "less_than_or_equal"

INCREASES_BY_MORE_THAN = "increases_by_more_than"
DECREASES_BY_MORE_THAN = "decreases_by_more_than"
CHANGES_BY_MORE_THAN = "changes_by_more_than"

ABSOLUTE_OPERATORS: dict[str, str] = {
    ">": GREATER_THAN,
    "<": LESS_THAN,
    "=": EQUALS,
    "==": EQUALS,
    "!=": NOT_EQUALS,
    "≠": NOT_EQUALS,
    ">=": GREATER_THAN_OR_EQUAL,
    "≥": GREATER_THAN_OR_EQUAL,
    "<=": LESS_THAN_OR_EQUAL,
    "≤": LESS_THAN_OR_EQUAL,
    GREATER_THAN: GREATER_THAN,
    LESS_THAN: LESS_THAN,
    EQUALS: EQUALS,
    NOT_EQUALS: NOT_EQUALS,
    GREATER_THAN_OR_EQUAL: GREATER_THAN_OR_EQUAL,
    LESS_THAN_OR_EQUAL: LESS_THAN_OR_EQUAL,
}

# Symbol operators on a percentage rule read as "moves by more than":
# ">" is an increase, "<" a decrease and "!=" a change in either direction.
PERCENTAGE_OPERATORS: dict[str, str] = {
    ">": INCREASES_BY_MORE_THAN,
    ">=": INCREASES_BY_MORE_THAN,
    "≥": INCREASES_BY_MORE_THAN,
    "<": DECREASES_BY_MORE_THAN,
    "<=": DECREASES_BY_MORE_THAN,
    "≤": DECREASES_BY_MORE_THAN,
    "!=": CHANGES_BY_MORE_THAN,
    "≠": CHANGES_BY_MORE_THAN,
    INCREASES_BY_MORE_THAN: INCREASES_BY_MORE_THAN,
    DECREASES_BY_MORE_THAN: DECREASES_BY_MORE_THAN,
    CHANGES_BY_MORE_THAN: CHANGES_BY_MORE_THAN,
}


def resolve_absolute_operator(operator: str) -> str:
    name = ABSOLUTE_OPERATORS.get(operator.strip())
    if name is None:
        raise RuleConfigurationError(f"Unsupported absolute operator '{operator}'.")
    return name


def resolve_percentage_operator(operator: str) -> str:
    name = PERCENTAGE_OPERATORS.get(operator.strip())
    if name is None:
        raise RuleConfigurationError(f"Unsupported percentage operator '{operator}'.")
    return name


def compare_absolute(value: float, operator: str, threshold: float) -> bool:
    """
    Apply an absolute operator. Equality is within EQUALITY_TOLERANCE.
    """

    name = resolve_absolute_operator(operator)
    if name == GREATER_THAN:
        return value > threshold
    if name == LESS_THAN:
        return value < threshold
    if name == EQUALS:
        return abs(value - threshold) < EQUALITY_TOLERANCE
    if name == NOT_EQUALS:
        return abs(value - threshold) >= EQUALITY_TOLERANCE
    if name == GREATER_THAN_OR_EQUAL:
        return value >= threshold
    return value <= threshold


def compare_percentage(percentage_change: float, operator: str, threshold: float) -> bool:
    name = resolve_percentage_operator(operator)
    if name == INCREASES_BY_MORE_THAN:
        return percentage_change > threshold
    if name == DECREASES_BY_MORE_THAN:
        return percentage_change < -threshold
    return abs(percentage_change) > threshold
