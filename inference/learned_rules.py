"""
inference/learned_rules.py

Learned column-classification rules and the repository interface the
inference engine reads them through.

Rules are derived from user type corrections. The engine never talks to a
store directly: it receives a ClassificationRuleRepository and reports
usage/outcomes back through it.
"""

from __future__ import annotations

import logging
import re
import threading
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Iterable, Protocol

logger = logging.getLogger(__name__)

# Exponential moving average rate for success tracking.
SUCCESS_RATE_ALPHA: float = 0.1
DEACTIVATION_SUCCESS_RATE: float = 0.3
DEACTIVATION_MIN_USAGE: int = 10

FEEDBACK_INITIAL_CONFIDENCE: float = 0.8
FEEDBACK_CONFIDENCE_STEP: float = 0.1


@dataclass(frozen=True)
class ClassificationRule:
    """
    One learned rule mapping a column-name pattern to a semantic type.
    """

    id: str
    rule_name: str
    pattern: str
    target_type: str
    rule_type: str = "column_name_pattern"
    confidence_score: float = FEEDBACK_INITIAL_CONFIDENCE
    usage_count: int = 0
    success_rate: float = 0.5
    is_active: bool = True
    created_from_feedback_count: int = 0
    updated_at: datetime | None = None

    def matches(self, column_name: str) -> bool:
        """
        Substring match on the lower-cased name, or a case-insensitive regex.
        """

        if self.rule_type != "column_name_pattern":
            return False
        if self.pattern.lower() in column_name.lower():
            return True
        try:
            return re.search(self.pattern, column_name, flags=re.IGNORECASE) is not None
        except re.error:
            return False


@dataclass(frozen=True)
class TypeCorrection:
    """
    A user correcting an inferred column type.
    """

    column_name: str
    original_type: str
    corrected_type: str


class ClassificationRuleRepository(Protocol):
    """
    Store of learned classification rules.
    """

    def get_active_rules(self) -> list[ClassificationRule]:
        ...

    def record_usage(self, rule_id: str) -> None:
        ...

    def record_outcome(self, rule_id: str, success: bool) -> None:
        ...


def next_success_rate(current: float, success: bool) -> float:
    """
    One EMA step towards 1.0 (success) or 0.0 (failure), clamped to [0, 1].
    """

    target = 1.0 if success else 0.0
    updated = current + SUCCESS_RATE_ALPHA * (target - current)
    return max(0.0, min(1.0, updated))


class InMemoryClassificationRuleRepository:
    """
    Process-local rule store.

    Active rules are returned highest confidence first. A rule whose success
    rate drops below 0.3 after more than 10 uses is deactivated.
    """

    def __init__(self, rules: Iterable[ClassificationRule] = ()) -> None:
        self._rules: dict[str, ClassificationRule] = {rule.id: rule for rule in rules}
        self._lock = threading.Lock()

    def add(self, rule: ClassificationRule) -> None:
        with self._lock:
            self._rules[rule.id] = rule

    def get(self, rule_id: str) -> ClassificationRule | None:
        return self._rules.get(rule_id)

    def list_rules(self) -> list[ClassificationRule]:
        with self._lock:
            return list(self._rules.values())

    def get_active_rules(self) -> list[ClassificationRule]:
        with self._lock:
            active = [rule for rule in self._rules.values() if rule.is_active]
        return sorted(active, key=lambda rule: rule.confidence_score, reverse=True)

    def record_usage(self, rule_id: str) -> None:
        with self._lock:
            rule = self._rules.get(rule_id)
            if rule is None:
                return
            self._rules[rule_id] = replace(
                rule,
                usage_count=rule.usage_count + 1,
                updated_at=datetime.now(timezone.utc),
            )

    def record_outcome(self, rule_id: str, success: bool) -> None:
        with self._lock:
            rule = self._rules.get(rule_id)
            if rule is None:
                logger.warning("Outcome recorded for unknown classification rule id=%s", rule_id)
                return

            success_rate = next_success_rate(rule.success_rate, success)
            is_active = rule.is_active
            if success_rate < DEACTIVATION_SUCCESS_RATE and rule.usage_count > DEACTIVATION_MIN_USAGE:
                is_active = False
                logger.info(
                    "Classification rule deactivated id=%s success_rate=%.3f usage=%s",
                    rule_id,
                    success_rate,
                    rule.usage_count,
                )
            self._rules[rule_id] = replace(
                rule,
                success_rate=success_rate,
                is_active=is_active,
                updated_at=datetime.now(timezone.utc),
            )


def rules_from_feedback(
    corrections: Iterable[TypeCorrection],
    existing_rule_names: Iterable[str] = (),
) -> list[ClassificationRule]:
    """
    Derive new column-name rules from repeated type corrections.

    Corrections are grouped by (lower-cased name, original, corrected).
    Confidence starts at 0.8 and grows 0.1 per repeat up to 1.0; a pattern
    is kept when seen at least twice or once its confidence reaches 0.9.
    """

    grouped: dict[tuple[str, str, str], list[float]] = {}
    for correction in corrections:
        key = (
            correction.column_name.lower(),
            correction.original_type,
            correction.corrected_type,
        )
        if key in grouped:
            occurrences, confidence = grouped[key]
            grouped[key] = [occurrences + 1, min(1.0, confidence + FEEDBACK_CONFIDENCE_STEP)]
        else:
            grouped[key] = [1, FEEDBACK_INITIAL_CONFIDENCE]

    known = set(existing_rule_names)
    rules: list[ClassificationRule] = []
    for (pattern, _original, corrected), (occurrences, confidence) in grouped.items():
        if occurrences < 2 and confidence < 0.9:
            continue
        rule_name = f"feedback_rule_{pattern}_{corrected}"
        if rule_name in known:
            continue
        rules.append(
            ClassificationRule(
                id=str(uuid.uuid4()),
                rule_name=rule_name,
                pattern=pattern,
                target_type=corrected,
                confidence_score=round(confidence, 4),
                created_from_feedback_count=int(occurrences),
            )
        )

    return sorted(rules, key=lambda rule: rule.confidence_score, reverse=True)
