"""
rules/repository.py

Business rule storage interface and the process-local implementation.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import fields, replace
from pathlib import Path
from typing import Any, Iterable, Mapping, Protocol

from rules.models import BusinessRule

logger = logging.getLogger(__name__)

_RULE_FIELDS = {item.name for item in fields(BusinessRule)}


class BusinessRuleRepository(Protocol):
    def get_active_rules(self, agent_id: str) -> list[BusinessRule]:
        ...

    def save(self, rule: BusinessRule) -> None:
        ...


def rule_from_mapping(payload: Mapping[str, Any]) -> BusinessRule:
    """
    Build a BusinessRule from a stored row, ignoring unknown keys.

    Raises ValueError when a required field is missing.
    """

    known = {key: value for key, value in payload.items() if key in _RULE_FIELDS}
    try:
        rule = BusinessRule(**known)
    except TypeError as exc:
        raise ValueError(f"Invalid business rule definition: {exc}") from exc
    rule.threshold_value = float(rule.threshold_value)
    if rule.baseline_value is not None:
        rule.baseline_value = float(rule.baseline_value)
    return rule


def load_rules_file(path: str | Path) -> list[BusinessRule]:
    """
    Read rule definitions from a JSON file holding a list of rule objects.
    """

    raw = Path(path).read_text(encoding="utf-8")
    data = json.loads(raw)
    if not isinstance(data, list):
        raise ValueError(f"Business rules file must contain a JSON list: {path}")
    return [rule_from_mapping(item) for item in data]


class InMemoryBusinessRuleRepository:
    """
    Rules keyed by id. Reads hand out copies; bookkeeping only sticks once
    ``save`` is called.
    """

    def __init__(self, rules: Iterable[BusinessRule] = ()) -> None:
        self._rules: dict[str, BusinessRule] = {rule.id: replace(rule) for rule in rules}
        self._lock = threading.Lock()

    def add(self, rule: BusinessRule) -> BusinessRule:
        with self._lock:
            self._rules[rule.id] = replace(rule)
        logger.info("Business rule stored id=%s agent_id=%s name=%s", rule.id, rule.agent_id, rule.rule_name)
        return replace(rule)

    def get(self, rule_id: str) -> BusinessRule | None:
        with self._lock:
            rule = self._rules.get(rule_id)
        return replace(rule) if rule is not None else None

    def list_rules(self, agent_id: str) -> list[BusinessRule]:
        with self._lock:
            return [replace(rule) for rule in self._rules.values() if rule.agent_id == agent_id]

    def get_active_rules(self, agent_id: str) -> list[BusinessRule]:
        return [rule for rule in self.list_rules(agent_id) if rule.is_active]

    def save(self, rule: BusinessRule) -> None:
        with self._lock:
            self._rules[rule.id] = replace(rule)
