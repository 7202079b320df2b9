"""
rules/settings.py

Rule-evaluation tunables from the ``rules`` section of
config/quality_rules.json.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path

_QUALITY_RULES_PATH = Path(__file__).resolve().parents[1] / "config" / "quality_rules.json"


@lru_cache(maxsize=1)
def load_rule_settings() -> dict:
    try:
        data = json.loads(_QUALITY_RULES_PATH.read_text(encoding="utf-8"))
        rules = data.get("rules") if isinstance(data, dict) else None
        return rules if isinstance(rules, dict) else {}
    except (OSError, ValueError, TypeError):
        return {}


def as_dict(value: object) -> dict:
    return value if isinstance(value, dict) else {}


def as_float(value: object, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default
