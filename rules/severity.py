"""
rules/severity.py

Severity bucketing for rule violations.
"""

from __future__ import annotations

from rules.models import CRITICAL, HIGH, LOW, MEDIUM
from rules.settings import as_dict, as_float, load_rule_settings

_SEVERITY_RULES = as_dict(load_rule_settings().get("severity_thresholds"))

_SEVERITY_BANDS: list[tuple[float, str]] = [
    (as_float(_SEVERITY_RULES.get("critical"), 3.0), CRITICAL),
    (as_float(_SEVERITY_RULES.get("high"), 2.0), HIGH),
    (as_float(_SEVERITY_RULES.get("medium"), 1.5), MEDIUM),
]


def severity_for_ratio(ratio: float) -> str:
    """Map a deviation-to-threshold ratio to a severity bucket.

    ratio >= 3 is critical, >= 2 high, >= 1.5 medium, anything else low.
    """
    for lower_bound, label in _SEVERITY_BANDS:
        if ratio >= lower_bound:
            return label
    return LOW


def calculate_severity(deviation: float, threshold: float) -> str:
    """Bucket ``deviation / |threshold|``.

    A zero threshold has no scale: any deviation is critical, none is low.
    """
    if threshold == 0:
        return CRITICAL if deviation > 0 else LOW
    return severity_for_ratio(abs(deviation) / abs(threshold))
