"""
quality/thresholds.py

Tunables for the quality scorer, read from config/quality_rules.json.
Every value has a default so a missing or malformed file never breaks
scoring.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path

_QUALITY_RULES_PATH = Path(__file__).resolve().parents[1] / "config" / "quality_rules.json"


@lru_cache(maxsize=1)
def load_quality_rules() -> dict:
    try:
        raw = _QUALITY_RULES_PATH.read_text(encoding="utf-8")
        data = json.loads(raw)
        return data if isinstance(data, dict) else {}
    except (OSError, ValueError, TypeError):
        return {}


def as_dict(value: object) -> dict:
    return value if isinstance(value, dict) else {}


def as_float(value: object, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def as_int(value: object, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


_QUALITY = as_dict(load_quality_rules().get("quality"))
_WEIGHTS = as_dict(_QUALITY.get("score_weights"))
_TREND = as_dict(load_quality_rules().get("trend"))

# Composite score
MISSING_WEIGHT: float = as_float(_WEIGHTS.get("missing"), 0.6)
DUPLICATE_WEIGHT: float = as_float(_WEIGHTS.get("duplicates"), 0.3)
OUTLIER_WEIGHT: float = as_float(_WEIGHTS.get("outliers"), 0.1)
OUTLIER_PENALTY_MULTIPLIER: float = as_float(_QUALITY.get("outlier_penalty_multiplier"), 5.0)

# Outliers
OUTLIER_Z_THRESHOLD: float = as_float(_QUALITY.get("outlier_z_threshold"), 3.0)
OUTLIER_MIN_VALUES: int = as_int(_QUALITY.get("outlier_min_values"), 10)
RISKY_OUTLIER_SHARE: float = as_float(_QUALITY.get("risky_outlier_share"), 0.05)

# Advisories
COMPLETENESS_RISK_THRESHOLD: float = as_float(_QUALITY.get("completeness_risk_threshold"), 0.8)
SMALL_SAMPLE_ROWS: int = as_int(_QUALITY.get("small_sample_rows"), 50)

# Trend
TREND_MIN_ROWS: int = as_int(_TREND.get("min_rows"), 10)
TREND_MIN_POINTS: int = as_int(_TREND.get("min_points"), 5)
VOLATILITY_FACTOR: float = as_float(_TREND.get("volatility_factor"), 2.0)
IMPROVING_THRESHOLD: float = as_float(_TREND.get("improving_threshold"), 0.1)
DECLINING_THRESHOLD: float = as_float(_TREND.get("declining_threshold"), -0.1)
