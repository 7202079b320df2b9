"""
inference/detector.py

Column type inference: numeric | date | categorical | text.

The heuristic itself is a pure function of the column name and its raw
values. ColumnTypeInferenceEngine layers manual overrides and learned
classification rules on top of it.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

from inference.dates import (
    EXCEL_SERIAL_UPPER_BOUND,
    FOUR_DIGIT_RE,
    is_date_column_name,
    looks_like_date,
    parse_integer,
)
from inference.learned_rules import ClassificationRuleRepository
from ingestion.models import CellValue, RawDataset

logger = logging.getLogger(__name__)

NUMERIC = "numeric"
DATE = "date"
CATEGORICAL = "categorical"
TEXT = "text"

COLUMN_TYPES: frozenset[str] = frozenset({NUMERIC, DATE, CATEGORICAL, TEXT})

_SEPARATORS_RE = re.compile(r"[,\s]")

# Share of non-empty values that must be integer serials.
EXCEL_SERIAL_SHARE: float = 0.8
# Share of 4-digit values above which the column holds years, not dates.
YEAR_COLUMN_SHARE: float = 0.8
DATE_PATTERN_SHARE: float = 0.6
NUMERIC_SHARE: float = 0.7
CATEGORICAL_MIN_DISTINCT: int = 2
CATEGORICAL_MAX_DISTINCT: int = 50
CATEGORICAL_DISTINCT_RATIO: float = 0.5


@dataclass(frozen=True)
class ColumnProfile:
    """
    A column with its assigned semantic type.

    ``source`` records how the type was decided: ``inferred``,
    ``learned_rule`` or ``override``.
    """

    name: str
    type: str
    values: tuple[CellValue, ...]
    source: str = "inferred"
    rule_id: str | None = None


# ---------------------------------------------------------------------------
# Value predicates
# ---------------------------------------------------------------------------


def is_empty(value: CellValue) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and value.strip() == ""


def non_empty_values(values: Iterable[CellValue]) -> list[CellValue]:
    return [value for value in values if not is_empty(value)]


def to_finite_number(value: CellValue) -> float | None:
    """
    Parse a value the way a spreadsheet formula would see it as a number.

    Booleans are not numbers. Thousands separators (commas, spaces) are
    stripped from strings before parsing.
    """

    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None
    text = _SEPARATORS_RE.sub("", str(value))
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def is_excel_serial_candidate(value: CellValue) -> bool:
    integer = parse_integer(value)
    return integer is not None and 1 <= integer <= EXCEL_SERIAL_UPPER_BOUND


# ---------------------------------------------------------------------------
# Heuristic
# ---------------------------------------------------------------------------


def count_date_values(values: Sequence[CellValue]) -> int:
    """
    Count values that pass the pattern, calendar and year-range checks.

    A 4-digit value is not counted when at least 80% of the values are
    4-digit, since such a column holds years.
    """

    four_digit = sum(1 for value in values if FOUR_DIGIT_RE.match(str(value).strip()))
    year_column = four_digit >= len(values) * YEAR_COLUMN_SHARE

    count = 0
    for value in values:
        text = str(value).strip()
        if year_column and FOUR_DIGIT_RE.match(text):
            continue
        if looks_like_date(text):
            count += 1
    return count


def infer_column_type(column_name: str, values: Sequence[CellValue]) -> str:
    """
    Classify one column from its raw values.

    Order matters: serial dates, then date patterns, then numbers, then
    categories. The serial-date step only runs for columns whose name
    suggests a date.
    """

    present = non_empty_values(values)
    if not present:
        return TEXT
    total = len(present)

    if is_date_column_name(column_name):
        serials = sum(1 for value in present if is_excel_serial_candidate(value))
        if serials > total * EXCEL_SERIAL_SHARE:
            return DATE

    if count_date_values(present) > total * DATE_PATTERN_SHARE:
        return DATE

    numeric = sum(1 for value in present if to_finite_number(value) is not None)
    if numeric > total * NUMERIC_SHARE:
        return NUMERIC

    distinct = {str(value).strip().lower() for value in present}
    if (
        CATEGORICAL_MIN_DISTINCT <= len(distinct) <= CATEGORICAL_MAX_DISTINCT
        and len(distinct) < total * CATEGORICAL_DISTINCT_RATIO
    ):
        return CATEGORICAL

    return TEXT


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class ColumnTypeInferenceEngine:
    """
    Assigns a type to every column of a dataset.

    Precedence: manual override, then the first matching active learned
    rule, then the heuristic. Overrides are taken as-is and never
    re-inferred.
    """

    def __init__(self, rule_repository: ClassificationRuleRepository | None = None) -> None:
        self._rules = rule_repository

    def infer(self, column_name: str, values: Sequence[CellValue]) -> str:
        return self.profile(column_name, values).type

    def profile(
        self,
        column_name: str,
        values: Sequence[CellValue],
        override: str | None = None,
    ) -> ColumnProfile:
        present = tuple(non_empty_values(values))

        if override is not None:
            if override not in COLUMN_TYPES:
                raise ValueError(
                    f"Unsupported column type override '{override}' for column '{column_name}'. "
                    f"Allowed values: {sorted(COLUMN_TYPES)}."
                )
            return ColumnProfile(name=column_name, type=override, values=present, source="override")

        heuristic_type = infer_column_type(column_name, values)

        if self._rules is not None:
            for rule in self._rules.get_active_rules():
                if rule.target_type in COLUMN_TYPES and rule.matches(column_name):
                    self._rules.record_usage(rule.id)
                    logger.debug(
                        "Learned rule applied column=%s rule=%s heuristic=%s learned=%s",
                        column_name,
                        rule.rule_name,
                        heuristic_type,
                        rule.target_type,
                    )
                    return ColumnProfile(
                        name=column_name,
                        type=rule.target_type,
                        values=present,
                        source="learned_rule",
                        rule_id=rule.id,
                    )

        return ColumnProfile(name=column_name, type=heuristic_type, values=present)

    def infer_dataset(
        self,
        dataset: RawDataset,
        overrides: Mapping[str, str] | None = None,
    ) -> list[ColumnProfile]:
        """
        Profile every column of ``dataset`` in header order.
        """

        overrides = overrides or {}
        unknown = set(overrides) - set(dataset.columns)
        if unknown:
            logger.warning("Ignoring type overrides for unknown columns=%s", sorted(unknown))

        return [
            self.profile(column, dataset.column_values(column), overrides.get(column))
            for column in dataset.columns
        ]
