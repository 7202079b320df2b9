"""
cleaning/normalizer.py

Value normalization, type coercion and exact-duplicate removal.

Runs after type inference and before quality scoring. A value that cannot
be coerced to its column type becomes None; coercion never aborts the
dataset.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Iterable, Mapping

from inference.dates import (
    FOUR_DIGIT_RE,
    excel_serial_to_datetime,
    is_excel_date_serial,
    parse_date_string,
    parse_integer,
)
from inference.detector import DATE, NUMERIC, to_finite_number
from ingestion.models import CellValue, Record

logger = logging.getLogger(__name__)

NULL_TOKENS: frozenset[str] = frozenset({"", "na", "null"})


@dataclass(frozen=True)
class NormalizationResult:
    records: tuple[dict[str, CellValue], ...]
    original_count: int
    duplicates_removed: int

    @property
    def cleaned_count(self) -> int:
        return len(self.records)


# ---------------------------------------------------------------------------
# Cell coercion
# ---------------------------------------------------------------------------


def unify_null(value: CellValue) -> CellValue:
    """
    Trim strings and collapse the null spellings to None.
    """

    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        return None if text.lower() in NULL_TOKENS else text
    return value


def coerce_number(value: CellValue) -> float | None:
    return to_finite_number(value)


def coerce_date(value: CellValue) -> str | None:
    """
    Coerce a cell to a ``YYYY-MM-DD`` string.

    Numbers and non-year integer strings inside Excel's serial range go
    through the Excel epoch; everything else is parsed as a date string.
    """

    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        if not is_excel_date_serial(value):
            return None
        return excel_serial_to_datetime(float(value)).date().isoformat()

    text = str(value).strip()
    if not FOUR_DIGIT_RE.match(text):
        serial = parse_integer(text)
        if serial is not None:
            if not is_excel_date_serial(serial):
                return None
            return excel_serial_to_datetime(serial).date().isoformat()

    parsed = parse_date_string(text)
    return parsed.isoformat() if parsed is not None else None


def coerce_value(value: CellValue, column_type: str | None) -> CellValue:
    value = unify_null(value)
    if value is None:
        return None
    if column_type == NUMERIC:
        return coerce_number(value)
    if column_type == DATE:
        return coerce_date(value)
    return str(value)


# ---------------------------------------------------------------------------
# Dataset pass
# ---------------------------------------------------------------------------


def canonical_key(record: Mapping[str, CellValue]) -> str:
    return json.dumps(record, sort_keys=True, default=str)


def normalize(records: Iterable[Record], column_types: Mapping[str, str]) -> NormalizationResult:
    """
    Coerce every cell to its column type and drop exact duplicates.

    Duplicates are detected on the coerced records, so ``"1,000"`` and
    ``1000`` in a numeric column collapse. The first occurrence wins and
    input order is preserved. Running ``normalize`` on its own output is a
    no-op.
    """

    seen: set[str] = set()
    kept: list[dict[str, CellValue]] = []
    original_count = 0
    failed_cells = 0

    for record in records:
        original_count += 1
        normalized: dict[str, CellValue] = {}
        for column, raw in record.items():
            value = coerce_value(raw, column_types.get(column))
            if value is None and unify_null(raw) is not None:
                failed_cells += 1
            normalized[column] = value

        key = canonical_key(normalized)
        if key in seen:
            continue
        seen.add(key)
        kept.append(normalized)

    duplicates_removed = original_count - len(kept)
    if failed_cells:
        logger.debug("Coercion left cells empty count=%s", failed_cells)
    logger.info(
        "Normalized dataset rows=%s kept=%s duplicates_removed=%s",
        original_count,
        len(kept),
        duplicates_removed,
    )
    return NormalizationResult(
        records=tuple(kept),
        original_count=original_count,
        duplicates_removed=duplicates_removed,
    )
