"""
tests/test_normalizer.py

Pytest unit tests for value coercion and duplicate removal.
"""

from __future__ import annotations

import pytest

from cleaning.normalizer import coerce_date, coerce_value, normalize, unify_null
from inference.detector import CATEGORICAL, DATE, NUMERIC, TEXT


# ---------------------------------------------------------------------------
# Cell coercion
# ---------------------------------------------------------------------------


class TestUnifyNull:
    @pytest.mark.parametrize("value", [None, "", "   ", "NA", "na", "null", " NULL "])
    def test_null_spellings(self, value: object) -> None:
        assert unify_null(value) is None

    def test_strings_are_trimmed(self) -> None:
        assert unify_null("  value ") == "value"

    def test_non_strings_pass_through(self) -> None:
        assert unify_null(0) == 0
        assert unify_null(False) is False


class TestCoerceValue:
    def test_numeric(self) -> None:
        assert coerce_value("1,000", NUMERIC) == 1000.0
        assert coerce_value(" 12.5 ", NUMERIC) == 12.5
        assert coerce_value("abc", NUMERIC) is None

    def test_text_and_categorical_become_strings(self) -> None:
        assert coerce_value(5, TEXT) == "5"
        assert coerce_value(" north ", CATEGORICAL) == "north"

    def test_unknown_column_type_keeps_string(self) -> None:
        assert coerce_value(" x ", None) == "x"


class TestCoerceDate:
    def test_date_strings(self) -> None:
        assert coerce_date("03/15/2023") == "2023-03-15"
        assert coerce_date("2023-03-15T10:30:00") == "2023-03-15"

    def test_excel_serials(self) -> None:
        assert coerce_date(44927) == "2023-01-01"
        assert coerce_date(44927.75) == "2023-01-01"
        assert coerce_date("44927") == "2023-01-01"

    def test_four_digit_string_is_a_year(self) -> None:
        assert coerce_date("2023") == "2023-01-01"

    def test_unparseable_values_become_none(self) -> None:
        assert coerce_date("soon") is None
        assert coerce_date(0) is None
        assert coerce_date("-5") is None
        assert coerce_date(True) is None


# ---------------------------------------------------------------------------
# Dataset pass
# ---------------------------------------------------------------------------


COLUMN_TYPES = {"name": TEXT, "amount": NUMERIC, "when": DATE}


class TestNormalize:
    def test_counts_and_first_seen_order(self) -> None:
        records = [
            {"name": "A", "amount": "100", "when": "2023-01-01"},
            {"name": "B", "amount": "200", "when": "2023-02-01"},
            {"name": "A", "amount": "100", "when": "2023-01-01"},
        ]

        result = normalize(records, COLUMN_TYPES)

        assert result.original_count == 3
        assert result.cleaned_count == 2
        assert result.duplicates_removed == 1
        assert [record["name"] for record in result.records] == ["A", "B"]
        assert result.records[0] == {"name": "A", "amount": 100.0, "when": "2023-01-01"}

    def test_duplicates_are_detected_after_coercion(self) -> None:
        records = [{"amount": "1,000"}, {"amount": 1000}, {"amount": " 1000 "}]
        result = normalize(records, {"amount": NUMERIC})
        assert result.cleaned_count == 1
        assert result.duplicates_removed == 2

    def test_failed_coercion_becomes_none(self) -> None:
        result = normalize([{"amount": "n/a", "when": "someday"}], {"amount": NUMERIC, "when": DATE})
        assert result.records[0] == {"amount": None, "when": None}

    def test_idempotent(self) -> None:
        records = [
            {"name": " A ", "amount": "1,200", "when": "01/05/2023"},
            {"name": "NA", "amount": "x", "when": 44927},
            {"name": "A", "amount": "1200", "when": "2023-01-05"},
        ]

        first = normalize(records, COLUMN_TYPES)
        second = normalize(first.records, COLUMN_TYPES)

        assert second.records == first.records
        assert second.duplicates_removed == 0

    def test_empty_input(self) -> None:
        result = normalize([], COLUMN_TYPES)
        assert result.records == ()
        assert result.original_count == 0
        assert result.duplicates_removed == 0
