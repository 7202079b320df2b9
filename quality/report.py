"""
quality/report.py

Renders cleaned rows as CSV and a QualityReport as Markdown.
"""

from __future__ import annotations

import math
import re
from typing import Sequence

from ingestion.models import CellValue, Record
from quality.scorer import QualityReport

_NEEDS_QUOTING_RE = re.compile(r'[",\n]')

MARKDOWN_TABLE_HEADER = "| Column | Missing % | Type | #Numeric | #Date | #String | Outliers |"
MARKDOWN_TABLE_RULE = "|---|---:|---|---:|---:|---:|---:|"


def format_number(value: float) -> str:
    """
    Integral floats print without a fractional part (``100.0`` -> ``100``).
    """

    if math.isfinite(value) and float(value).is_integer():
        return str(int(value))
    return str(value)


def format_cell(value: CellValue) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return format_number(value)
    return str(value)


def escape_csv_field(text: str) -> str:
    if _NEEDS_QUOTING_RE.search(text):
        return '"' + text.replace('"', '""') + '"'
    return text


def rows_to_csv(rows: Sequence[Record], columns: Sequence[str] | None = None) -> str:
    """
    Serialize rows as CSV with a header line.

    Columns default to the first row's keys. Fields holding a comma, a
    quote or a newline are quoted with inner quotes doubled; None is an
    empty field. Returns an empty string for no rows and no columns.
    """

    if columns is None:
        columns = list(rows[0].keys()) if rows else []
    if not columns:
        return ""

    lines = [",".join(escape_csv_field(str(column)) for column in columns)]
    for row in rows:
        lines.append(",".join(escape_csv_field(format_cell(row.get(column))) for column in columns))
    return "\n".join(lines)


def report_to_markdown(report: QualityReport) -> str:
    lines = [
        "# Data Quality Report",
        f"**Overall Score:** {format_number(report.overall_score)}/100",
        (
            f"**Rows:** original {report.original_row_count} → cleaned "
            f"{report.cleaned_row_count} (removed {report.duplicates_removed} duplicates)"
        ),
        "",
        "## Columns",
        MARKDOWN_TABLE_HEADER,
        MARKDOWN_TABLE_RULE,
    ]
    for column in report.per_column:
        lines.append(
            f"| {column.column} | {format_number(column.missing_pct)}% | {column.dominant_type} | "
            f"{column.numeric_count} | {column.date_count} | {column.string_count} | "
            f"{column.outlier_count} |"
        )
    return "\n".join(lines)
