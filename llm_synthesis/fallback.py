"""Deterministic local summary used when the LLM is unavailable.

Built only from the QualityReport and any rule violations, so it never
states anything the scorer did not compute.
"""

from typing import List, Sequence

from llm_synthesis.prompt_builder import DatasetContext
from quality.scorer import QualityReport
from rules.models import Violation

_TREND_SENTENCES = {
    "improving": "Numeric metrics trend upward across the dataset.",
    "declining": "Numeric metrics trend downward across the dataset.",
    "volatile": "Numeric metrics move in inconsistent directions.",
    "stable": "Numeric metrics are broadly stable.",
    "insufficient_data": "There is not enough numeric data to judge a trend.",
}


def _bullets(items: Sequence[str], empty: str) -> List[str]:
    if not items:
        return [f"- {empty}"]
    return [f"- {item}" for item in items]


def build_fallback_report(
    context: DatasetContext,
    report: QualityReport,
    violations: Sequence[Violation] = (),
) -> str:
    """Render a Markdown report from computed facts only.

    Args:
        context: Dataset characteristics.
        report: Quality report for the same dataset.
        violations: Rule violations from the latest evaluation, if any.

    Returns:
        Markdown text with the same top-level sections as an AI report.
    """
    type_summary = ", ".join(f"{count} {name}" for name, count in context.column_types.items()) or "none"
    lines: List[str] = [
        "## Executive Summary",
        (
            f"{context.dataset_name or 'Uploaded Data'} has {context.total_rows:,} rows and "
            f"{context.total_columns} columns ({type_summary}). "
            f"Overall quality score is {report.overall_score}/100 with "
            f"{report.data_quality * 100:.1f}% data completeness. "
            f"{_TREND_SENTENCES.get(report.trend_direction, '')}"
        ).strip(),
        "",
        "## Key Findings",
        *_bullets(list(report.critical_issues) + list(report.risk_factors), "No data quality risks detected"),
        "",
        "## Data Quality Assessment",
        (
            f"- Rows: original {report.original_row_count}, cleaned {report.cleaned_row_count}, "
            f"duplicates removed {report.duplicates_removed}"
        ),
    ]
    lines.extend(f"- {column}: {percent}% complete" for column, percent in context.data_completeness)

    if violations:
        lines.extend(["", "## Business Rule Alerts"])
        lines.extend(f"- [{item.severity}] {item.message}" for item in violations)

    lines.extend(
        [
            "",
            "## Next Steps & Recommendations",
            *_bullets(report.opportunities, "Keep monitoring data quality on new uploads"),
        ]
    )
    return "\n".join(lines)
