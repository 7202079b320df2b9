"""
app/schemas/quality.py

Request and response schemas for dataset analysis endpoints.
"""

from __future__ import annotations

from pydantic import Field

from app.schemas.common import CamelModel
from quality.scorer import ColumnQuality, QualityReport


class ColumnQualityResponse(CamelModel):
    """
    Quality figures for one column.
    """

    column: str
    rows: int = Field(..., ge=0)
    missing: int = Field(..., ge=0)
    missing_pct: float = Field(..., ge=0, le=100)
    completeness: float = Field(..., ge=0, le=1)
    dominant_type: str
    numeric_count: int = Field(..., ge=0)
    date_count: int = Field(..., ge=0)
    string_count: int = Field(..., ge=0)
    outliers: int = Field(..., ge=0)
    is_risky: bool = False

    @classmethod
    def from_column(cls, column: ColumnQuality) -> "ColumnQualityResponse":
        return cls(
            column=column.column,
            rows=column.rows,
            missing=column.missing,
            missing_pct=column.missing_pct,
            completeness=column.completeness,
            dominant_type=column.dominant_type,
            numeric_count=column.numeric_count,
            date_count=column.date_count,
            string_count=column.string_count,
            outliers=column.outlier_count,
            is_risky=column.is_risky,
        )


class QualityReportResponse(CamelModel):
    """
    API response model for a dataset quality report.
    """

    original_rows: int = Field(..., ge=0)
    cleaned_rows: int = Field(..., ge=0)
    duplicates_removed: int = Field(..., ge=0)
    score: float = Field(..., ge=0, le=100)
    data_quality: float = Field(..., ge=0, le=1)
    trend_direction: str
    columns: list[ColumnQualityResponse] = Field(default_factory=list)
    risk_factors: list[str] = Field(default_factory=list)
    opportunities: list[str] = Field(default_factory=list)
    critical_issues: list[str] = Field(default_factory=list)

    @classmethod
    def from_report(cls, report: QualityReport) -> "QualityReportResponse":
        return cls(
            original_rows=report.original_row_count,
            cleaned_rows=report.cleaned_row_count,
            duplicates_removed=report.duplicates_removed,
            score=report.overall_score,
            data_quality=report.data_quality,
            trend_direction=report.trend_direction,
            columns=[ColumnQualityResponse.from_column(column) for column in report.per_column],
            risk_factors=list(report.risk_factors),
            opportunities=list(report.opportunities),
            critical_issues=list(report.critical_issues),
        )


class SheetAnalysisResponse(CamelModel):
    sheet_name: str | None = None
    cleaned_csv: str
    report: QualityReportResponse
    markdown: str


class CleanAndScoreResponse(CamelModel):
    """
    API response model for the clean-and-score endpoint.

    ``sheets`` lists every worksheet of a workbook; the top-level fields
    describe the first one.
    """

    cleaned_csv: str
    report: QualityReportResponse
    markdown: str
    sheet_name: str | None = None
    sheets: list[SheetAnalysisResponse] = Field(default_factory=list)


class ColumnSummaryResponse(CamelModel):
    name: str
    type: str
    source: str = "inferred"


class GoogleSheetIngestRequest(CamelModel):
    url: str = Field(..., min_length=1)
    dataset_name: str | None = None


class DatasetSummaryResponse(CamelModel):
    """
    API response model for a dataset loaded from a remote source.
    """

    dataset_name: str
    row_count: int = Field(..., ge=0)
    columns: list[ColumnSummaryResponse] = Field(default_factory=list)
    report: QualityReportResponse



class TypeCorrectionRequest(CamelModel):
    column_name: str = Field(..., min_length=1)
    original_type: str
    corrected_type: str


class TypeFeedbackRequest(CamelModel):
    corrections: list[TypeCorrectionRequest] = Field(default_factory=list)


class ClassificationRuleResponse(CamelModel):
    id: str
    rule_name: str
    pattern: str
    target_type: str
    confidence_score: float = Field(..., ge=0, le=1)
    created_from_feedback_count: int = Field(..., ge=0)


class TypeFeedbackResponse(CamelModel):
    """
    Rules created from one feedback batch. Patterns that were already
    learned, or seen only once, create nothing.
    """

    rules_created: int = Field(..., ge=0)
    rules: list[ClassificationRuleResponse] = Field(default_factory=list)
