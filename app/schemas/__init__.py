"""
app/schemas package marker.
"""

from app.schemas.business_rules import (
    BusinessRuleCreateRequest,
    BusinessRuleEvaluateRequest,
    BusinessRuleEvaluationResponse,
    BusinessRuleResponse,
    ViolationResponse,
)
from app.schemas.quality import (
    CleanAndScoreResponse,
    ColumnQualityResponse,
    DatasetSummaryResponse,
    GoogleSheetIngestRequest,
    QualityReportResponse,
    TypeFeedbackRequest,
    TypeFeedbackResponse,
)
from app.schemas.summary import SummaryRequest, SummaryResponse

__all__ = [
    "BusinessRuleCreateRequest",
    "BusinessRuleEvaluateRequest",
    "BusinessRuleEvaluationResponse",
    "BusinessRuleResponse",
    "CleanAndScoreResponse",
    "ColumnQualityResponse",
    "DatasetSummaryResponse",
    "GoogleSheetIngestRequest",
    "QualityReportResponse",
    "SummaryRequest",
    "TypeFeedbackRequest",
    "TypeFeedbackResponse",
    "SummaryResponse",
    "ViolationResponse",
]
