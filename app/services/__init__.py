"""
app/services package marker.
"""

from app.services.business_rule_service import BusinessRuleService, get_business_rule_service
from app.services.clean_and_score_service import (
    CleanAndScoreService,
    DatasetAnalysis,
    get_clean_and_score_service,
)
from app.services.summary_service import SummaryService, get_summary_service

__all__ = [
    "BusinessRuleService",
    "get_business_rule_service",
    "CleanAndScoreService",
    "DatasetAnalysis",
    "get_clean_and_score_service",
    "SummaryService",
    "get_summary_service",
]
