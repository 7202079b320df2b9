"""
app/api/routers/clean_and_score.py

Upload cleaning, quality scoring and column-type feedback HTTP endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, UploadFile, status

from app.api.dependencies import get_spreadsheet_upload
from app.schemas.quality import (
    ClassificationRuleResponse,
    CleanAndScoreResponse,
    QualityReportResponse,
    SheetAnalysisResponse,
    TypeFeedbackRequest,
    TypeFeedbackResponse,
)
from app.services.clean_and_score_service import CleanAndScoreService, get_clean_and_score_service
from inference.learned_rules import TypeCorrection
from ingestion.errors import IngestionInputError, IngestionParseError

router = APIRouter(tags=["quality"])


@router.post("/clean-and-score", response_model=CleanAndScoreResponse)
def clean_and_score(
    file: UploadFile = Depends(get_spreadsheet_upload),
    service: CleanAndScoreService = Depends(get_clean_and_score_service),
) -> CleanAndScoreResponse:
    """
    Clean one uploaded spreadsheet and return the cleaned CSV with its
    quality report.
    """

    try:
        payload = service.read_upload(file.file)
        analyses = service.analyze_upload(filename=file.filename or "", payload=payload)
    except (IngestionInputError, IngestionParseError) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.to_dict(),
        ) from exc
    finally:
        file.file.close()

    sheets = [
        SheetAnalysisResponse(
            sheet_name=analysis.dataset.sheet_name,
            cleaned_csv=analysis.cleaned_csv,
            report=QualityReportResponse.from_report(analysis.report),
            markdown=analysis.markdown,
        )
        for analysis in analyses
    ]
    first = sheets[0]
    return CleanAndScoreResponse(
        cleaned_csv=first.cleaned_csv,
        report=first.report,
        markdown=first.markdown,
        sheet_name=first.sheet_name,
        sheets=sheets,
    )


@router.post("/column-types/feedback", response_model=TypeFeedbackResponse)
def submit_type_feedback(
    request: TypeFeedbackRequest,
    service: CleanAndScoreService = Depends(get_clean_and_score_service),
) -> TypeFeedbackResponse:
    """
    Learn column classification rules from user type corrections.
    """

    corrections = [
        TypeCorrection(
            column_name=item.column_name,
            original_type=item.original_type,
            corrected_type=item.corrected_type,
        )
        for item in request.corrections
    ]
    try:
        rules = service.learn_from_feedback(corrections)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc

    return TypeFeedbackResponse(
        rules_created=len(rules),
        rules=[
            ClassificationRuleResponse(
                id=rule.id,
                rule_name=rule.rule_name,
                pattern=rule.pattern,
                target_type=rule.target_type,
                confidence_score=rule.confidence_score,
                created_from_feedback_count=rule.created_from_feedback_count,
            )
            for rule in rules
        ],
    )
