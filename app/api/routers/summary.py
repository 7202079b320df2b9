"""
app/api/routers/summary.py

AI summary HTTP endpoint.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from app.schemas.summary import SummaryMetadataResponse, SummaryRequest, SummaryResponse
from app.services.business_rule_service import BusinessRuleService, get_business_rule_service
from app.services.summary_service import SummaryService, get_summary_service

router = APIRouter(tags=["summary"])

# Newest violations carried into the fallback report.
SUMMARY_VIOLATION_LIMIT = 20


@router.post("/summary", response_model=SummaryResponse)
async def generate_summary(
    request: SummaryRequest,
    summary_service: SummaryService = Depends(get_summary_service),
    business_rule_service: BusinessRuleService = Depends(get_business_rule_service),
) -> SummaryResponse:
    """
    Produce a persona-specific report for the posted rows.

    The newest violations already recorded for ``agentId`` are included in
    the local fallback report.
    """

    if not request.data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No data provided",
        )

    violations = (
        business_rule_service.list_violations(request.agent_id, limit=SUMMARY_VIOLATION_LIMIT)
        if request.agent_id
        else []
    )
    result = await summary_service.generate(
        request.data,
        dataset_name=request.dataset_name,
        persona=request.persona,
        violations=violations,
    )
    return SummaryResponse(
        report=result.report,
        source=result.source,
        metadata=SummaryMetadataResponse(**result.metadata),
    )
