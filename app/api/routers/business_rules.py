"""
app/api/routers/business_rules.py

Business rule management and evaluation HTTP endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from app.schemas.business_rules import (
    BusinessRuleCreateRequest,
    BusinessRuleEvaluateRequest,
    BusinessRuleEvaluationResponse,
    BusinessRuleResponse,
    ViolationResponse,
)
from app.services.business_rule_service import BusinessRuleService, get_business_rule_service
from rules.errors import ViolationPersistenceError

router = APIRouter(tags=["business-rules"])

EVALUATION_COMPLETED = "Business rules evaluation completed"
NO_ACTIVE_RULES = "No active business rules to evaluate"


@router.post("/business-rules/evaluate", response_model=BusinessRuleEvaluationResponse)
async def evaluate_business_rules(
    request: BusinessRuleEvaluateRequest,
    service: BusinessRuleService = Depends(get_business_rule_service),
) -> BusinessRuleEvaluationResponse:
    """
    Evaluate every active rule of an agent against the posted rows.
    """

    if not request.agent_id or request.data is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing agentId or data",
        )

    try:
        result = await service.evaluate(request.agent_id, request.data)
    except ViolationPersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=exc.to_dict(),
        ) from exc

    return BusinessRuleEvaluationResponse(
        message=EVALUATION_COMPLETED if result.rules_evaluated else NO_ACTIVE_RULES,
        rules_evaluated=result.rules_evaluated,
        violations_created=result.violations_created,
        violations=[ViolationResponse.from_violation(violation) for violation in result.violations],
    )


@router.post(
    "/business-rules",
    response_model=BusinessRuleResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_business_rule(
    request: BusinessRuleCreateRequest,
    service: BusinessRuleService = Depends(get_business_rule_service),
) -> BusinessRuleResponse:
    try:
        rule = service.create_rule(request.model_dump())
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return BusinessRuleResponse.from_rule(rule)


@router.get("/business-rules/{agent_id}", response_model=list[BusinessRuleResponse])
def list_business_rules(
    agent_id: str,
    service: BusinessRuleService = Depends(get_business_rule_service),
) -> list[BusinessRuleResponse]:
    return [BusinessRuleResponse.from_rule(rule) for rule in service.list_rules(agent_id)]
