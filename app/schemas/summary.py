"""
app/schemas/summary.py

Request and response schemas for the AI summary endpoint.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from app.schemas.common import CamelModel


class SummaryRequest(CamelModel):
    data: list[dict[str, Any]] = Field(default_factory=list)
    dataset_name: str | None = None
    persona: str = "general"
    agent_id: str | None = None


class ColumnCompletenessResponse(CamelModel):
    column: str
    completeness: int = Field(..., ge=0, le=100)


class SummaryMetadataResponse(CamelModel):
    total_rows: int = Field(..., ge=0)
    total_columns: int = Field(..., ge=0)
    column_types: dict[str, int] = Field(default_factory=dict)
    data_completeness: list[ColumnCompletenessResponse] = Field(default_factory=list)
    persona: str
    generated_at: datetime


class SummaryResponse(CamelModel):
    """
    ``source`` is ``ai`` for a model-written report and ``fallback`` for
    the locally built one.
    """

    report: str
    source: str
    metadata: SummaryMetadataResponse
