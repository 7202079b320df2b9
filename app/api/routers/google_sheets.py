"""
app/api/routers/google_sheets.py

Google Sheets ingestion HTTP endpoint.
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, status

from app.config import get_external_http_settings, get_google_sheets_settings
from app.connectors import ConnectorRequestError, ConnectorTimeoutError, GoogleSheetsConnector
from app.schemas.quality import (
    ColumnSummaryResponse,
    DatasetSummaryResponse,
    GoogleSheetIngestRequest,
    QualityReportResponse,
)
from app.services.clean_and_score_service import CleanAndScoreService, get_clean_and_score_service
from ingestion.errors import IngestionInputError, IngestionParseError

router = APIRouter(tags=["ingestion"])


@lru_cache(maxsize=1)
def get_google_sheets_connector() -> GoogleSheetsConnector:
    return GoogleSheetsConnector(
        settings=get_google_sheets_settings(),
        http_settings=get_external_http_settings(),
    )


@router.post("/ingest/google-sheet", response_model=DatasetSummaryResponse)
async def ingest_google_sheet(
    request: GoogleSheetIngestRequest,
    connector: GoogleSheetsConnector = Depends(get_google_sheets_connector),
    service: CleanAndScoreService = Depends(get_clean_and_score_service),
) -> DatasetSummaryResponse:
    """
    Fetch a public Google Sheet and return its columns and quality report.
    """

    try:
        dataset = await connector.fetch_dataset(request.url, request.dataset_name)
        if dataset.row_count == 0:
            raise IngestionInputError("No data rows detected.")
        analysis = service.analyze(dataset)
    except (IngestionInputError, IngestionParseError) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.to_dict(),
        ) from exc
    except ConnectorTimeoutError as exc:
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail=exc.to_dict(),
        ) from exc
    except ConnectorRequestError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=exc.to_dict(),
        ) from exc

    return DatasetSummaryResponse(
        dataset_name=dataset.name,
        row_count=dataset.row_count,
        columns=[
            ColumnSummaryResponse(name=profile.name, type=profile.type, source=profile.source)
            for profile in analysis.profiles
        ],
        report=QualityReportResponse.from_report(analysis.report),
    )
