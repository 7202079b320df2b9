"""
app/connectors/google_sheets_connector.py

Fetches a public Google Sheet through its CSV export URL.
"""

from __future__ import annotations

import asyncio
import logging
import re

import requests

from app.config import ExternalHTTPSettings, GoogleSheetsSettings
from app.connectors.base import BaseConnector, ConnectorRequestError, ConnectorTimeoutError
from ingestion.errors import InvalidSheetUrlError
from ingestion.models import RawDataset
from ingestion.readers import read_csv_text

logger = logging.getLogger(__name__)

_SHEET_ID_RE = re.compile(r"/spreadsheets/d/([a-zA-Z0-9-_]+)")
_GID_RE = re.compile(r"[#&?]gid=(\d+)")


def extract_sheet_id(url: str) -> str:
    """
    Return the spreadsheet id from a Google Sheets URL.

    Raises InvalidSheetUrlError when the URL has no ``/spreadsheets/d/<id>``
    segment.
    """

    match = _SHEET_ID_RE.search(url or "")
    if match is None:
        raise InvalidSheetUrlError("Invalid Google Sheets URL.")
    return match.group(1)


def extract_gid(url: str) -> str | None:
    match = _GID_RE.search(url or "")
    return match.group(1) if match else None


class GoogleSheetsConnector(BaseConnector):
    """
    Downloads one worksheet as CSV and decodes it into a RawDataset.

    The blocking download runs in a worker thread; ``fetch_dataset`` bounds
    the whole fetch (retries included) with ``fetch_timeout_seconds``.
    """

    def __init__(
        self,
        *,
        settings: GoogleSheetsSettings,
        http_settings: ExternalHTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(source="google_sheets", http_settings=http_settings, session=session)
        self._settings = settings

    def export_url(self, url: str) -> str:
        export_url = self._settings.export_url_template.format(sheet_id=extract_sheet_id(url))
        gid = extract_gid(url)
        if gid is not None:
            export_url = f"{export_url}&gid={gid}"
        return export_url

    def fetch_csv(self, url: str) -> str:
        """
        Blocking download of the sheet's CSV export.
        """

        export_url = self.export_url(url)
        response = self._download_export(export_url)
        content_type = (response.headers.get("Content-Type") or "").lower()
        if "text/html" in content_type:
            # Private sheets answer with a sign-in page instead of CSV.
            raise ConnectorRequestError(
                "Failed to fetch Google Sheet. Make sure it's publicly accessible.",
                source=self.source,
                status_code=response.status_code,
            )
        if not response.encoding or response.encoding.lower() == "iso-8859-1":
            response.encoding = "utf-8"
        return response.text

    async def fetch_dataset(self, url: str, name: str | None = None) -> RawDataset:
        """
        Fetch and decode a sheet. Raises ConnectorTimeoutError on timeout.
        """

        sheet_id = extract_sheet_id(url)
        timeout = self._settings.fetch_timeout_seconds
        try:
            text = await asyncio.wait_for(asyncio.to_thread(self.fetch_csv, url), timeout=timeout)
        except asyncio.TimeoutError as exc:
            logger.error("Google Sheet fetch timed out sheet_id=%s timeout_seconds=%.1f", sheet_id, timeout)
            raise ConnectorTimeoutError(
                f"Google Sheet fetch timed out after {timeout:.0f}s.",
                source=self.source,
            ) from exc

        dataset = read_csv_text(text, name or f"Google Sheet {sheet_id}")
        logger.info(
            "Google Sheet fetched sheet_id=%s rows=%s columns=%s",
            sheet_id,
            dataset.row_count,
            len(dataset.columns),
        )
        return dataset
