"""
app/connectors/base.py

HTTP mechanics for downloading spreadsheet CSV exports.

An export download is a single GET. Throttling answers (429) and transient
server errors are retried with exponential backoff; any other error status
fails immediately.
"""

from __future__ import annotations

import logging
import time

import requests

from app.config import ExternalHTTPSettings

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class ConnectorRequestError(RuntimeError):
    """
    Raised when an export cannot be downloaded, or the download is not CSV.
    """

    def __init__(self, message: str, *, source: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.source = source
        self.status_code = status_code

    def to_dict(self) -> dict[str, object]:
        return {"message": str(self), "source": self.source, "status_code": self.status_code}


class ConnectorTimeoutError(ConnectorRequestError):
    """
    Raised when a fetch does not finish within its overall time budget.
    """


class BaseConnector:
    """
    Downloads CSV exports over a shared requests session.

    ``source`` names the export provider in logs and error payloads.
    Requests are spaced by ``rate_limit_per_second`` so repeated sheet
    imports do not trip the provider's throttling.
    """

    source: str

    def __init__(
        self,
        *,
        source: str,
        http_settings: ExternalHTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        self.source = source
        self._session = session or requests.Session()
        self._timeout_seconds = http_settings.timeout_seconds
        self._max_retries = http_settings.max_retries
        self._backoff_initial_seconds = http_settings.backoff_initial_seconds
        self._backoff_multiplier = http_settings.backoff_multiplier
        self._min_request_interval_seconds = (
            1.0 / http_settings.rate_limit_per_second if http_settings.rate_limit_per_second > 0 else 0.0
        )
        self._last_request_monotonic: float = 0.0

    def _download_export(self, export_url: str) -> requests.Response:
        """
        GET one CSV export, retrying throttled and transient failures.

        Raises ConnectorRequestError with the provider status code when the
        export is refused, or when every attempt failed.
        """

        last_error: Exception | None = None
        attempts = self._max_retries + 1
        for attempt in range(1, attempts + 1):
            self._apply_rate_limit()
            try:
                response = self._session.request(
                    method="GET",
                    url=export_url,
                    timeout=self._timeout_seconds,
                )
            except (requests.Timeout, requests.ConnectionError) as exc:
                last_error = exc
            else:
                if response.ok:
                    return response
                if response.status_code not in RETRYABLE_STATUS_CODES:
                    logger.error(
                        "Export download refused source=%s status=%s url=%s",
                        self.source,
                        response.status_code,
                        export_url,
                    )
                    raise ConnectorRequestError(
                        f"{self.source}: export download refused with status {response.status_code}.",
                        source=self.source,
                        status_code=response.status_code,
                    )
                last_error = requests.HTTPError(
                    f"Retryable export status: {response.status_code}",
                    response=response,
                )

            if attempt == attempts:
                break

            wait_seconds = self._backoff_initial_seconds * (self._backoff_multiplier ** (attempt - 1))
            logger.warning(
                "Export download retry source=%s attempt=%s/%s wait_seconds=%.2f error=%s",
                self.source,
                attempt,
                attempts,
                wait_seconds,
                last_error,
            )
            time.sleep(wait_seconds)

        logger.error("Export download failed source=%s url=%s error=%s", self.source, export_url, last_error)
        raise ConnectorRequestError(
            f"{self.source}: export download failed after {attempts} attempts.",
            source=self.source,
        ) from last_error

    def _apply_rate_limit(self) -> None:
        if self._min_request_interval_seconds <= 0:
            return

        remaining = self._min_request_interval_seconds - (time.monotonic() - self._last_request_monotonic)
        if remaining > 0:
            time.sleep(remaining)
        self._last_request_monotonic = time.monotonic()
