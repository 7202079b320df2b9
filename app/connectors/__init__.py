"""
app/connectors package marker.
"""

from app.connectors.base import BaseConnector, ConnectorRequestError, ConnectorTimeoutError
from app.connectors.google_sheets_connector import GoogleSheetsConnector

__all__ = [
    "BaseConnector",
    "ConnectorRequestError",
    "ConnectorTimeoutError",
    "GoogleSheetsConnector",
]
