"""
ingestion/errors.py

Error taxonomy for the ingestion adapter.

Input errors are rejected before any processing starts. Parse errors are
reported as-is; the adapter never guesses what a broken file meant.
"""

from __future__ import annotations


class IngestionInputError(ValueError):
    """
    Raised when an upload is rejected before decoding.
    """

    code: str = "invalid_input"

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": str(self)}


class UnsupportedFileTypeError(IngestionInputError):
    code = "unsupported_file_type"


class UploadTooLargeError(IngestionInputError):
    code = "upload_too_large"


class EmptyDatasetError(IngestionInputError):
    code = "empty_dataset"


class InvalidSheetUrlError(IngestionInputError):
    code = "invalid_sheet_url"


class IngestionParseError(ValueError):
    """
    Raised when a file is accepted but cannot be decoded.
    """

    code: str = "parse_error"

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": str(self)}


class CSVParseError(IngestionParseError):
    code = "csv_parse_error"


class WorkbookParseError(IngestionParseError):
    code = "workbook_parse_error"
