"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation.
"""

from __future__ import annotations

from fastapi import File, HTTPException, UploadFile, status

from ingestion.readers import CSV_EXTENSIONS, WORKBOOK_EXTENSIONS

SPREADSHEET_EXTENSIONS = CSV_EXTENSIONS + WORKBOOK_EXTENSIONS


def get_spreadsheet_upload(file: UploadFile | None = File(default=None)) -> UploadFile:
    """
    Require an uploaded CSV, TXT, XLSX or XLS file.
    """

    if file is None or not (file.filename or "").strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "missing_file", "message": "No file provided."},
        )

    filename = file.filename.strip().lower()
    if not filename.endswith(SPREADSHEET_EXTENSIONS):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "code": "unsupported_file_type",
                "message": "Unsupported file type. Use CSV or XLSX.",
            },
        )

    return file
