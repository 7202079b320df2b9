"""
ingestion/readers.py

Decoders that turn uploads into RawDataset objects.

Supported sources:
    - CSV text (also used for .txt uploads and Google Sheets CSV exports)
    - XLSX / XLS workbooks (every sheet becomes its own dataset)
    - in-memory row sets (list of mappings)
"""

from __future__ import annotations

import csv
import io
import logging
import math
from datetime import date, datetime, time
from typing import Any, BinaryIO, Iterable, Mapping, Sequence

import numpy as np
import pandas as pd

from ingestion.errors import (
    CSVParseError,
    EmptyDatasetError,
    UnsupportedFileTypeError,
    UploadTooLargeError,
    WorkbookParseError,
)
from ingestion.models import CellValue, RawDataset

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 50_000_000

CSV_EXTENSIONS = (".csv", ".txt")
WORKBOOK_EXTENSIONS = (".xlsx", ".xls")


# ---------------------------------------------------------------------------
# Header handling
# ---------------------------------------------------------------------------


def normalize_headers(raw_headers: Sequence[Any]) -> tuple[str, ...]:
    """
    Trim header cells, name blank ones ``col_<n>`` and de-duplicate.

    Column names must be unique within a dataset, so a repeated header gets
    a ``_<n>`` suffix (``amount``, ``amount_2``, ...).
    """

    headers: list[str] = []
    seen: dict[str, int] = {}
    for index, raw in enumerate(raw_headers):
        name = "" if raw is None else str(raw).strip()
        if isinstance(raw, float) and math.isnan(raw):
            name = ""
        if not name:
            name = f"col_{index + 1}"

        if name in seen:
            seen[name] += 1
            candidate = f"{name}_{seen[name]}"
            while candidate in seen:
                seen[name] += 1
                candidate = f"{name}_{seen[name]}"
            name = candidate
        seen.setdefault(name, 1)
        headers.append(name)
    return tuple(headers)


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------


def read_csv_text(text: str, name: str) -> RawDataset:
    """
    Decode CSV text whose first row is the header.

    Short rows are padded with empty strings and extra cells are dropped so
    every record carries exactly the header's columns. Blank lines are
    skipped.
    """

    if text.startswith("\ufeff"):
        text = text[1:]

    try:
        reader = csv.reader(io.StringIO(text, newline=""))
        header_row = next(reader, None)
        if header_row is None:
            raise EmptyDatasetError("CSV header row is missing.")
        headers = normalize_headers(header_row)

        records: list[dict[str, CellValue]] = []
        for cells in reader:
            if not cells or all(cell.strip() == "" for cell in cells):
                continue
            record: dict[str, CellValue] = {}
            for index, column in enumerate(headers):
                record[column] = cells[index] if index < len(cells) else ""
            records.append(record)
    except csv.Error as exc:
        raise CSVParseError(f"Invalid CSV format: {exc}") from exc

    logger.debug("Decoded CSV dataset name=%s rows=%s columns=%s", name, len(records), len(headers))
    return RawDataset(name=name, columns=headers, records=tuple(records))


def decode_csv_bytes(payload: bytes, name: str) -> RawDataset:
    try:
        text = payload.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise CSVParseError("CSV must be UTF-8 encoded.") from exc
    return read_csv_text(text, name)


# ---------------------------------------------------------------------------
# Workbooks
# ---------------------------------------------------------------------------


def _to_cell_value(value: Any) -> CellValue:
    """
    Collapse a pandas/openpyxl cell into the closed CellValue union.
    """

    if value is None:
        return None
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, (int, np.integer)):
        return int(value)
    if isinstance(value, (float, np.floating)):
        as_float = float(value)
        return None if math.isnan(as_float) else as_float
    if value is pd.NaT:
        return None
    if isinstance(value, datetime):
        if value.time() == time(0, 0):
            return value.date().isoformat()
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, time):
        return value.strftime("%H:%M:%S")
    return str(value)


def read_workbook(payload: bytes, name: str) -> list[RawDataset]:
    """
    Decode every sheet of a workbook into its own dataset.

    Sheets without a header row are skipped. Raises WorkbookParseError when
    the payload is not a readable workbook.
    """

    try:
        sheets = pd.read_excel(
            io.BytesIO(payload),
            sheet_name=None,
            header=None,
            dtype=object,
        )
    except Exception as exc:  # noqa: BLE001
        raise WorkbookParseError(f"Workbook could not be read: {exc}") from exc

    datasets: list[RawDataset] = []
    for sheet_name, frame in sheets.items():
        if frame.empty:
            continue
        rows = [[_to_cell_value(cell) for cell in row] for row in frame.itertuples(index=False, name=None)]
        headers = normalize_headers(rows[0])
        records: list[dict[str, CellValue]] = []
        for row in rows[1:]:
            if all(cell is None or cell == "" for cell in row):
                continue
            records.append(
                {column: (row[index] if index < len(row) else None) for index, column in enumerate(headers)}
            )
        datasets.append(
            RawDataset(
                name=name,
                columns=headers,
                records=tuple(records),
                sheet_name=str(sheet_name),
            )
        )

    logger.debug("Decoded workbook name=%s sheets=%s", name, len(datasets))
    return datasets


# ---------------------------------------------------------------------------
# In-memory rows
# ---------------------------------------------------------------------------


def from_rows(rows: Iterable[Mapping[str, Any]], name: str, sheet_name: str | None = None) -> RawDataset:
    """
    Build a dataset from row objects.

    The column set is the union of keys in first-seen order; a row missing
    a key gets ``None`` for it.
    """

    materialized = list(rows)
    columns: list[str] = []
    known: set[str] = set()
    for row in materialized:
        for key in row.keys():
            if key not in known:
                known.add(key)
                columns.append(key)

    records = tuple(
        {column: _to_cell_value(row.get(column)) for column in columns}
        for row in materialized
    )
    return RawDataset(name=name, columns=tuple(columns), records=records, sheet_name=sheet_name)


# ---------------------------------------------------------------------------
# Upload dispatch
# ---------------------------------------------------------------------------


def _too_large(max_bytes: int) -> UploadTooLargeError:
    return UploadTooLargeError(f"File size exceeds {max_bytes // 1_000_000}MB limit.")


def read_upload_stream(stream: BinaryIO, max_bytes: int = MAX_UPLOAD_BYTES) -> bytes:
    """
    Read at most ``max_bytes`` from an upload stream.

    Stops one byte past the cap, so an oversize upload is rejected without
    being buffered in full.
    """

    payload = stream.read(max_bytes + 1)
    if len(payload) > max_bytes:
        raise _too_large(max_bytes)
    return payload


def load_upload(filename: str, payload: bytes, max_bytes: int = MAX_UPLOAD_BYTES) -> list[RawDataset]:
    """
    Validate an uploaded file and decode it by extension.

    Returns one dataset per sheet (a single dataset for CSV/TXT). Raises an
    IngestionInputError for unsupported extensions, oversize payloads and
    files without data rows.
    """

    lowered = (filename or "").strip().lower()
    if len(payload) > max_bytes:
        raise _too_large(max_bytes)

    if lowered.endswith(CSV_EXTENSIONS):
        datasets = [decode_csv_bytes(payload, filename)]
    elif lowered.endswith(WORKBOOK_EXTENSIONS):
        datasets = read_workbook(payload, filename)
    else:
        raise UnsupportedFileTypeError("Unsupported file type. Use CSV or XLSX.")

    datasets = [dataset for dataset in datasets if dataset.row_count > 0]
    if not datasets:
        raise EmptyDatasetError("No data rows detected.")
    return datasets
