"""
ingestion/models.py

Raw dataset types produced by the ingestion adapter.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Union

# Closed set of cell values a decoded spreadsheet may carry. Workbook
# timestamps are converted to ISO strings before they reach a record.
CellValue = Union[None, bool, int, float, str]

Record = Mapping[str, CellValue]


@dataclass(frozen=True)
class RawDataset:
    """
    One decoded table: a header plus loosely-typed records.

    Every record carries every column, in header order.
    """

    name: str
    columns: tuple[str, ...]
    records: tuple[dict[str, CellValue], ...] = field(default_factory=tuple)
    sheet_name: str | None = None

    @property
    def row_count(self) -> int:
        return len(self.records)

    def column_values(self, column: str) -> list[CellValue]:
        """
        Return the raw values of one column in row order.
        """

        return [record.get(column) for record in self.records]
