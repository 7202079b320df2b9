"""
ingestion/sink.py

Downstream hand-off contract for analyzed datasets.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Sequence

from ingestion.models import Record

if TYPE_CHECKING:
    from inference.detector import ColumnProfile


class DatasetSink(Protocol):
    """
    Receiver of a fully analyzed dataset: the cleaned rows and one typed
    ColumnProfile per column, in header order.

    Implementations decide what to do with the data; the pipeline only
    calls them once per dataset and ignores the return value.
    """

    def __call__(
        self,
        rows: Sequence[Record],
        columns: Sequence[ColumnProfile],
        dataset_name: str,
        sheet_name: str | None = None,
    ) -> None:
        ...
