"""
app/services/clean_and_score_service.py

Service layer for the dataset analysis pipeline:

    1. ingestion      : decode the upload / sheet / row set
    2. inference      : assign a type to every column
    3. cleaning       : coerce values and drop duplicate records
    4. quality        : score the cleaned records and render CSV + Markdown

Every stage is a synchronous pure function; this service only wires them
together and hands each analyzed dataset (cleaned rows plus typed
columns) to the configured sink.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, BinaryIO, Iterable, Mapping

from app.config import get_upload_settings
from cleaning.normalizer import NormalizationResult, normalize
from inference.detector import COLUMN_TYPES, ColumnProfile, ColumnTypeInferenceEngine
from inference.learned_rules import (
    ClassificationRule,
    InMemoryClassificationRuleRepository,
    TypeCorrection,
    rules_from_feedback,
)
from ingestion.models import RawDataset
from ingestion.readers import from_rows, load_upload, read_upload_stream
from ingestion.sink import DatasetSink
from quality.report import report_to_markdown, rows_to_csv
from quality.scorer import QualityReport, score

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DatasetAnalysis:
    """
    Everything the pipeline derived from one dataset.
    """

    dataset: RawDataset
    profiles: tuple[ColumnProfile, ...]
    normalization: NormalizationResult
    report: QualityReport

    @property
    def column_types(self) -> dict[str, str]:
        return {profile.name: profile.type for profile in self.profiles}

    @property
    def cleaned_csv(self) -> str:
        return rows_to_csv(self.normalization.records, list(self.dataset.columns))

    @property
    def markdown(self) -> str:
        return report_to_markdown(self.report)


class CleanAndScoreService:
    """
    Coordinates ingestion, type inference, normalization and scoring.
    """

    def __init__(
        self,
        *,
        max_upload_bytes: int,
        rule_repository: InMemoryClassificationRuleRepository | None = None,
        sink: DatasetSink | None = None,
    ) -> None:
        self._max_upload_bytes = max_upload_bytes
        self._rules = rule_repository or InMemoryClassificationRuleRepository()
        self._engine = ColumnTypeInferenceEngine(self._rules)
        self._sink = sink

    def analyze(
        self,
        dataset: RawDataset,
        overrides: Mapping[str, str] | None = None,
    ) -> DatasetAnalysis:
        """
        Run inference, normalization and scoring on a loaded dataset, then
        pass the cleaned rows and column profiles to the sink.
        """

        profiles = tuple(self._engine.infer_dataset(dataset, overrides))
        column_types = {profile.name: profile.type for profile in profiles}
        normalization = normalize(dataset.records, column_types)
        report = score(
            normalization.records,
            column_types,
            original_row_count=normalization.original_count,
        )
        logger.info(
            "Dataset analyzed name=%s sheet=%s rows=%s cleaned=%s score=%s",
            dataset.name,
            dataset.sheet_name,
            dataset.row_count,
            normalization.cleaned_count,
            report.overall_score,
        )
        analysis = DatasetAnalysis(
            dataset=dataset,
            profiles=profiles,
            normalization=normalization,
            report=report,
        )
        self._hand_off(analysis)
        return analysis

    def read_upload(self, stream: BinaryIO) -> bytes:
        """
        Read an upload stream up to the configured size cap.

        Raises UploadTooLargeError as soon as the cap is exceeded.
        """

        return read_upload_stream(stream, self._max_upload_bytes)

    def analyze_upload(
        self,
        *,
        filename: str,
        payload: bytes,
        overrides: Mapping[str, str] | None = None,
    ) -> list[DatasetAnalysis]:
        """
        Decode an uploaded file and analyze each of its datasets (one per
        worksheet for workbooks).

        Raises IngestionInputError / IngestionParseError for bad uploads.
        """

        datasets = load_upload(filename, payload, max_bytes=self._max_upload_bytes)
        return [self.analyze(dataset, overrides) for dataset in datasets]

    def analyze_rows(
        self,
        rows: Iterable[Mapping[str, Any]],
        *,
        name: str,
        overrides: Mapping[str, str] | None = None,
    ) -> DatasetAnalysis:
        return self.analyze(from_rows(rows, name), overrides)

    def learn_from_feedback(self, corrections: Iterable[TypeCorrection]) -> list[ClassificationRule]:
        """
        Turn repeated user type corrections into learned classification
        rules and store them. Returns only the newly created rules.

        Raises ValueError for a correction naming an unknown column type.
        """

        materialized = list(corrections)
        for correction in materialized:
            if correction.corrected_type not in COLUMN_TYPES:
                raise ValueError(
                    f"Unsupported column type '{correction.corrected_type}' for column "
                    f"'{correction.column_name}'. Allowed values: {sorted(COLUMN_TYPES)}."
                )

        existing = [rule.rule_name for rule in self._rules.list_rules()]
        created = rules_from_feedback(materialized, existing_rule_names=existing)
        for rule in created:
            self._rules.add(rule)
        logger.info("Classification rules learned corrections=%s created=%s", len(materialized), len(created))
        return created

    def _hand_off(self, analysis: DatasetAnalysis) -> None:
        if self._sink is None:
            return
        self._sink(
            list(analysis.normalization.records),
            list(analysis.profiles),
            analysis.dataset.name,
            analysis.dataset.sheet_name,
        )


@lru_cache(maxsize=1)
def get_classification_rule_repository() -> InMemoryClassificationRuleRepository:
    """
    Process-wide learned classification rule store.
    """

    return InMemoryClassificationRuleRepository()


@lru_cache(maxsize=1)
def get_clean_and_score_service() -> CleanAndScoreService:
    """
    Build and cache the clean-and-score service.
    """

    return CleanAndScoreService(
        max_upload_bytes=get_upload_settings().max_bytes,
        rule_repository=get_classification_rule_repository(),
    )
