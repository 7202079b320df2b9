"""
app/services/summary_service.py

AI summary generation with a deterministic local fallback.

The LLM call is blocking, so it runs in a worker thread under a timeout.
Any failure (adapter construction, API error, timeout, empty answer)
produces the local report instead; the call is never retried.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Callable, Iterable, Mapping, Sequence

from app.config import LLMSettings, get_llm_settings
from app.services.clean_and_score_service import (
    CleanAndScoreService,
    DatasetAnalysis,
    get_clean_and_score_service,
)
from inference.detector import is_empty
from llm_synthesis.adapter import BaseLLMAdapter, MockLLMAdapter, OpenAILLMAdapter
from llm_synthesis.fallback import build_fallback_report
from llm_synthesis.prompt_builder import DatasetContext, SummaryPromptBuilder, resolve_persona
from rules.models import Violation

logger = logging.getLogger(__name__)

SOURCE_AI = "ai"
SOURCE_FALLBACK = "fallback"


@dataclass(frozen=True)
class SummaryResult:
    report: str
    source: str
    metadata: dict[str, Any]


def build_llm_adapter(settings: LLMSettings) -> BaseLLMAdapter:
    """
    Instantiate the adapter named by LLM_ADAPTER.
    """

    if settings.adapter == "mock":
        return MockLLMAdapter()
    return OpenAILLMAdapter(
        model=settings.model,
        max_tokens=settings.max_tokens,
        temperature=settings.temperature,
        api_key=settings.api_key,
        base_url=settings.base_url,
        timeout_seconds=settings.timeout_seconds,
    )


def build_dataset_context(analysis: DatasetAnalysis, dataset_name: str | None = None) -> DatasetContext:
    """
    Describe the raw dataset: row count, column type counts and whole-number
    completeness per column.
    """

    dataset = analysis.dataset
    column_types: dict[str, int] = {}
    for profile in analysis.profiles:
        column_types[profile.type] = column_types.get(profile.type, 0) + 1

    completeness: list[tuple[str, int]] = []
    for column in dataset.columns:
        values = dataset.column_values(column)
        present = sum(1 for value in values if not is_empty(value))
        percent = round(present / len(values) * 100) if values else 0
        completeness.append((column, percent))

    return DatasetContext(
        dataset_name=dataset_name or dataset.name,
        total_rows=dataset.row_count,
        total_columns=len(dataset.columns),
        column_types=column_types,
        data_completeness=completeness,
        sample_rows=dataset.records[:2],
    )


class SummaryService:
    """
    Generates persona-specific dataset reports.
    """

    def __init__(
        self,
        *,
        pipeline: CleanAndScoreService,
        adapter_factory: Callable[[], BaseLLMAdapter],
        timeout_seconds: float,
        prompt_builder: SummaryPromptBuilder | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._adapter_factory = adapter_factory
        self._timeout_seconds = timeout_seconds
        self._prompt_builder = prompt_builder or SummaryPromptBuilder()

    async def generate(
        self,
        rows: Iterable[Mapping[str, Any]],
        *,
        dataset_name: str | None = None,
        persona: str = "general",
        violations: Sequence[Violation] = (),
    ) -> SummaryResult:
        persona = resolve_persona(persona)
        analysis = self._pipeline.analyze_rows(rows, name=dataset_name or "Uploaded Data")
        context = build_dataset_context(analysis, dataset_name)

        system_prompt = self._prompt_builder.build_system_prompt(context, persona)
        user_prompt = self._prompt_builder.build_user_prompt()

        report = await self._generate_ai_report(user_prompt, system_prompt)
        source = SOURCE_AI
        if report is None:
            report = build_fallback_report(context, analysis.report, violations)
            source = SOURCE_FALLBACK

        metadata = {
            "total_rows": context.total_rows,
            "total_columns": context.total_columns,
            "column_types": dict(context.column_types),
            "data_completeness": [
                {"column": column, "completeness": percent} for column, percent in context.data_completeness
            ],
            "persona": persona,
            "generated_at": datetime.now(timezone.utc).isoformat(),
        }
        logger.info("Summary generated dataset=%s persona=%s source=%s", context.dataset_name, persona, source)
        return SummaryResult(report=report, source=source, metadata=metadata)

    async def _generate_ai_report(self, prompt: str, system_prompt: str) -> str | None:
        try:
            adapter = self._adapter_factory()
            text = await asyncio.wait_for(
                asyncio.to_thread(adapter.generate, prompt, system_prompt),
                timeout=self._timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning("AI summary timed out timeout_seconds=%.1f; using fallback", self._timeout_seconds)
            return None
        except Exception as exc:  # noqa: BLE001
            logger.warning("AI summary failed error=%s; using fallback", exc)
            return None

        if not text or not text.strip():
            logger.warning("AI summary returned empty content; using fallback")
            return None
        return text


@lru_cache(maxsize=1)
def get_summary_service() -> SummaryService:
    """
    Build and cache the summary service.
    """

    settings = get_llm_settings()
    return SummaryService(
        pipeline=get_clean_and_score_service(),
        adapter_factory=lambda: build_llm_adapter(settings),
        timeout_seconds=settings.timeout_seconds,
    )
