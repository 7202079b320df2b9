"""
tests/test_summary_service.py

Pytest unit tests for SummaryService: AI path, fallback on every failure
mode, metadata and the prompt it sends.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import Optional

import pytest

from app.services.clean_and_score_service import CleanAndScoreService
from app.services.summary_service import (
    SOURCE_AI,
    SOURCE_FALLBACK,
    SummaryService,
    build_dataset_context,
)
from llm_synthesis.adapter import MOCK_REPORT, BaseLLMAdapter, MockLLMAdapter
from llm_synthesis.prompt_builder import SummaryPromptBuilder
from rules.models import Violation

ROWS = [
    {"region": "north", "revenue": 100, "notes": "ok"},
    {"region": "south", "revenue": 200, "notes": None},
]


class RecordingAdapter(BaseLLMAdapter):
    def __init__(self, reply: str = "## Executive Summary\nAll good.") -> None:
        self.reply = reply
        self.prompts: list[tuple[str, Optional[str]]] = []

    def generate(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        self.prompts.append((prompt, system_prompt))
        return self.reply


class FailingAdapter(BaseLLMAdapter):
    def generate(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        raise RuntimeError("rate limited")


class SlowAdapter(BaseLLMAdapter):
    def generate(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        time.sleep(0.3)
        return "late"


def _service(adapter_factory, timeout_seconds: float = 2.0) -> SummaryService:
    return SummaryService(
        pipeline=CleanAndScoreService(max_upload_bytes=1_000_000),
        adapter_factory=adapter_factory,
        timeout_seconds=timeout_seconds,
    )


# ---------------------------------------------------------------------------
# AI path
# ---------------------------------------------------------------------------


class TestAIReport:
    def test_mock_adapter_report(self) -> None:
        result = asyncio.run(_service(MockLLMAdapter).generate(ROWS, dataset_name="Sales"))
        assert result.source == SOURCE_AI
        assert result.report == MOCK_REPORT

    def test_system_prompt_describes_dataset(self) -> None:
        adapter = RecordingAdapter()
        asyncio.run(_service(lambda: adapter).generate(ROWS, dataset_name="Sales", persona="finance"))

        [(prompt, system_prompt)] = adapter.prompts
        assert prompt == SummaryPromptBuilder().build_user_prompt()
        assert "- Dataset: Sales" in system_prompt
        assert "- Total rows: 2" in system_prompt
        assert "- notes: 50% complete" in system_prompt

    def test_metadata(self) -> None:
        result = asyncio.run(_service(MockLLMAdapter).generate(ROWS, persona="executive"))
        metadata = result.metadata
        assert metadata["total_rows"] == 2
        assert metadata["total_columns"] == 3
        assert sum(metadata["column_types"].values()) == 3
        assert metadata["data_completeness"] == [
            {"column": "region", "completeness": 100},
            {"column": "revenue", "completeness": 100},
            {"column": "notes", "completeness": 50},
        ]
        assert metadata["persona"] == "executive"
        assert datetime.fromisoformat(metadata["generated_at"]).tzinfo == timezone.utc

    def test_unknown_persona_falls_back_to_general(self) -> None:
        result = asyncio.run(_service(MockLLMAdapter).generate(ROWS, persona="astrologer"))
        assert result.metadata["persona"] == "general"


# ---------------------------------------------------------------------------
# Fallback path
# ---------------------------------------------------------------------------


class TestFallbackReport:
    def test_adapter_error(self) -> None:
        result = asyncio.run(_service(FailingAdapter).generate(ROWS, dataset_name="Sales"))
        assert result.source == SOURCE_FALLBACK
        assert result.report.startswith("## Executive Summary\nSales has 2 rows and 3 columns")
        assert "## Data Quality Assessment" in result.report
        assert "## Next Steps & Recommendations" in result.report
        assert "## Business Rule Alerts" not in result.report

    def test_adapter_construction_error(self) -> None:
        def factory() -> BaseLLMAdapter:
            raise ValueError("LLM API key is not configured")

        result = asyncio.run(_service(factory).generate(ROWS))
        assert result.source == SOURCE_FALLBACK

    def test_timeout(self) -> None:
        result = asyncio.run(_service(SlowAdapter, timeout_seconds=0.05).generate(ROWS))
        assert result.source == SOURCE_FALLBACK

    def test_empty_answer(self) -> None:
        result = asyncio.run(_service(lambda: RecordingAdapter(reply="   ")).generate(ROWS))
        assert result.source == SOURCE_FALLBACK

    def test_violations_are_listed(self) -> None:
        violation = Violation(
            rule_id="r1",
            agent_id="agent-1",
            metric_value=300.0,
            threshold_value=250.0,
            severity="high",
            message="Revenue cap: Current value (300.00) violates threshold (250)",
            created_at=datetime(2024, 6, 1, tzinfo=timezone.utc),
        )

        result = asyncio.run(_service(FailingAdapter).generate(ROWS, violations=[violation]))

        assert "## Business Rule Alerts" in result.report
        assert "- [high] Revenue cap: Current value (300.00) violates threshold (250)" in result.report


def test_dataset_context_uses_raw_rows() -> None:
    pipeline = CleanAndScoreService(max_upload_bytes=1_000_000)
    analysis = pipeline.analyze_rows(ROWS + [ROWS[0]], name="Sales")

    context = build_dataset_context(analysis)

    assert context.dataset_name == "Sales"
    assert context.total_rows == 3
    assert context.total_columns == 3
    assert list(context.sample_rows) == [ROWS[0], ROWS[1]]
    assert analysis.report.duplicates_removed == 1


@pytest.mark.parametrize("persona", ["executive", "marketing", "finance", "operations", "data_scientist"])
def test_personas_change_the_system_prompt(persona: str) -> None:
    builder = SummaryPromptBuilder()
    pipeline = CleanAndScoreService(max_upload_bytes=1_000_000)
    context = build_dataset_context(pipeline.analyze_rows(ROWS, name="Sales"))
    assert builder.build_system_prompt(context, persona) != builder.build_system_prompt(context, "general")
