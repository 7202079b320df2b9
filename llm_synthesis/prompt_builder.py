"""Persona-aware prompt builder for dataset summary reports."""

import json
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Sequence, Tuple

DEFAULT_PERSONA = "general"

PERSONA_PROMPTS: Dict[str, str] = {
    "executive": """\
You are a C-level executive assistant providing strategic insights. Focus on:
- High-level business implications and trends
- Key performance indicators and metrics
- Strategic recommendations for decision-making
- Executive summary style with actionable insights
- Risk assessment and opportunities""",
    "marketing": """\
You are a marketing analyst providing campaign and customer insights. Focus on:
- Customer segmentation and behavior patterns
- Marketing performance metrics and conversion rates
- Audience analysis and targeting opportunities
- Campaign effectiveness and optimization suggestions
- Growth and engagement metrics""",
    "finance": """\
You are a financial analyst providing fiscal insights. Focus on:
- Revenue trends and financial performance
- Cost analysis and budget implications
- Profitability metrics and financial ratios
- Risk assessment from a financial perspective
- Investment and resource allocation recommendations""",
    "operations": """\
You are an operations analyst providing efficiency insights. Focus on:
- Process efficiency and operational metrics
- Resource utilization and capacity analysis
- Quality metrics and performance indicators
- Bottlenecks and optimization opportunities
- Workflow and process improvement suggestions""",
    "data_scientist": """\
You are a senior data scientist providing technical insights. Focus on:
- Statistical analysis and data quality assessment
- Correlation patterns and anomaly detection
- Predictive modeling opportunities
- Data preprocessing and cleaning recommendations
- Advanced analytics and machine learning potential""",
    DEFAULT_PERSONA: """\
You are a business intelligence analyst providing comprehensive insights. Focus on:
- Overall data patterns and trends
- Key findings and notable observations
- Data quality and completeness assessment
- Visualization recommendations
- General business insights and recommendations""",
}

_REPORT_STRUCTURE = """\
Please provide a comprehensive analysis report with the following structure:

## Executive Summary
Brief overview of the dataset and key insights (2-3 sentences)

## Key Findings
- 3-5 most important insights from the data
- Notable patterns, trends, or anomalies
- Data quality observations

## Detailed Analysis
- Column-by-column insights where relevant
- Relationships between different data points
- Statistical observations

## Recommended Visualizations
- Suggest 3-4 specific chart types that would best represent this data
- Include which columns to use for each visualization

## Data Quality Assessment
- Overall data completeness and quality
- Potential data issues or cleaning needs

## Next Steps & Recommendations
- Actionable insights based on the analysis
- Suggested follow-up questions or investigations

Keep the report concise, using bullet points and clear sections. Do not
invent numbers that are not given above."""

USER_PROMPT = (
    "Please analyze this dataset and provide a comprehensive report "
    "based on the data characteristics provided above."
)


@dataclass(frozen=True)
class DatasetContext:
    """What the model is told about a dataset.

    ``data_completeness`` holds ``(column, percent complete)`` pairs with
    whole-number percentages.
    """

    dataset_name: str
    total_rows: int
    total_columns: int
    column_types: Mapping[str, int]
    data_completeness: Sequence[Tuple[str, int]]
    sample_rows: Sequence[Mapping[str, object]] = field(default_factory=tuple)


def resolve_persona(persona: str) -> str:
    """Return ``persona`` when known, otherwise the general persona."""
    return persona if persona in PERSONA_PROMPTS else DEFAULT_PERSONA


class SummaryPromptBuilder:
    """Builds the system prompt for a persona-specific dataset report."""

    SAMPLE_ROW_LIMIT: int = 2

    def build_system_prompt(self, context: DatasetContext, persona: str = DEFAULT_PERSONA) -> str:
        """Combine the persona brief, dataset facts and report layout.

        Args:
            context: Dataset characteristics.
            persona: One of PERSONA_PROMPTS; unknown values fall back to
                the general persona.

        Returns:
            The system prompt string.
        """
        persona_prompt = PERSONA_PROMPTS[resolve_persona(persona)]
        type_summary = ", ".join(f"{count} {name}" for name, count in context.column_types.items())
        sample = json.dumps(list(context.sample_rows)[: self.SAMPLE_ROW_LIMIT], default=str)

        return (
            f"{persona_prompt}\n\n"
            f"You are analyzing a dataset with the following characteristics:\n"
            f"- Dataset: {context.dataset_name or 'Uploaded Data'}\n"
            f"- Total rows: {context.total_rows:,}\n"
            f"- Total columns: {context.total_columns}\n"
            f"- Column types: {type_summary}\n"
            f"- Sample data: {sample}\n\n"
            f"Data Completeness Summary:\n"
            f"{self._format_completeness(context.data_completeness)}\n\n"
            f"{_REPORT_STRUCTURE}"
        )

    def build_user_prompt(self) -> str:
        return USER_PROMPT

    @staticmethod
    def _format_completeness(completeness: Sequence[Tuple[str, int]]) -> str:
        lines: List[str] = [f"- {column}: {percent}% complete" for column, percent in completeness]
        return "\n".join(lines)
