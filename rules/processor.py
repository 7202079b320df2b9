"""
rules/processor.py

Batch evaluation of an agent's active business rules.

Rules are evaluated one after another. A rule that raises is logged and
skipped; the rest of the batch still runs. Violations are handed to the
ViolationWriter as one batch after every rule has been evaluated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Sequence

from ingestion.models import Record
from rules.baseline import BaselineProvider, MetricHistoryRepository, MetricObservation, utc_now
from rules.errors import RuleEvaluationError
from rules.evaluator import evaluate
from rules.models import BusinessRule, RuleEvaluationResult, Violation
from rules.repository import BusinessRuleRepository
from rules.writer import ViolationWriter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessingResult:
    rules_evaluated: int
    violations: tuple[Violation, ...] = ()
    failed_rule_ids: tuple[str, ...] = ()

    @property
    def violations_created(self) -> int:
        return len(self.violations)


def build_violation(rule: BusinessRule, result: RuleEvaluationResult, created_at: datetime) -> Violation:
    return Violation(
        rule_id=rule.id,
        agent_id=rule.agent_id,
        user_id=rule.user_id,
        metric_value=result.current_value,
        threshold_value=float(rule.threshold_value),
        baseline_value=result.previous_value or 0.0,
        percentage_change=result.percentage_change or 0.0,
        severity=result.severity,
        message=result.message,
        created_at=created_at,
    )


class BusinessRuleProcessor:
    """
    Evaluates every active rule of an agent against one batch of rows.

    Each evaluated rule gets ``last_evaluation`` set; a violated rule also
    gets ``trigger_count + 1`` and ``last_triggered``. The computed metric is
    appended to the history so later passes have a baseline.
    """

    def __init__(
        self,
        repository: BusinessRuleRepository,
        *,
        writer: ViolationWriter | None = None,
        history: MetricHistoryRepository | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repository = repository
        self._writer = writer
        self._history = history
        self._clock = clock
        self._baselines = BaselineProvider(history=history, clock=clock)

    async def process(self, agent_id: str, rows: Sequence[Record]) -> ProcessingResult:
        rules = self._repository.get_active_rules(agent_id)
        if not rules:
            logger.info("No active business rules agent_id=%s", agent_id)
            return ProcessingResult(rules_evaluated=0)

        logger.info("Processing business rules agent_id=%s rules=%s rows=%s", agent_id, len(rules), len(rows))

        now = self._clock()
        violations: list[Violation] = []
        failed: list[str] = []
        observations: list[MetricObservation] = []
        evaluated: list[BusinessRule] = []

        for rule in rules:
            try:
                result = evaluate(rule, rows, self._baselines)
            except RuleEvaluationError as exc:
                failed.append(rule.id)
                logger.warning("Business rule skipped id=%s name=%s error=%s", rule.id, rule.rule_name, exc)
                continue
            except Exception as exc:  # noqa: BLE001
                failed.append(rule.id)
                logger.exception("Business rule evaluation failed id=%s name=%s error=%s", rule.id, rule.rule_name, exc)
                continue

            rule.last_evaluation = now
            if result.violated:
                rule.trigger_count += 1
                rule.last_triggered = now
                violations.append(build_violation(rule, result, now))
                logger.info(
                    "Business rule violated id=%s name=%s severity=%s value=%s",
                    rule.id,
                    rule.rule_name,
                    result.severity,
                    result.current_value,
                )
            evaluated.append(rule)
            observations.append(MetricObservation(rule_id=rule.id, value=result.current_value, observed_at=now))

        # Nothing is committed until the violations are stored, so a failed
        # write leaves the rules and the metric history untouched.
        if violations and self._writer is not None:
            await self._writer.write(violations)

        for rule in evaluated:
            self._repository.save(rule)
        if self._history is not None:
            for observation in observations:
                self._history.record(observation)

        return ProcessingResult(
            rules_evaluated=len(rules),
            violations=tuple(violations),
            failed_rule_ids=tuple(failed),
        )
