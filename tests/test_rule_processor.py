"""
tests/test_rule_processor.py

Pytest unit tests for batch rule processing and violation persistence.

The async entry points are driven with asyncio.run; stores are in-memory
fakes.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import Sequence

import pytest

from rules.baseline import InMemoryMetricHistory
from rules.errors import ViolationPersistenceError
from rules.models import ABSOLUTE, PERCENTAGE, BusinessRule, Violation
from rules.processor import BusinessRuleProcessor
from rules.repository import InMemoryBusinessRuleRepository, load_rules_file, rule_from_mapping
from rules.writer import InMemoryViolationStore, ViolationWriter

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
ROWS = [{"revenue": 100}, {"revenue": 200}]


def _rule(rule_id: str, **overrides: object) -> BusinessRule:
    values: dict[str, object] = {
        "id": rule_id,
        "agent_id": "agent-1",
        "rule_name": f"Rule {rule_id}",
        "metric_column": "revenue",
        "operator": ">",
        "threshold_value": 250.0,
        "comparison_type": ABSOLUTE,
    }
    values.update(overrides)
    return BusinessRule(**values)  # type: ignore[arg-type]


def _violation() -> Violation:
    return Violation(
        rule_id="r1",
        agent_id="agent-1",
        metric_value=300.0,
        threshold_value=250.0,
        severity="low",
        message="Rule r1: Current value (300.00) violates threshold (250)",
        created_at=NOW,
    )


class FailingStore:
    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.calls = 0
        self.inserted: list[Violation] = []

    def insert(self, violations: Sequence[Violation]) -> None:
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError("store unavailable")
        self.inserted.extend(violations)


class SlowStore:
    def insert(self, violations: Sequence[Violation]) -> None:
        time.sleep(0.3)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def store() -> InMemoryViolationStore:
    return InMemoryViolationStore()


@pytest.fixture()
def history() -> InMemoryMetricHistory:
    return InMemoryMetricHistory()


def _processor(
    repository: InMemoryBusinessRuleRepository,
    store: InMemoryViolationStore,
    history: InMemoryMetricHistory,
) -> BusinessRuleProcessor:
    writer = ViolationWriter(store, timeout_seconds=1.0, max_attempts=1, backoff_seconds=0.0)
    return BusinessRuleProcessor(repository, writer=writer, history=history, clock=lambda: NOW)


# ---------------------------------------------------------------------------
# Processor
# ---------------------------------------------------------------------------


class TestBusinessRuleProcessor:
    def test_single_violation_for_sum_over_threshold(self, store, history) -> None:
        repository = InMemoryBusinessRuleRepository([_rule("r1")])

        result = asyncio.run(_processor(repository, store, history).process("agent-1", ROWS))

        assert result.rules_evaluated == 1
        assert result.violations_created == 1
        violation = result.violations[0]
        assert violation.metric_value == 300.0
        assert violation.threshold_value == 250.0
        assert violation.severity == "low"
        assert violation.created_at == NOW
        assert store.list_violations("agent-1") == [violation]

    def test_failing_rule_does_not_stop_the_batch(self, store, history) -> None:
        repository = InMemoryBusinessRuleRepository(
            [_rule("bad", operator="~"), _rule("good"), _rule("trend", comparison_type="trend")]
        )

        result = asyncio.run(_processor(repository, store, history).process("agent-1", ROWS))

        assert result.rules_evaluated == 3
        assert result.violations_created == 1
        assert set(result.failed_rule_ids) == {"bad", "trend"}
        assert repository.get("bad").last_evaluation is None

    def test_bookkeeping_is_saved(self, store, history) -> None:
        repository = InMemoryBusinessRuleRepository([_rule("hit"), _rule("miss", threshold_value=1000.0)])

        asyncio.run(_processor(repository, store, history).process("agent-1", ROWS))

        hit = repository.get("hit")
        assert hit.trigger_count == 1
        assert hit.last_triggered == NOW
        assert hit.last_evaluation == NOW
        miss = repository.get("miss")
        assert miss.trigger_count == 0
        assert miss.last_triggered is None
        assert miss.last_evaluation == NOW

    def test_only_active_rules_of_the_agent_run(self, store, history) -> None:
        repository = InMemoryBusinessRuleRepository(
            [_rule("mine"), _rule("off", is_active=False), _rule("theirs", agent_id="agent-2")]
        )

        result = asyncio.run(_processor(repository, store, history).process("agent-1", ROWS))

        assert result.rules_evaluated == 1
        assert [violation.rule_id for violation in result.violations] == ["mine"]

    def test_no_active_rules(self, store, history) -> None:
        result = asyncio.run(
            _processor(InMemoryBusinessRuleRepository(), store, history).process("agent-1", ROWS)
        )
        assert result.rules_evaluated == 0
        assert result.violations == ()

    def test_metric_history_feeds_percentage_baseline(self, store, history) -> None:
        repository = InMemoryBusinessRuleRepository(
            [_rule("pct", comparison_type=PERCENTAGE, threshold_value=10.0)]
        )
        processor = _processor(repository, store, history)

        first = asyncio.run(processor.process("agent-1", ROWS))
        second = asyncio.run(processor.process("agent-1", [{"revenue": 450}]))

        assert first.violations_created == 0
        assert len(history.get_observations("pct")) == 2
        assert second.violations_created == 1
        violation = second.violations[0]
        assert violation.baseline_value == 300.0
        assert violation.percentage_change == pytest.approx(50.0)

    def test_persistence_failure_propagates(self, history) -> None:
        repository = InMemoryBusinessRuleRepository([_rule("r1")])
        failing = FailingStore(failures=5)
        writer = ViolationWriter(failing, max_attempts=2, backoff_seconds=0.0)
        processor = BusinessRuleProcessor(repository, writer=writer, history=history, clock=lambda: NOW)

        with pytest.raises(ViolationPersistenceError):
            asyncio.run(processor.process("agent-1", ROWS))

    def test_failed_write_leaves_rule_and_history_untouched(self, history) -> None:
        repository = InMemoryBusinessRuleRepository([_rule("r1")])
        writer = ViolationWriter(FailingStore(failures=1), max_attempts=1, backoff_seconds=0.0)
        processor = BusinessRuleProcessor(repository, writer=writer, history=history, clock=lambda: NOW)

        with pytest.raises(ViolationPersistenceError):
            asyncio.run(processor.process("agent-1", ROWS))

        rule = repository.get("r1")
        assert rule.trigger_count == 0
        assert rule.last_triggered is None
        assert rule.last_evaluation is None
        assert history.get_observations("r1") == []


# ---------------------------------------------------------------------------
# Writer
# ---------------------------------------------------------------------------


class TestViolationWriter:
    def test_empty_batch_is_not_written(self) -> None:
        failing = FailingStore(failures=0)
        assert asyncio.run(ViolationWriter(failing).write([])) == 0
        assert failing.calls == 0

    def test_retries_until_success(self) -> None:
        flaky = FailingStore(failures=1)
        writer = ViolationWriter(flaky, max_attempts=3, backoff_seconds=0.0)

        written = asyncio.run(writer.write([_violation()]))

        assert written == 1
        assert flaky.calls == 2
        assert len(flaky.inserted) == 1

    def test_gives_up_after_max_attempts(self) -> None:
        failing = FailingStore(failures=10)
        writer = ViolationWriter(failing, max_attempts=3, backoff_seconds=0.0)

        with pytest.raises(ViolationPersistenceError) as excinfo:
            asyncio.run(writer.write([_violation()]))

        assert failing.calls == 3
        assert excinfo.value.to_dict() == {
            "message": "Failed to create violation records after 3 attempts.",
            "attempts": 3,
            "violation_count": 1,
        }

    def test_timeout_counts_as_failure(self) -> None:
        writer = ViolationWriter(SlowStore(), timeout_seconds=0.05, max_attempts=1, backoff_seconds=0.0)
        with pytest.raises(ViolationPersistenceError):
            asyncio.run(writer.write([_violation()]))


class TestInMemoryViolationStore:
    def test_oldest_violations_are_evicted(self) -> None:
        store = InMemoryViolationStore(max_violations=2)
        first, second, third = (
            Violation(rule_id=f"r{index}", agent_id="agent-1", metric_value=float(index),
                      threshold_value=0.0, severity="low", message=f"m{index}", created_at=NOW)
            for index in range(3)
        )
        store.insert([first, second])
        store.insert([third])

        assert store.list_violations("agent-1") == [second, third]

    def test_limit_keeps_newest(self) -> None:
        store = InMemoryViolationStore()
        store.insert([_violation(), _violation()])
        newest = Violation(rule_id="r2", agent_id="agent-1", metric_value=1.0, threshold_value=0.0,
                           severity="low", message="newest", created_at=NOW)
        store.insert([newest])

        assert store.list_violations("agent-1", limit=1) == [newest]
        assert store.list_violations("agent-1", limit=0) == []
        assert len(store.list_violations("agent-1")) == 3


def test_violation_to_dict_serializes_timestamp() -> None:
    payload = _violation().to_dict()
    assert payload["created_at"] == NOW.isoformat()
    assert payload["severity"] == "low"


# ---------------------------------------------------------------------------
# Rule definitions
# ---------------------------------------------------------------------------


class TestRuleDefinitions:
    def test_rule_from_mapping_ignores_unknown_keys(self) -> None:
        rule = rule_from_mapping(
            {
                "id": "r1",
                "agent_id": "a",
                "rule_name": "n",
                "metric_column": "m",
                "operator": ">",
                "threshold_value": "5",
                "created_at": "2024-01-01",
            }
        )
        assert rule.threshold_value == 5.0
        assert rule.comparison_type == PERCENTAGE

    def test_incomplete_rule_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            rule_from_mapping({"id": "r1", "agent_id": "a"})

    def test_load_rules_file(self, tmp_path) -> None:
        path = tmp_path / "rules.json"
        path.write_text(
            '[{"id": "r1", "agent_id": "a", "rule_name": "n", "metric_column": "m",'
            ' "operator": ">", "threshold_value": 5, "comparison_type": "absolute"}]',
            encoding="utf-8",
        )
        [rule] = load_rules_file(path)
        assert rule.comparison_type == ABSOLUTE

    def test_repository_hands_out_copies(self) -> None:
        repository = InMemoryBusinessRuleRepository([_rule("r1")])
        copy = repository.get("r1")
        copy.trigger_count = 99
        assert repository.get("r1").trigger_count == 0
