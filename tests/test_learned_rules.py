from __future__ import annotations

import unittest

import pytest

from app.services.clean_and_score_service import CleanAndScoreService
from inference.learned_rules import (
    ClassificationRule,
    InMemoryClassificationRuleRepository,
    TypeCorrection,
    next_success_rate,
    rules_from_feedback,
)


class TestSuccessRate(unittest.TestCase):
    def test_success_moves_towards_one(self) -> None:
        self.assertAlmostEqual(next_success_rate(0.5, True), 0.55)

    def test_failure_moves_towards_zero(self) -> None:
        self.assertAlmostEqual(next_success_rate(0.5, False), 0.45)

    def test_result_stays_in_unit_interval(self) -> None:
        self.assertLessEqual(next_success_rate(1.0, True), 1.0)
        self.assertGreaterEqual(next_success_rate(0.0, False), 0.0)


class TestRuleDeactivation(unittest.TestCase):
    def _repository(self, usage_count: int) -> InMemoryClassificationRuleRepository:
        return InMemoryClassificationRuleRepository(
            [
                ClassificationRule(
                    id="r1",
                    rule_name="feedback_rule_zip_categorical",
                    pattern="zip",
                    target_type="categorical",
                    usage_count=usage_count,
                    success_rate=0.32,
                )
            ]
        )

    def test_low_success_rate_after_many_uses_deactivates(self) -> None:
        repository = self._repository(usage_count=11)
        repository.record_outcome("r1", success=False)

        rule = repository.get("r1")
        self.assertFalse(rule.is_active)
        self.assertEqual(repository.get_active_rules(), [])

    def test_low_success_rate_with_few_uses_stays_active(self) -> None:
        repository = self._repository(usage_count=10)
        repository.record_outcome("r1", success=False)

        self.assertTrue(repository.get("r1").is_active)

    def test_unknown_rule_outcome_is_ignored(self) -> None:
        repository = self._repository(usage_count=0)
        repository.record_outcome("missing", success=True)
        self.assertEqual(len(repository.get_active_rules()), 1)


class TestRuleMatching(unittest.TestCase):
    def test_substring_match_is_case_insensitive(self) -> None:
        rule = ClassificationRule(id="r", rule_name="n", pattern="zip", target_type="categorical")
        self.assertTrue(rule.matches("Customer ZIP"))
        self.assertFalse(rule.matches("postcode"))

    def test_regex_pattern(self) -> None:
        rule = ClassificationRule(id="r", rule_name="n", pattern="^rev", target_type="numeric")
        self.assertTrue(rule.matches("Revenue"))
        self.assertFalse(rule.matches("net_revenue"))

    def test_other_rule_types_never_match(self) -> None:
        rule = ClassificationRule(
            id="r",
            rule_name="n",
            pattern="zip",
            target_type="categorical",
            rule_type="value_pattern",
        )
        self.assertFalse(rule.matches("zip"))


# ---------------------------------------------------------------------------
# Rules from feedback
# ---------------------------------------------------------------------------


def test_repeated_corrections_produce_a_rule() -> None:
    corrections = [
        TypeCorrection(column_name="Zip", original_type="numeric", corrected_type="categorical"),
        TypeCorrection(column_name="zip", original_type="numeric", corrected_type="categorical"),
    ]

    rules = rules_from_feedback(corrections)

    assert len(rules) == 1
    rule = rules[0]
    assert rule.pattern == "zip"
    assert rule.target_type == "categorical"
    assert rule.rule_name == "feedback_rule_zip_categorical"
    assert rule.confidence_score == pytest.approx(0.9)
    assert rule.created_from_feedback_count == 2


def test_single_correction_is_not_enough() -> None:
    corrections = [TypeCorrection(column_name="zip", original_type="numeric", corrected_type="categorical")]
    assert rules_from_feedback(corrections) == []


def test_existing_rule_names_are_skipped() -> None:
    corrections = [
        TypeCorrection(column_name="zip", original_type="numeric", corrected_type="categorical"),
        TypeCorrection(column_name="zip", original_type="numeric", corrected_type="categorical"),
    ]
    assert rules_from_feedback(corrections, existing_rule_names=["feedback_rule_zip_categorical"]) == []


def test_confidence_is_capped_at_one() -> None:
    corrections = [
        TypeCorrection(column_name="sku", original_type="numeric", corrected_type="text")
        for _ in range(6)
    ]
    rules = rules_from_feedback(corrections)
    assert rules[0].confidence_score == pytest.approx(1.0)
    assert rules[0].created_from_feedback_count == 6


def test_service_stores_learned_rules() -> None:
    repository = InMemoryClassificationRuleRepository()
    service = CleanAndScoreService(max_upload_bytes=1_000, rule_repository=repository)
    corrections = [TypeCorrection(column_name="zip", original_type="numeric", corrected_type="categorical")] * 2

    created = service.learn_from_feedback(corrections)

    assert [rule.id for rule in repository.list_rules()] == [rule.id for rule in created]
    analysis = service.analyze_rows([{"zip": "10001"}, {"zip": "10002"}], name="zips")
    assert analysis.column_types == {"zip": "categorical"}
