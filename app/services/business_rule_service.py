"""
app/services/business_rule_service.py

Service layer for business rule management and batch evaluation.
"""

from __future__ import annotations

import logging
import uuid
from functools import lru_cache
from typing import Any, Mapping, Sequence

from app.config import get_business_rule_settings, get_violation_write_settings
from ingestion.models import Record
from rules.baseline import InMemoryMetricHistory
from rules.models import BusinessRule, Violation
from rules.processor import BusinessRuleProcessor, ProcessingResult
from rules.repository import InMemoryBusinessRuleRepository, load_rules_file, rule_from_mapping
from rules.writer import InMemoryViolationStore, ViolationWriter

logger = logging.getLogger(__name__)


class BusinessRuleService:
    """
    Owns the rule store, metric history and violation store of the process.
    """

    def __init__(
        self,
        *,
        repository: InMemoryBusinessRuleRepository,
        history: InMemoryMetricHistory,
        violation_store: InMemoryViolationStore,
        writer: ViolationWriter,
    ) -> None:
        self._repository = repository
        self._violation_store = violation_store
        self._processor = BusinessRuleProcessor(repository, writer=writer, history=history)

    def create_rule(self, payload: Mapping[str, Any]) -> BusinessRule:
        """
        Store a new rule. A missing id is generated.

        Raises ValueError for incomplete definitions.
        """

        data = dict(payload)
        data.setdefault("id", str(uuid.uuid4()))
        rule = rule_from_mapping(data)
        return self._repository.add(rule)

    def list_rules(self, agent_id: str) -> list[BusinessRule]:
        return self._repository.list_rules(agent_id)

    def list_violations(self, agent_id: str, limit: int | None = None) -> list[Violation]:
        return self._violation_store.list_violations(agent_id, limit=limit)

    async def evaluate(self, agent_id: str, rows: Sequence[Record]) -> ProcessingResult:
        """
        Evaluate the agent's active rules. Raises ViolationPersistenceError
        when violations cannot be stored.
        """

        return await self._processor.process(agent_id, rows)


@lru_cache(maxsize=1)
def get_business_rule_service() -> BusinessRuleService:
    """
    Build and cache the business rule service, seeding rules from
    BUSINESS_RULES_FILE when it is set.
    """

    rules: list[BusinessRule] = []
    rules_file = get_business_rule_settings().rules_file
    if rules_file:
        rules = load_rules_file(rules_file)
        logger.info("Business rules loaded path=%s count=%s", rules_file, len(rules))

    write_settings = get_violation_write_settings()
    store = InMemoryViolationStore()
    return BusinessRuleService(
        repository=InMemoryBusinessRuleRepository(rules),
        history=InMemoryMetricHistory(),
        violation_store=store,
        writer=ViolationWriter(
            store,
            timeout_seconds=write_settings.timeout_seconds,
            max_attempts=write_settings.max_attempts,
            backoff_seconds=write_settings.backoff_seconds,
        ),
    )
