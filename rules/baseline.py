"""
rules/baseline.py

Baseline lookup for percentage rules.

A baseline is derived from the metric's own history: the last value
observed inside the rule's time window (``previous_period``), the mean of
the values in the window (``moving_average``), or the rule's configured
``baseline_value`` (``fixed_value``).
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Protocol

from rules.errors import RuleConfigurationError
from rules.models import FIXED_VALUE, MOVING_AVERAGE, PREVIOUS_PERIOD, TIME_WINDOWS, BusinessRule

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class MetricObservation:
    rule_id: str
    value: float
    observed_at: datetime


class MetricHistoryRepository(Protocol):
    """
    Time series of metric values computed by earlier evaluation passes.
    """

    def get_observations(self, rule_id: str, since: datetime | None = None) -> list[MetricObservation]:
        """
        Observations for ``rule_id`` at or after ``since``, oldest first.
        """
        ...

    def record(self, observation: MetricObservation) -> None:
        ...


# No baseline window reaches further back than this.
HISTORY_RETENTION: timedelta = max(TIME_WINDOWS.values())


class InMemoryMetricHistory:
    """
    Process-local metric history.

    Observations older than ``retention`` relative to the newest one for the
    same rule are dropped on every record.
    """

    def __init__(self, retention: timedelta = HISTORY_RETENTION) -> None:
        self._observations: dict[str, list[MetricObservation]] = {}
        self._retention = retention
        self._lock = threading.Lock()

    def get_observations(self, rule_id: str, since: datetime | None = None) -> list[MetricObservation]:
        with self._lock:
            observations = list(self._observations.get(rule_id, ()))
        if since is not None:
            observations = [item for item in observations if item.observed_at >= since]
        return sorted(observations, key=lambda item: item.observed_at)

    def record(self, observation: MetricObservation) -> None:
        with self._lock:
            series = self._observations.setdefault(observation.rule_id, [])
            series.append(observation)
            cutoff = max(item.observed_at for item in series) - self._retention
            series[:] = [item for item in series if item.observed_at >= cutoff]


class BaselineProvider:
    """
    Resolves the baseline value of a percentage rule.

    Returns None when there is nothing to compare against; the evaluator
    treats that as "not violated".
    """

    def __init__(
        self,
        history: MetricHistoryRepository | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._history = history
        self._clock = clock

    def baseline_for(self, rule: BusinessRule) -> float | None:
        strategy = rule.baseline_calculation
        if strategy == FIXED_VALUE:
            return rule.baseline_value
        if strategy not in (PREVIOUS_PERIOD, MOVING_AVERAGE):
            raise RuleConfigurationError(
                f"Unsupported baseline calculation '{strategy}'.",
                rule_id=rule.id,
            )

        window = rule.window
        if window is None:
            raise RuleConfigurationError(
                f"Unsupported time window '{rule.time_window}'.",
                rule_id=rule.id,
            )
        if self._history is None:
            return None

        since = self._clock() - window
        values = [item.value for item in self._history.get_observations(rule.id, since)]
        if not values:
            logger.debug("No metric history in window rule_id=%s window=%s", rule.id, rule.time_window)
            return None

        if strategy == PREVIOUS_PERIOD:
            return values[-1]
        return sum(values) / len(values)
