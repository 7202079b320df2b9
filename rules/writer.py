"""
rules/writer.py

Async violation persistence with a per-attempt timeout and bounded retries.

Delivery is at-least-once: an attempt that times out may still have landed,
so a retry can store the same violations twice.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections import deque
from typing import Protocol, Sequence

from rules.errors import ViolationPersistenceError
from rules.models import Violation

logger = logging.getLogger(__name__)


class ViolationStore(Protocol):
    def insert(self, violations: Sequence[Violation]) -> None:
        """
        Blocking batch insert.
        """
        ...


# Oldest violations are evicted once the store holds this many.
MAX_STORED_VIOLATIONS: int = 10_000


class InMemoryViolationStore:
    def __init__(self, max_violations: int = MAX_STORED_VIOLATIONS) -> None:
        self._violations: deque[Violation] = deque(maxlen=max(1, max_violations))
        self._lock = threading.Lock()

    def insert(self, violations: Sequence[Violation]) -> None:
        with self._lock:
            self._violations.extend(violations)

    def list_violations(self, agent_id: str | None = None, limit: int | None = None) -> list[Violation]:
        """
        Stored violations, oldest first. ``limit`` keeps only the newest ones.
        """

        with self._lock:
            items = list(self._violations)
        if agent_id is not None:
            items = [item for item in items if item.agent_id == agent_id]
        if limit is not None:
            items = items[-limit:] if limit > 0 else []
        return items


class ViolationWriter:
    """
    Runs the blocking store insert off the event loop.
    """

    def __init__(
        self,
        store: ViolationStore,
        *,
        timeout_seconds: float = 5.0,
        max_attempts: int = 3,
        backoff_seconds: float = 0.5,
    ) -> None:
        self._store = store
        self._timeout_seconds = timeout_seconds
        self._max_attempts = max(1, max_attempts)
        self._backoff_seconds = max(0.0, backoff_seconds)

    async def write(self, violations: Sequence[Violation]) -> int:
        """
        Store ``violations`` as one batch and return how many were written.

        Raises ViolationPersistenceError when every attempt fails or times
        out.
        """

        batch = list(violations)
        if not batch:
            return 0

        last_error: BaseException | None = None
        for attempt in range(1, self._max_attempts + 1):
            try:
                await asyncio.wait_for(
                    asyncio.to_thread(self._store.insert, batch),
                    timeout=self._timeout_seconds,
                )
                logger.info("Violations written count=%s attempt=%s", len(batch), attempt)
                return len(batch)
            except asyncio.TimeoutError as exc:
                last_error = exc
                logger.warning(
                    "Violation write timed out attempt=%s/%s timeout_seconds=%.2f",
                    attempt,
                    self._max_attempts,
                    self._timeout_seconds,
                )
            except Exception as exc:  # noqa: BLE001
                last_error = exc
                logger.warning(
                    "Violation write failed attempt=%s/%s error=%s",
                    attempt,
                    self._max_attempts,
                    exc,
                )

            if attempt < self._max_attempts and self._backoff_seconds > 0:
                await asyncio.sleep(self._backoff_seconds * (2 ** (attempt - 1)))

        logger.error("Violation write exhausted attempts count=%s", len(batch))
        raise ViolationPersistenceError(
            f"Failed to create violation records after {self._max_attempts} attempts.",
            attempts=self._max_attempts,
            violation_count=len(batch),
        ) from last_error
