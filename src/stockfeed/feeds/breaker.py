"""Consecutive-failure circuit breaker for remote feeds."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

logger = logging.getLogger(__name__)


class CircuitBreaker:
    """Opens after ``failure_threshold`` consecutive failures.

    While open, the owning feed reports itself unavailable. The breaker
    closes again ``cooldown_seconds`` after it opened, or on the next success.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 3,
        cooldown_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._name = name
        self._threshold = failure_threshold
        self._cooldown = cooldown_seconds
        self._clock = clock
        self._failures = 0
        self._open_until = 0.0

    @property
    def is_open(self) -> bool:
        return self._clock() < self._open_until

    @property
    def retry_at(self) -> float | None:
        return self._open_until if self.is_open else None

    @property
    def failures(self) -> int:
        return self._failures

    def record_success(self) -> None:
        self._failures = 0
        self._open_until = 0.0

    def record_failure(self) -> None:
        self._failures += 1
        if self._failures >= self._threshold:
            self._open_until = self._clock() + self._cooldown
            self._failures = 0
            logger.warning(
                "%s feed disabled for %.0fs after repeated failures",
                self._name,
                self._cooldown,
            )
