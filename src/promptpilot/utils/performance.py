"""Latency instrumentation for remote operations.

Purely observational: nothing here raises into the caller or changes
its control flow.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from promptpilot.utils.clock import Clock, now_millis

logger = logging.getLogger(__name__)


@dataclass
class MeasureStats:
    """Accumulated durations for one measurement id."""

    count: int = 0
    total_ms: float = 0.0
    last_ms: float = 0.0

    @property
    def average_ms(self) -> float:
        """Calculate average duration."""
        if self.count == 0:
            return 0.0
        return self.total_ms / self.count

    def record(self, duration_ms: float) -> None:
        self.count += 1
        self.total_ms += duration_ms
        self.last_ms = duration_ms

    def to_dict(self) -> dict[str, float | int]:
        """Convert to dictionary."""
        return {
            "count": self.count,
            "total_ms": self.total_ms,
            "last_ms": self.last_ms,
            "average_ms": self.average_ms,
        }


class PerformanceMonitor:
    """Named start/end interval recorder.

    Example:
        ```python
        monitor = PerformanceMonitor()
        monitor.start_measure("fetch_latest_prompts")
        ...
        duration_ms = monitor.end_measure("fetch_latest_prompts")

        with monitor.measure("search_prompts"):
            ...
        ```
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or now_millis
        self._started: dict[str, int] = {}
        self._stats: dict[str, MeasureStats] = {}

    def start_measure(self, measure_id: str) -> None:
        """Start timing measure_id, replacing any in-flight measurement of it."""
        self._started[measure_id] = self._clock()

    def end_measure(self, measure_id: str) -> float:
        """Stop timing measure_id.

        Returns:
            Elapsed milliseconds, or 0.0 if measure_id was never started.
        """
        started = self._started.pop(measure_id, None)
        if started is None:
            logger.warning(f"No measurement found with id '{measure_id}'")
            return 0.0

        duration_ms = float(self._clock() - started)
        self._record(measure_id, duration_ms)
        return duration_ms

    @contextmanager
    def measure(self, measure_id: str) -> Iterator[None]:
        """Time the enclosed block; exceptions still propagate.

        Each block keeps its own start time, so overlapping blocks under the
        same id (concurrent coroutines) are all recorded.
        """
        started = self._clock()
        try:
            yield
        finally:
            self._record(measure_id, float(self._clock() - started))

    def _record(self, measure_id: str, duration_ms: float) -> None:
        self._stats.setdefault(measure_id, MeasureStats()).record(duration_ms)
        logger.debug(f"Measurement '{measure_id}': {duration_ms:.0f}ms")

    def clear_measures(self) -> None:
        """Drop in-flight measurements and accumulated stats."""
        self._started.clear()
        self._stats.clear()

    def get_stats(self) -> dict[str, dict[str, float | int]]:
        """Get accumulated durations per measurement id."""
        return {measure_id: stats.to_dict() for measure_id, stats in self._stats.items()}
