"""
Performance Monitor

Keeps the most recent operation durations in a bounded ring buffer and
summarizes them. Slow operations are logged as warnings; the monitor never
affects control flow.
"""

import logging
import math
import time
from collections import deque
from contextlib import contextmanager
from typing import Callable, Deque, Iterator, List, Optional

from warranty_tracker.config import MonitorConfig
from warranty_tracker.models.state import PerformanceSample, PerformanceStats


logger = logging.getLogger(__name__)


class PerformanceMonitor:
    """Ring buffer of recent operation timings."""

    def __init__(
        self,
        config: Optional[MonitorConfig] = None,
        cache_size: Callable[[], int] = lambda: 0,
        wall_clock: Callable[[], float] = time.time
    ):
        self.config = config or MonitorConfig()
        self._cache_size = cache_size
        self._wall_clock = wall_clock
        self._samples: Deque[PerformanceSample] = deque(maxlen=self.config.capacity)

    def __len__(self) -> int:
        return len(self._samples)

    @property
    def samples(self) -> List[PerformanceSample]:
        return list(self._samples)

    def record(self, operation: str, duration_ms: float) -> None:
        self._samples.append(PerformanceSample(operation, duration_ms, self._wall_clock()))
        if duration_ms > self.config.slow_operation_ms:
            logger.warning(f"Performance warning: {operation} took {duration_ms:.1f}ms")

    @contextmanager
    def timed(self, operation: str) -> Iterator[None]:
        """Record the duration of the wrapped block, even if it raises."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.record(operation, (time.perf_counter() - start) * 1000.0)

    def stats(self) -> Optional[PerformanceStats]:
        """Aggregate over the buffer, or None when it is empty."""
        if not self._samples:
            return None
        durations = [s.duration_ms for s in self._samples]
        return PerformanceStats(
            average=math.floor(sum(durations) / len(durations) + 0.5),
            max=max(durations),
            min=min(durations),
            sample_count=len(durations),
            cache_size=self._cache_size()
        )

    def clear(self) -> None:
        self._samples.clear()
