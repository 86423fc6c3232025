"""In-memory metrics for messenger counters and handler latencies."""

import math
import time
from collections import Counter, deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from ..ports.metrics import MetricsPort

SAMPLE_WINDOW = 1024


@dataclass
class MetricsSummary:
    """Running statistics for one recorded metric.

    Count, total, min and max cover every sample; percentiles are taken
    over the most recent ``window`` samples only, so a long-running
    dispatcher does not grow without bound.
    """

    window: int = SAMPLE_WINDOW
    count: int = 0
    total: float = 0.0
    min: float = math.inf
    max: float = -math.inf
    samples: deque = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.samples = deque(maxlen=self.window)

    def add(self, value: float) -> None:
        self.count += 1
        self.total += value
        self.min = min(self.min, value)
        self.max = max(self.max, value)
        self.samples.append(value)

    @property
    def average(self) -> float:
        return self.total / self.count if self.count else 0.0

    def percentile(self, p: float) -> float:
        """Nearest-rank percentile (0-100) over the sample window."""
        if not self.samples:
            return 0.0
        ordered = sorted(self.samples)
        rank = max(1, math.ceil(p / 100 * len(ordered)))
        return ordered[rank - 1]

    def to_dict(self) -> dict[str, float]:
        empty = self.count == 0
        return {
            "count": self.count,
            "average": round(self.average, 2),
            "min": 0 if empty else round(self.min, 2),
            "max": 0 if empty else round(self.max, 2),
            "p50": round(self.percentile(50), 2),
            "p99": round(self.percentile(99), 2),
        }


class InMemoryMetrics(MetricsPort):
    """Process-local MetricsPort implementation.

    Used by default when no metrics backend is injected; tests read it
    back through :meth:`counter` and :meth:`get_all`.
    """

    def __init__(self, window: int = SAMPLE_WINDOW):
        self._window = window
        self._counters: Counter[str] = Counter()
        self._gauges: dict[str, float] = {}
        self._summaries: dict[str, MetricsSummary] = {}
        self._started = time.monotonic()

    def increment(self, name: str, value: int = 1) -> None:
        self._counters[name] += value

    def gauge(self, name: str, value: float) -> None:
        self._gauges[name] = value

    def record(self, name: str, value: float) -> None:
        summary = self._summaries.get(name)
        if summary is None:
            summary = self._summaries[name] = MetricsSummary(window=self._window)
        summary.add(value)

    @contextmanager
    def timer(self, name: str):
        """Record the duration of the with-block in milliseconds, even if it raises."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.record(name, (time.perf_counter() - start) * 1000)

    def counter(self, name: str) -> int:
        """Current value of a counter, 0 if never incremented."""
        return self._counters[name]

    def get_all(self) -> dict[str, Any]:
        return {
            "uptime_seconds": round(time.monotonic() - self._started, 2),
            "counters": dict(self._counters),
            "gauges": dict(self._gauges),
            "summaries": {name: s.to_dict() for name, s in self._summaries.items()},
        }

    def reset(self) -> None:
        """Clear all counters, gauges and summaries; uptime keeps running."""
        self._counters.clear()
        self._gauges.clear()
        self._summaries.clear()
