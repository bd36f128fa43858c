"""
Lightweight in-memory metrics for the pipeline.

Counts fetch attempts, blocked responses and completion calls, and
records completion latency. No external exporter is involved.
"""

import threading
import time
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import ClassVar, Iterator


@dataclass
class TimingStats:
    """Running latency statistics for one named timer."""

    count: int = 0
    total_ms: float = 0.0
    min_ms: float = float("inf")
    max_ms: float = 0.0

    @property
    def avg_ms(self) -> float:
        return self.total_ms / self.count if self.count else 0.0

    def record(self, duration_ms: float) -> None:
        self.count += 1
        self.total_ms += duration_ms
        self.min_ms = min(self.min_ms, duration_ms)
        self.max_ms = max(self.max_ms, duration_ms)

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "avg_ms": round(self.avg_ms, 2),
            "min_ms": round(self.min_ms, 2) if self.count else 0.0,
            "max_ms": round(self.max_ms, 2),
        }


@dataclass
class Metrics:
    """
    Thread-safe counters and timers shared across the process.

    Example:
        >>> Metrics.get().increment("fetch_attempts")
        >>> with Metrics.get().timer("completion_latency_ms"):
        ...     await client.complete(system, prompt)
    """

    _instance: ClassVar["Metrics | None"] = None

    _counters: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    _timings: dict[str, TimingStats] = field(
        default_factory=lambda: defaultdict(TimingStats))
    _lock: threading.Lock = field(default_factory=threading.Lock)

    @classmethod
    def get(cls) -> "Metrics":
        """Return the global instance, creating it on first use."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Clear all counters and timers."""
        if cls._instance is not None:
            with cls._instance._lock:
                cls._instance._counters.clear()
                cls._instance._timings.clear()

    def increment(self, name: str, value: int = 1) -> int:
        with self._lock:
            self._counters[name] += value
            return self._counters[name]

    def get_counter(self, name: str) -> int:
        with self._lock:
            return self._counters.get(name, 0)

    def observe(self, name: str, duration_ms: float) -> None:
        with self._lock:
            self._timings[name].record(duration_ms)

    @contextmanager
    def timer(self, name: str) -> Iterator[None]:
        """Time the enclosed block into the named timer."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.observe(name, (time.perf_counter() - start) * 1000)

    def snapshot(self) -> dict:
        """Copy of all counters and timing summaries."""
        with self._lock:
            return {
                "counters": dict(self._counters),
                "timings": {
                    name: stats.to_dict()
                    for name, stats in self._timings.items()
                },
            }


def increment_fetch_attempts(method: str) -> None:
    """Count one acquisition attempt, overall and per method."""
    metrics = Metrics.get()
    metrics.increment("fetch_attempts")
    metrics.increment(f"fetch_attempts.{method}")


def increment_blocked(blocker_type: str) -> None:
    """Count a response classified as blocked."""
    metrics = Metrics.get()
    metrics.increment("blocked_responses")
    metrics.increment(f"blocked_responses.{blocker_type}")


@contextmanager
def time_completion_call() -> Iterator[None]:
    """Count a completion call and record its latency."""
    Metrics.get().increment("completion_calls")
    with Metrics.get().timer("completion_latency_ms"):
        yield
