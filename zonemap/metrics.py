"""
Engine Metrics Module.

Counts what the map engine does so slow reconciliations and echo storms
show up in the logs and on /api/metrics:
- zone_reconcile timing per pass, zone_store_save/load timings
- overlay writes, commits, suppressed echoes, discarded stale commits
- live overlay gauge

Usage:
    from zonemap.metrics import metrics, timed

    with metrics.timer("zone_reconcile"):
        reconciler.reconcile(zones, widget, selected_id)

    metrics.increment("zone_commits")
    summary = metrics.get_summary()
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from functools import wraps
from threading import Lock
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class TimingStats:
    """Durations of one timed operation."""
    name: str
    count: int = 0
    total_ms: float = 0.0
    max_ms: float = 0.0
    last_ms: float = 0.0

    @property
    def avg_ms(self) -> float:
        return self.total_ms / self.count if self.count > 0 else 0.0

    def record(self, duration_ms: float):
        self.count += 1
        self.total_ms += duration_ms
        self.max_ms = max(self.max_ms, duration_ms)
        self.last_ms = duration_ms

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "avg_ms": round(self.avg_ms, 3),
            "max_ms": round(self.max_ms, 3),
            "last_ms": round(self.last_ms, 3),
        }


class PerformanceMetrics:
    """
    Thread-safe metrics collector for the zone map engine.

    Reconciliation runs on the UI event loop, so with logging enabled
    anything slower than SLOW_THRESHOLD_MS (one frame) is logged as a warning.
    """

    SLOW_THRESHOLD_MS = 16.0

    def __init__(self, enable_logging: bool = True):
        self._timings: Dict[str, TimingStats] = {}
        self._counters: Dict[str, int] = {}
        self._gauges: Dict[str, float] = {}
        self._lock = Lock()
        self._start_time = datetime.now()
        self._enable_logging = enable_logging

    @contextmanager
    def timer(self, name: str):
        """Time the enclosed block under `name`, even if it raises."""
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            self._record_timing(name, elapsed_ms)

    def _record_timing(self, name: str, elapsed_ms: float):
        with self._lock:
            if name not in self._timings:
                self._timings[name] = TimingStats(name=name)
            self._timings[name].record(elapsed_ms)

        if self._enable_logging and elapsed_ms > self.SLOW_THRESHOLD_MS:
            logger.warning(f"Slow operation: {name} took {elapsed_ms:.1f}ms")

    def increment(self, name: str, amount: int = 1):
        with self._lock:
            self._counters[name] = self._counters.get(name, 0) + amount

    def set_gauge(self, name: str, value: float):
        with self._lock:
            self._gauges[name] = value

    def get_counter(self, name: str) -> int:
        with self._lock:
            return self._counters.get(name, 0)

    def get_gauge(self, name: str) -> float:
        with self._lock:
            return self._gauges.get(name, 0.0)

    def get_timing(self, name: str) -> Optional[TimingStats]:
        with self._lock:
            return self._timings.get(name)

    def get_summary(self) -> dict:
        """Timings, counters and gauges, as served on /api/metrics."""
        with self._lock:
            uptime = (datetime.now() - self._start_time).total_seconds()
            return {
                "uptime_seconds": round(uptime, 1),
                "timings": {name: stats.to_dict() for name, stats in self._timings.items()},
                "counters": self._counters.copy(),
                "gauges": dict(self._gauges),
            }

    def reset(self):
        with self._lock:
            self._timings.clear()
            self._counters.clear()
            self._gauges.clear()
            self._start_time = datetime.now()


# Global metrics instance
metrics = PerformanceMetrics()


def timed(name: str):
    """Decorator that times every call of the wrapped function."""
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            with metrics.timer(name):
                return func(*args, **kwargs)
        return wrapper
    return decorator


def get_metrics() -> PerformanceMetrics:
    return metrics
