"""
Unit tests for the engine metrics module.

Tests timing, counters, gauges and slow-operation warnings.
"""

import logging
import threading
import time

import pytest

from zonemap.metrics import (
    PerformanceMetrics,
    TimingStats,
    metrics,
    timed,
    get_metrics,
)


class TestTimingStats:
    """Unit tests for TimingStats class."""

    def test_initial_values(self):
        """Test initial stats values."""
        stats = TimingStats(name="zone_reconcile")

        assert stats.name == "zone_reconcile"
        assert stats.count == 0
        assert stats.total_ms == 0.0
        assert stats.max_ms == 0.0
        assert stats.avg_ms == 0.0

    def test_record_multiple(self):
        """Test recording multiple timings."""
        stats = TimingStats(name="zone_reconcile")
        stats.record(5.0)
        stats.record(15.0)
        stats.record(10.0)

        assert stats.count == 3
        assert stats.total_ms == 30.0
        assert stats.max_ms == 15.0
        assert stats.last_ms == 10.0
        assert stats.avg_ms == 10.0

    def test_to_dict(self):
        stats = TimingStats(name="zone_store_save")
        stats.record(2.0)
        assert stats.to_dict() == {"count": 1, "avg_ms": 2.0, "max_ms": 2.0, "last_ms": 2.0}


class TestPerformanceMetrics:
    """Unit tests for PerformanceMetrics class."""

    @pytest.fixture
    def metrics_instance(self):
        """Create a fresh metrics instance for testing."""
        return PerformanceMetrics(enable_logging=False)

    def test_timer_context_manager(self, metrics_instance):
        """Test timer context manager."""
        with metrics_instance.timer("zone_reconcile"):
            time.sleep(0.01)

        timing = metrics_instance.get_timing("zone_reconcile")
        assert timing is not None
        assert timing.count == 1
        assert timing.avg_ms >= 10

    def test_timer_records_on_exception(self, metrics_instance):
        with pytest.raises(RuntimeError):
            with metrics_instance.timer("zone_reconcile"):
                raise RuntimeError("widget gone")

        assert metrics_instance.get_timing("zone_reconcile").count == 1

    def test_counters(self, metrics_instance):
        metrics_instance.increment("overlay_writes")
        metrics_instance.increment("overlay_writes", amount=4)

        assert metrics_instance.get_counter("overlay_writes") == 5
        assert metrics_instance.get_counter("nonexistent") == 0

    def test_gauges(self, metrics_instance):
        metrics_instance.set_gauge("overlays_live", 3)
        metrics_instance.set_gauge("overlays_live", 2)

        assert metrics_instance.get_gauge("overlays_live") == 2
        assert metrics_instance.get_gauge("nonexistent") == 0.0

    def test_get_summary(self, metrics_instance):
        metrics_instance.increment("zone_commits")
        metrics_instance.set_gauge("overlays_live", 2)
        with metrics_instance.timer("zone_reconcile"):
            pass

        summary = metrics_instance.get_summary()

        assert summary["counters"] == {"zone_commits": 1}
        assert summary["gauges"] == {"overlays_live": 2}
        assert "zone_reconcile" in summary["timings"]
        assert "uptime_seconds" in summary

    def test_slow_operation_warning(self, caplog):
        m = PerformanceMetrics(enable_logging=True)
        with caplog.at_level(logging.WARNING, logger="zonemap.metrics"):
            with m.timer("zone_reconcile"):
                time.sleep(0.03)

        assert "Slow operation: zone_reconcile" in caplog.text

    def test_no_warning_when_logging_disabled(self, metrics_instance, caplog):
        with caplog.at_level(logging.WARNING, logger="zonemap.metrics"):
            with metrics_instance.timer("zone_reconcile"):
                time.sleep(0.03)

        assert caplog.text == ""

    def test_reset(self, metrics_instance):
        metrics_instance.increment("zone_commits")
        metrics_instance.set_gauge("overlays_live", 1)
        with metrics_instance.timer("zone_reconcile"):
            pass

        metrics_instance.reset()
        summary = metrics_instance.get_summary()
        assert summary["counters"] == {}
        assert summary["gauges"] == {}
        assert summary["timings"] == {}


class TestTimedDecorator:
    """Test the @timed decorator."""

    def test_timed_decorator(self):
        metrics.reset()

        @timed("decorated_function")
        def sample_function():
            return {"key": "value"}

        for _ in range(3):
            assert sample_function() == {"key": "value"}

        assert metrics.get_timing("decorated_function").count == 3

    def test_get_metrics_returns_global_instance(self):
        assert get_metrics() is metrics


class TestThreadSafety:
    """Counters are shared with HTTP handler threads."""

    def test_concurrent_increments(self):
        m = PerformanceMetrics(enable_logging=False)

        def increment_counter():
            for _ in range(100):
                m.increment("zone_commits")

        threads = [threading.Thread(target=increment_counter) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert m.get_counter("zone_commits") == 400
