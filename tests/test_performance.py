"""
Tests for Performance Module
=============================
"""

import time

import pytest

from signspeak.utils.performance import PerformanceMetrics, PerformanceMonitor, Timer


class TestTimer:
    """Test suite for Timer class."""

    def test_basic_timing(self):
        """Test basic timer functionality."""
        timer = Timer("test")
        timer.start()
        time.sleep(0.05)
        elapsed = timer.stop()

        assert elapsed >= 0.04
        assert elapsed < 0.5

    def test_context_manager(self):
        """Test timer as context manager."""
        with Timer("test") as t:
            time.sleep(0.02)

        assert t.elapsed >= 0.015
        assert t.elapsed_ms >= 15

    def test_elapsed_without_start(self):
        assert Timer().elapsed == 0.0

    def test_elapsed_without_stop(self):
        """Test getting elapsed time while running."""
        timer = Timer("test")
        timer.start()
        time.sleep(0.02)

        # Should return running time
        assert timer.elapsed >= 0.015

    def test_decorate(self):
        @Timer.decorate("double")
        def double(x):
            return 2 * x

        assert double(4) == 8
        assert double.__name__ == "double"


class TestPerformanceMonitor:
    """Test suite for PerformanceMonitor class."""

    @pytest.fixture
    def monitor(self):
        """Create performance monitor."""
        return PerformanceMonitor(window_size=5, frame_budget_ms=33.0)

    def test_empty_monitor(self, monitor):
        assert monitor.fps == 0.0
        assert monitor.frame_time_ms == 0.0
        assert monitor.stage_time_ms("features") == 0.0
        assert monitor.is_within_budget

    def test_frame_complete_without_start(self, monitor):
        assert monitor.frame_complete() == 0.0
        assert monitor.total_frames == 0

    def test_frame_time(self, monitor):
        for _ in range(3):
            monitor.frame_start()
            time.sleep(0.01)
            latency = monitor.frame_complete()
            assert latency >= 9

        assert monitor.total_frames == 3
        assert monitor.frame_time_ms >= 9
        assert 0 < monitor.fps < 110

    def test_stage_timing(self, monitor):
        """Test per-stage timing."""
        for _ in range(3):
            monitor.frame_start()

            with monitor.measure("features"):
                time.sleep(0.002)

            with monitor.measure("classify"):
                time.sleep(0.010)

            monitor.frame_complete()

        features_time = monitor.stage_time_ms("features")
        classify_time = monitor.stage_time_ms("classify")

        assert features_time >= 1.5
        assert classify_time >= 9
        assert classify_time > features_time

    def test_stage_timed_when_body_raises(self, monitor):
        with pytest.raises(ValueError):
            with monitor.measure("smooth"):
                raise ValueError("boom")
        assert monitor.stage_time_ms("smooth") >= 0.0
        assert "smooth" in monitor._stage_times

    def test_over_budget_counted(self):
        monitor = PerformanceMonitor(frame_budget_ms=5.0)
        monitor.frame_start()
        time.sleep(0.02)
        monitor.frame_complete()
        monitor.frame_start()
        monitor.frame_complete()

        assert monitor.over_budget_frames == 1
        assert monitor.total_frames == 2

    def test_within_budget(self):
        monitor = PerformanceMonitor(frame_budget_ms=1000.0)
        for _ in range(3):
            monitor.frame_start()
            monitor.frame_complete()
        assert monitor.is_within_budget
        assert monitor.over_budget_frames == 0

    def test_metrics_snapshot(self, monitor):
        """Test getting metrics snapshot."""
        monitor.frame_start()
        with monitor.measure("features"):
            time.sleep(0.005)
        monitor.frame_complete()

        metrics = monitor.get_metrics()

        assert isinstance(metrics, PerformanceMetrics)
        assert metrics.total_frames == 1
        assert metrics.feature_time_ms >= 4
        assert metrics.classify_time_ms == 0.0

    def test_report(self, monitor):
        monitor.frame_start()
        monitor.frame_complete()
        report = monitor.get_report()
        assert "Recognition Timing [OK]" in report
        assert "Frames: 1 total" in report

    def test_reset(self, monitor):
        monitor.frame_start()
        monitor.frame_complete()
        with monitor.measure("features"):
            pass
        monitor.reset()

        assert monitor.total_frames == 0
        assert monitor.stage_time_ms("features") == 0.0
        assert monitor.fps == 0.0
