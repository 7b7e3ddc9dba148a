"""
Performance Monitoring Module
==============================

Per-frame latency tracking for the recognition loop: rolling frame time,
per-stage timings (features, classify, smooth) and over-budget frame
counts.
"""

import time
import logging
import threading
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from functools import wraps
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


class Timer:
    """
    High-precision timer usable as a context manager or decorator.

    Example:
        >>> with Timer("fit") as t:
        ...     classifier.fit(X, y)
        >>> print(f"Took {t.elapsed_ms:.2f}ms")

        >>> @Timer.decorate("extract")
        ... def extract(poses):
        ...     pass
    """

    def __init__(self, name: str = ""):
        self.name = name
        self._start_time: Optional[float] = None
        self._end_time: Optional[float] = None
        self._elapsed: float = 0.0

    def start(self) -> "Timer":
        self._start_time = time.perf_counter()
        self._end_time = None
        return self

    def stop(self) -> float:
        """Stop the timer and return elapsed seconds."""
        self._end_time = time.perf_counter()
        if self._start_time is not None:
            self._elapsed = self._end_time - self._start_time
        return self._elapsed

    @property
    def elapsed(self) -> float:
        """Elapsed seconds; running time if not yet stopped."""
        if self._start_time is None:
            return 0.0
        if self._end_time is None:
            return time.perf_counter() - self._start_time
        return self._elapsed

    @property
    def elapsed_ms(self) -> float:
        return self.elapsed * 1000

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False

    @staticmethod
    def decorate(name: str = ""):
        """Decorator factory logging the wrapped call's duration at debug level."""
        def decorator(func: Callable):
            @wraps(func)
            def wrapper(*args, **kwargs):
                with Timer(name or func.__name__) as t:
                    result = func(*args, **kwargs)
                logger.debug("%s: %.2fms", t.name, t.elapsed_ms)
                return result
            return wrapper
        return decorator


@dataclass
class PerformanceMetrics:
    """Snapshot of recognition loop timings."""
    fps: float = 0.0
    frame_time_ms: float = 0.0
    feature_time_ms: float = 0.0
    classify_time_ms: float = 0.0
    smooth_time_ms: float = 0.0
    total_frames: int = 0
    over_budget_frames: int = 0


class PerformanceMonitor:
    """
    Rolling timing statistics for the frame-synchronous recognition loop.

    A frame slower than ``frame_budget_ms`` is counted and logged at
    debug level; it is never dropped.

    Example:
        >>> monitor = PerformanceMonitor(frame_budget_ms=33.0)
        >>> monitor.frame_start()
        >>> with monitor.measure("features"):
        ...     features = normalizer.extract_frame(poses)
        >>> with monitor.measure("classify"):
        ...     result = classifier.predict(features)
        >>> monitor.frame_complete()
    """

    def __init__(self, window_size: int = 30, frame_budget_ms: float = 33.0):
        """
        Args:
            window_size: number of frames in the rolling averages
            frame_budget_ms: per-frame processing budget
        """
        self.window_size = window_size
        self.frame_budget_ms = frame_budget_ms
        self._frame_times: deque = deque(maxlen=window_size)
        self._stage_times: Dict[str, deque] = {}
        self._frame_start: Optional[float] = None
        self._total_frames = 0
        self._over_budget_frames = 0
        self._lock = threading.Lock()

    def reset(self) -> None:
        with self._lock:
            self._frame_times.clear()
            self._stage_times.clear()
            self._frame_start = None
            self._total_frames = 0
            self._over_budget_frames = 0

    def frame_start(self) -> None:
        self._frame_start = time.perf_counter()

    def frame_complete(self) -> float:
        """Close the current frame; returns its duration in milliseconds."""
        if self._frame_start is None:
            return 0.0

        frame_time = time.perf_counter() - self._frame_start
        self._frame_start = None
        frame_ms = frame_time * 1000

        with self._lock:
            self._frame_times.append(frame_time)
            self._total_frames += 1
            if frame_ms > self.frame_budget_ms:
                self._over_budget_frames += 1
                logger.debug("Frame over budget: %.1fms > %.1fms", frame_ms, self.frame_budget_ms)
        return frame_ms

    @contextmanager
    def measure(self, stage: str):
        """Time one processing stage of the current frame."""
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - start
            with self._lock:
                if stage not in self._stage_times:
                    self._stage_times[stage] = deque(maxlen=self.window_size)
                self._stage_times[stage].append(elapsed)

    @property
    def fps(self) -> float:
        """Throughput implied by the rolling average frame time."""
        with self._lock:
            if not self._frame_times:
                return 0.0
            avg = sum(self._frame_times) / len(self._frame_times)
            return 1.0 / avg if avg > 0 else 0.0

    @property
    def frame_time_ms(self) -> float:
        with self._lock:
            if not self._frame_times:
                return 0.0
            return (sum(self._frame_times) / len(self._frame_times)) * 1000

    def stage_time_ms(self, stage: str) -> float:
        """Average time of one stage in milliseconds (0.0 if never measured)."""
        with self._lock:
            times = self._stage_times.get(stage)
            if not times:
                return 0.0
            return (sum(times) / len(times)) * 1000

    @property
    def total_frames(self) -> int:
        return self._total_frames

    @property
    def over_budget_frames(self) -> int:
        return self._over_budget_frames

    @property
    def is_within_budget(self) -> bool:
        return self.frame_time_ms <= self.frame_budget_ms

    def get_metrics(self) -> PerformanceMetrics:
        return PerformanceMetrics(
            fps=self.fps,
            frame_time_ms=self.frame_time_ms,
            feature_time_ms=self.stage_time_ms("features"),
            classify_time_ms=self.stage_time_ms("classify"),
            smooth_time_ms=self.stage_time_ms("smooth"),
            total_frames=self._total_frames,
            over_budget_frames=self._over_budget_frames,
        )

    def get_report(self) -> str:
        """Formatted multi-line timing report."""
        m = self.get_metrics()
        status = "OK" if self.is_within_budget else "OVER BUDGET"
        over_pct = 100 * m.over_budget_frames / max(1, m.total_frames)
        return (
            f"Recognition Timing [{status}]\n"
            f"{'=' * 40}\n"
            f"Frame time: {m.frame_time_ms:.2f}ms (budget: {self.frame_budget_ms:.1f}ms)\n"
            f"Throughput: {m.fps:.1f} frames/s\n"
            f"\nPer-Stage:\n"
            f"  Features: {m.feature_time_ms:.2f}ms\n"
            f"  Classify: {m.classify_time_ms:.2f}ms\n"
            f"  Smooth:   {m.smooth_time_ms:.2f}ms\n"
            f"\nFrames: {m.total_frames} total, "
            f"{m.over_budget_frames} over budget ({over_pct:.1f}%)\n"
        )
