"""Configuration, logging and timing helpers."""
from .config import Config
from .logger import GestureLogger, log_timing, setup_logging
from .performance import PerformanceMetrics, PerformanceMonitor, Timer

__all__ = [
    "Config",
    "GestureLogger",
    "PerformanceMetrics",
    "PerformanceMonitor",
    "Timer",
    "log_timing",
    "setup_logging",
]
