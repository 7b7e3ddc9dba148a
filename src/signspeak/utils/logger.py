"""
Logging setup plus a recorder for recognized-sign events.
"""

import os
import logging
import logging.handlers
import time
from collections import deque
from functools import wraps


def setup_logging(level="INFO", log_file=None, max_size_mb=10, backup_count=3):
    """Configure root logging: compact console output, optional rotating file."""
    console_format = "%(asctime)s  %(levelname)-5s  %(message)s"
    file_format = "%(asctime)s [%(levelname)-7s] %(name)-32s | %(message)s"
    date_format = "%H:%M:%S"

    level_value = getattr(logging, str(level).upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level_value)
    root_logger.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(level_value)
    console.setFormatter(logging.Formatter(console_format, datefmt=date_format))
    root_logger.addHandler(console)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=int(max_size_mb * 1024 * 1024),
            backupCount=backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(file_format, datefmt=date_format))
        root_logger.addHandler(file_handler)

    return root_logger


class GestureLogger:
    """Records stable sign emissions for captions and analytics.

    Keeps the most recent ``max_history`` entries.
    """

    def __init__(self, max_history=1000):
        self.logger = logging.getLogger("signspeak.events")
        self._history = deque(maxlen=max_history)
        self._total = 0

    def log_sign(self, label, confidence, latency_ms=None, kind="static"):
        """Log a stable static sign or an accepted dynamic gesture."""
        entry = {
            "timestamp": time.time(),
            "label": label,
            "confidence": confidence,
            "kind": kind,
            "latency_ms": latency_ms,
        }
        self._history.append(entry)
        self._total += 1
        self.logger.info(
            "Sign: %-12s | Kind: %-7s | Confidence: %.2f | Latency: %s",
            label,
            kind,
            confidence,
            "%.1fms" % latency_ms if latency_ms is not None else "N/A",
        )
        return entry

    def get_history(self, last_n=None):
        """Most recent entries, oldest first."""
        history = list(self._history)
        if last_n:
            return history[-last_n:]
        return history

    def clear(self):
        self._history.clear()
        self._total = 0

    @property
    def total_signs(self):
        return self._total


def log_timing(func):
    """Decorator to log function execution time."""
    logger = logging.getLogger(func.__module__)

    @wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = (time.perf_counter() - start) * 1000
        logger.debug("%s took %.2fms", func.__name__, elapsed)
        return result

    return wrapper
