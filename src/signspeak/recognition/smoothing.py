"""
Temporal smoothing for per-frame classifications.
Turns a noisy stream of raw predictions into stable, debounced output
using plurality voting over a sliding window plus a hold counter.
"""

import logging
import math
from collections import Counter, deque
from dataclasses import dataclass
from typing import Optional

from signspeak.errors import InvalidInputError
from signspeak.recognition.classifier import ClassificationResult

logger = logging.getLogger(__name__)

STATE_FILLING = "filling"
STATE_UNSTABLE = "unstable"
STATE_STABLE = "stable"


@dataclass
class SmoothingConfig:
    """Smoother parameters.

    window_size: number of recent raw predictions voted over
    min_hold_frames: consecutive agreeing window decisions before emitting
    min_confidence: mean window confidence required to keep a candidate
    """
    window_size: int = 15
    min_hold_frames: int = 8
    min_confidence: float = 0.6

    def __post_init__(self):
        if self.window_size < 1:
            raise InvalidInputError("window_size must be >= 1, got %s" % self.window_size)
        if self.min_hold_frames < 1:
            raise InvalidInputError("min_hold_frames must be >= 1, got %s" % self.min_hold_frames)
        if not 0.0 <= self.min_confidence <= 1.0:
            raise InvalidInputError("min_confidence must be in [0, 1], got %s" % self.min_confidence)

    @classmethod
    def from_dict(cls, config: dict) -> "SmoothingConfig":
        """Create config from dictionary."""
        return cls(
            window_size=config.get("window_size", 15),
            min_hold_frames=config.get("min_hold_frames", 8),
            min_confidence=config.get("min_confidence", 0.6),
        )


class SmoothedClassifier:
    """Wraps a static classifier with a window/hold stability filter.

    Every raw prediction updates the window, the plurality candidate and
    the hold counter. Output stays silent (None) until the window is at
    least half full, and after that until the same plurality label has
    held for ``min_hold_frames`` consecutive predictions with a mean
    confidence of at least ``min_confidence``. A low-confidence window
    drops the candidate entirely.

    Example:
        >>> smoother = SmoothedClassifier(classifier, SmoothingConfig(window_size=10))
        >>> for features in stream:
        ...     stable = smoother.predict(features)
        ...     if stable is not None:
        ...         show_caption(stable.label)
    """

    def __init__(self, classifier=None, config: SmoothingConfig = None):
        self.classifier = classifier
        self.config = config or SmoothingConfig()

        # Recent raw predictions: (label, confidence)
        self._history = deque(maxlen=self.config.window_size)
        self._candidate = None
        self._hold_count = 0

    @property
    def _min_history(self) -> int:
        return math.ceil(self.config.window_size / 2)

    def update(self, result: ClassificationResult) -> Optional[ClassificationResult]:
        """Feed one raw prediction.

        Returns:
            ClassificationResult(label, mean window confidence, raw
            probabilities) once stable, otherwise None
        """
        self._history.append((result.label, float(result.confidence)))

        labels = [label for label, _ in self._history]
        counts = Counter(labels)
        top = max(counts.values())
        # Ties go to the earliest label in the window
        plurality = next(label for label in labels if counts[label] == top)
        mean_confidence = math.fsum(conf for _, conf in self._history) / len(self._history)

        if mean_confidence < self.config.min_confidence:
            self._candidate = None
            self._hold_count = 0
            return None

        if plurality == self._candidate:
            self._hold_count += 1
        else:
            self._candidate = plurality
            self._hold_count = 1

        if len(self._history) < self._min_history:
            return None
        if self._hold_count < self.config.min_hold_frames:
            return None

        return ClassificationResult(
            label=plurality,
            confidence=mean_confidence,
            probabilities=dict(result.probabilities),
        )

    def predict(self, x) -> Optional[ClassificationResult]:
        """Classify features and pass the result through the filter."""
        return self.update(self.predict_raw(x))

    def predict_raw(self, x) -> ClassificationResult:
        """Classify features without smoothing."""
        if self.classifier is None:
            raise InvalidInputError("No classifier attached to smoother")
        return self.classifier.predict(x)

    def set_classifier(self, classifier) -> None:
        """Replace the wrapped classifier and clear history."""
        self.classifier = classifier
        self.reset()

    def reset(self):
        """Clear filter state."""
        self._history.clear()
        self._candidate = None
        self._hold_count = 0

    def update_params(self, window_size: int = None, min_hold_frames: int = None,
                      min_confidence: float = None) -> None:
        """Replace the given parameters together, then reset."""
        config = SmoothingConfig(
            window_size=self.config.window_size if window_size is None else window_size,
            min_hold_frames=self.config.min_hold_frames if min_hold_frames is None else min_hold_frames,
            min_confidence=self.config.min_confidence if min_confidence is None else min_confidence,
        )
        self.config = config
        self._history = deque(maxlen=config.window_size)
        self.reset()
        logger.debug(
            "Smoothing params updated: window=%d hold=%d min_conf=%.2f",
            config.window_size, config.min_hold_frames, config.min_confidence,
        )

    @property
    def params(self) -> dict:
        return {
            "window_size": self.config.window_size,
            "min_hold_frames": self.config.min_hold_frames,
            "min_confidence": self.config.min_confidence,
        }

    @property
    def state(self) -> str:
        """Filter state as of the last update: filling, unstable or stable."""
        if len(self._history) < self._min_history:
            return STATE_FILLING
        if self._candidate is not None and self._hold_count >= self.config.min_hold_frames:
            return STATE_STABLE
        return STATE_UNSTABLE

    @property
    def candidate(self) -> Optional[str]:
        return self._candidate

    @property
    def hold_count(self) -> int:
        return self._hold_count

    @property
    def window_fill(self) -> float:
        """How full the window is (0.0 - 1.0)."""
        return len(self._history) / self.config.window_size
