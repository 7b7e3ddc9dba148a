"""
Recognition session: per-frame orchestration of the gesture pipeline.

Architecture:
    HandPoses (0-2 per frame) -> FeatureNormalizer -> static classifier
    -> SmoothedClassifier -> stable sign (callback on label change)

    HandPoses -> FeatureNormalizer -> SequenceRecorder -> DTW classifier
    -> accepted dynamic gesture

Single-threaded and frame-synchronous. Classifiers are replaced by one
reference assignment after the replacement has been fully built and
checked, so a frame never sees a half-loaded model.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from signspeak.errors import (
    ImportTypeMismatchError,
    IncompatibleModelError,
    InvalidInputError,
    InvalidModelRecordError,
    SignSpeakError,
)
from signspeak.features.normalizer import FeatureConfig, FeatureNormalizer
from signspeak.persistence.codec import (
    DTW_SEQUENCE_TYPE,
    check_compatible,
    load_record_or_none,
)
from signspeak.recognition.classifier import ClassificationResult
from signspeak.recognition.factory import classifier_from_record
from signspeak.recognition.sequence_classifier import (
    DTWSequenceClassifier,
    SequenceClassificationResult,
    SequenceConfig,
)
from signspeak.recognition.smoothing import SmoothedClassifier, SmoothingConfig
from signspeak.utils.config import Config
from signspeak.utils.logger import GestureLogger
from signspeak.utils.performance import PerformanceMonitor

logger = logging.getLogger(__name__)

SignCallback = Callable[[str, float], None]


@dataclass
class SessionConfig:
    """Recognition session settings."""
    frame_budget_ms: float = 33.0
    performance_window: int = 30
    classifier_type: str = "knn"

    @classmethod
    def from_dict(cls, config: dict) -> "SessionConfig":
        """Create config from dictionary."""
        return cls(
            frame_budget_ms=config.get("frame_budget_ms", 33.0),
            performance_window=config.get("performance_window", 30),
            classifier_type=config.get("classifier_type", "knn"),
        )


class FrameResult:
    """Outcome of one processed frame."""

    __slots__ = (
        "frame_id", "timestamp", "hands_detected", "hand_count",
        "raw", "stable", "latency_ms", "error",
    )

    def __init__(self, frame_id: int = 0):
        self.frame_id = frame_id
        self.timestamp = time.time()
        self.hands_detected = False
        self.hand_count = 0
        self.raw: Optional[ClassificationResult] = None
        self.stable: Optional[ClassificationResult] = None
        self.latency_ms = 0.0
        self.error: Optional[str] = None

    @property
    def label(self) -> Optional[str]:
        """Stable label of this frame, if any."""
        return self.stable.label if self.stable is not None else None

    def __repr__(self):
        return "FrameResult(id=%d, hands=%d, stable=%r, latency=%.1fms)" % (
            self.frame_id, self.hand_count, self.label, self.latency_ms,
        )


class SequenceRecorder:
    """Records a dynamic gesture and classifies it when recording stops.

    Only frames with at least one hand are recorded. Recording stops by
    itself after ``max_frames`` frames.

    Example:
        >>> recorder = SequenceRecorder(dtw_classifier, normalizer)
        >>> recorder.start()
        >>> for poses in frames:
        ...     recorder.add_frame(poses)
        >>> result = recorder.stop()
    """

    def __init__(self, classifier: DTWSequenceClassifier = None,
                 normalizer: FeatureNormalizer = None,
                 config: SequenceConfig = None,
                 on_gesture: Optional[SignCallback] = None,
                 clock: Callable[[], float] = time.time):
        self.classifier = classifier
        self.normalizer = normalizer or FeatureNormalizer()
        self.config = config or SequenceConfig()
        self.on_gesture = on_gesture
        self._clock = clock
        self._frames: List = []
        self._recording = False
        self._started_at = 0.0
        self.last_result: Optional[SequenceClassificationResult] = None
        self.last_duration_ms = 0.0

    @property
    def is_recording(self) -> bool:
        return self._recording

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    def start(self) -> None:
        self._frames = []
        self._recording = True
        self._started_at = self._clock()
        self.last_result = None
        logger.debug("Sequence recording started")

    def add_frame(self, poses) -> bool:
        """Record one frame of poses; returns True if it was recorded."""
        if not self._recording or not poses:
            return False
        return self.add_features(self.normalizer.extract_frame(poses))

    def add_features(self, features) -> bool:
        """Record one already-extracted feature vector."""
        if not self._recording:
            return False
        self._frames.append(features)
        if len(self._frames) >= self.config.max_frames:
            logger.debug("Sequence reached %d frames, stopping", len(self._frames))
            self.stop()
        return True

    def stop(self) -> Optional[SequenceClassificationResult]:
        """Stop recording and classify.

        Returns:
            The prediction if its confidence reaches ``min_confidence``,
            otherwise None
        """
        if not self._recording:
            return None
        self._recording = False
        self.last_duration_ms = (self._clock() - self._started_at) * 1000

        frames, self._frames = self._frames, []
        if not frames:
            logger.warning("No frames recorded")
            return None
        if self.classifier is None:
            logger.warning("No sequence classifier loaded")
            return None

        result = self.classifier.predict(frames)
        if result is None or result.confidence < self.config.min_confidence:
            logger.info("Dynamic gesture below confidence threshold, ignoring")
            return None

        logger.info("Dynamic gesture: %s (conf: %.2f)", result.label, result.confidence)
        self.last_result = result
        if self.on_gesture is not None:
            self.on_gesture(result.label, result.confidence)
        return result


class RecognitionSession:
    """Wires normalizer, classifier, smoother and recorder for a live stream.

    Example:
        >>> session = RecognitionSession(on_sign=lambda label, conf: print(label))
        >>> session.load_model(store.load_model())
        >>> for poses in stream:
        ...     frame = session.process_frame(poses)
    """

    def __init__(self, normalizer: FeatureNormalizer = None,
                 classifier=None,
                 smoothing: SmoothingConfig = None,
                 config: SessionConfig = None,
                 sequence_classifier: DTWSequenceClassifier = None,
                 sequence_config: SequenceConfig = None,
                 on_sign: Optional[SignCallback] = None,
                 gesture_logger: GestureLogger = None):
        self.config = config or SessionConfig()
        self.normalizer = normalizer or FeatureNormalizer()
        self.smoother = SmoothedClassifier(None, smoothing)
        self.on_sign = on_sign
        self.gesture_logger = gesture_logger or GestureLogger()
        self.monitor = PerformanceMonitor(
            window_size=self.config.performance_window,
            frame_budget_ms=self.config.frame_budget_ms,
        )
        self.recorder = SequenceRecorder(
            sequence_classifier, self.normalizer, sequence_config,
            on_gesture=self._on_dynamic_gesture,
        )

        self._frame_count = 0
        self._last_label: Optional[str] = None

        if classifier is not None:
            self.swap_classifier(classifier)

    @classmethod
    def from_config(cls, config: Config, classifier=None,
                    sequence_classifier: DTWSequenceClassifier = None,
                    on_sign: Optional[SignCallback] = None) -> "RecognitionSession":
        """Build a session from the features, smoothing, sequence and
        session sections of a loaded Config."""
        return cls(
            normalizer=FeatureNormalizer(FeatureConfig.from_dict(config.features)),
            classifier=classifier,
            smoothing=SmoothingConfig.from_dict(config.smoothing),
            config=SessionConfig.from_dict(config.session),
            sequence_classifier=sequence_classifier,
            sequence_config=SequenceConfig.from_dict(config.sequence),
            on_sign=on_sign,
        )

    @property
    def classifier(self):
        return self.smoother.classifier

    @property
    def is_model_loaded(self) -> bool:
        return self.smoother.classifier is not None

    @property
    def current_label(self) -> Optional[str]:
        return self._last_label

    def swap_classifier(self, classifier) -> None:
        """Replace the static classifier.

        Raises:
            InvalidInputError: if the classifier is untrained
            IncompatibleModelError: if its feature dimension differs from
                the normalizer's
        """
        if classifier is None or not classifier.is_trained:
            raise InvalidInputError("Cannot swap in an untrained classifier")
        expected = self.normalizer.feature_dim
        if classifier.feature_dim != expected:
            raise IncompatibleModelError(expected, classifier.feature_dim)

        self.smoother.set_classifier(classifier)
        self._last_label = None
        logger.info("Classifier swapped in: %r", classifier)

    def load_model(self, blob) -> bool:
        """Load a static model from a record or stored blob.

        Returns:
            False when the blob is absent or invalid (no model is kept)

        Raises:
            IncompatibleModelError: on a feature dimension mismatch
            ImportTypeMismatchError: for a sequence model record
        """
        record = load_record_or_none(blob)
        if record is None:
            logger.warning("No trained model found")
            self._clear_model()
            return False
        if record.type == DTW_SEQUENCE_TYPE:
            raise ImportTypeMismatchError("knn|logistic", record.type)

        check_compatible(record, self.normalizer.feature_dim)
        try:
            classifier = classifier_from_record(record)
        except InvalidModelRecordError as e:
            logger.warning("Ignoring stored model: %s", e)
            self._clear_model()
            return False
        self.swap_classifier(classifier)
        return True

    def load_sequence_model(self, blob) -> bool:
        """Load a dtw-sequence model; False when absent or invalid."""
        record = load_record_or_none(blob)
        if record is None:
            logger.warning("No trained sequence model found")
            self.recorder.classifier = None
            return False
        check_compatible(record, self.normalizer.feature_dim)

        classifier = DTWSequenceClassifier()
        try:
            classifier.import_model(record)
        except InvalidModelRecordError as e:
            logger.warning("Ignoring stored sequence model: %s", e)
            self.recorder.classifier = None
            return False
        self.recorder.classifier = classifier
        return True

    def _clear_model(self) -> None:
        self.smoother.set_classifier(None)
        self._last_label = None

    def process_frame(self, poses) -> FrameResult:
        """Run one frame through the pipeline.

        A frame with no hands produces no prediction. Errors raised while
        processing a frame are logged and the frame is skipped.
        """
        self._frame_count += 1
        result = FrameResult(self._frame_count)
        self.monitor.frame_start()

        try:
            poses = list(poses or [])
            result.hand_count = len(poses)
            result.hands_detected = bool(poses)

            if poses and (self.is_model_loaded or self.recorder.is_recording):
                with self.monitor.measure("features"):
                    features = self.normalizer.extract_frame(poses)

                if self.recorder.is_recording:
                    self.recorder.add_features(features)

                if self.is_model_loaded:
                    with self.monitor.measure("classify"):
                        result.raw = self.smoother.predict_raw(features)
                    with self.monitor.measure("smooth"):
                        result.stable = self.smoother.update(result.raw)
        except SignSpeakError as e:
            logger.warning("Frame %d skipped: %s", result.frame_id, e)
            result.hands_detected = False
            result.hand_count = 0
            result.raw = None
            result.stable = None
            result.error = str(e)

        result.latency_ms = self.monitor.frame_complete()

        if result.stable is not None and result.stable.label != self._last_label:
            self._last_label = result.stable.label
            self.gesture_logger.log_sign(
                result.stable.label, result.stable.confidence, result.latency_ms,
            )
            if self.on_sign is not None:
                self.on_sign(result.stable.label, result.stable.confidence)

        return result

    def start_recording(self) -> bool:
        if self.recorder.classifier is None:
            logger.warning("Sequence model not loaded yet")
            return False
        self.recorder.start()
        return True

    def stop_recording(self) -> Optional[SequenceClassificationResult]:
        return self.recorder.stop()

    def _on_dynamic_gesture(self, label: str, confidence: float) -> None:
        self.gesture_logger.log_sign(label, confidence, kind="dynamic")
        if self.on_sign is not None:
            self.on_sign(label, confidence)

    def reset(self) -> None:
        """Clear smoothing state and the last emitted label."""
        self.smoother.reset()
        self._last_label = None
        self.monitor.reset()
