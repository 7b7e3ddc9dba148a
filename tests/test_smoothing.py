"""
Tests for Temporal Smoothing
==============================
"""

import numpy as np
import pytest

from signspeak.errors import InvalidInputError
from signspeak.recognition.classifier import ClassificationResult
from signspeak.recognition.knn import KNNClassifier
from signspeak.recognition.smoothing import SmoothedClassifier, SmoothingConfig


def raw(label, confidence, probabilities=None):
    return ClassificationResult(label, confidence, probabilities or {label: confidence})


def feed(smoother, label, confidence, count):
    return [smoother.update(raw(label, confidence)) for _ in range(count)]


@pytest.fixture
def smoother():
    return SmoothedClassifier(config=SmoothingConfig(window_size=10, min_hold_frames=5,
                                                     min_confidence=0.5))


class TestSmoothingConfig:

    def test_defaults(self):
        config = SmoothingConfig()
        assert (config.window_size, config.min_hold_frames, config.min_confidence) == (15, 8, 0.6)

    def test_from_dict(self):
        config = SmoothingConfig.from_dict({"window_size": 9})
        assert config.window_size == 9
        assert config.min_hold_frames == 8

    @pytest.mark.parametrize("kwargs", [
        {"window_size": 0},
        {"min_hold_frames": 0},
        {"min_confidence": 1.5},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(InvalidInputError):
            SmoothingConfig(**kwargs)


class TestSmoothedClassifier:
    """Test suite for window/hold stabilization."""

    def test_steady_stream_emits_from_fifth_prediction(self, smoother):
        outputs = feed(smoother, "hello", 0.9, 12)
        assert outputs[:4] == [None] * 4
        for out in outputs[4:]:
            assert out is not None
            assert out.label == "hello"
            assert out.confidence == pytest.approx(0.9)

    def test_silent_while_filling(self):
        smoother = SmoothedClassifier(config=SmoothingConfig(window_size=15, min_hold_frames=1))
        outputs = feed(smoother, "yes", 0.95, 8)
        assert outputs[:7] == [None] * 7
        assert outputs[7].label == "yes"

    def test_state_transitions(self, smoother):
        assert smoother.state == "filling"
        feed(smoother, "hello", 0.9, 4)
        assert smoother.state == "filling"
        feed(smoother, "hello", 0.9, 1)
        assert smoother.state == "stable"

    def test_low_confidence_drops_candidate(self, smoother):
        feed(smoother, "hello", 0.9, 6)
        outputs = feed(smoother, "hello", 0.0, 5)
        assert outputs[-1] is None
        assert smoother.candidate is None
        assert smoother.hold_count == 0
        assert smoother.state == "unstable"

    def test_single_flicker_does_not_interrupt(self, smoother):
        feed(smoother, "hello", 0.9, 10)
        out = smoother.update(raw("no", 0.9))
        assert out is not None
        assert out.label == "hello"

    def test_label_change_needs_new_hold(self, smoother):
        feed(smoother, "hello", 0.9, 10)
        outputs = feed(smoother, "no", 0.9, 10)
        labels = [o.label if o else None for o in outputs]
        # plurality flips on the 6th "no" (6 vs 4), then needs 5 agreeing frames
        assert labels[:5] == ["hello"] * 5
        assert labels[5:9] == [None] * 4
        assert labels[9] == "no"

    def test_plurality_tie_prefers_earliest(self):
        smoother = SmoothedClassifier(config=SmoothingConfig(window_size=2, min_hold_frames=1,
                                                             min_confidence=0.0))
        smoother.update(raw("a", 0.9))
        out = smoother.update(raw("b", 0.9))
        assert out.label == "a"

    def test_mean_confidence_over_window(self, smoother):
        feed(smoother, "hello", 0.6, 5)
        outputs = feed(smoother, "hello", 1.0, 5)
        assert outputs[-1].confidence == pytest.approx(0.8)

    def test_raw_probabilities_passed_through(self, smoother):
        feed(smoother, "hello", 0.9, 4)
        out = smoother.update(raw("hello", 0.9, {"hello": 0.9, "no": 0.1}))
        assert out.probabilities == {"hello": 0.9, "no": 0.1}

    def test_reset_clears_state(self, smoother):
        feed(smoother, "hello", 0.9, 6)
        smoother.reset()
        assert smoother.state == "filling"
        assert smoother.candidate is None
        assert smoother.window_fill == 0.0
        assert feed(smoother, "hello", 0.9, 4) == [None] * 4

    def test_update_params_partial(self, smoother):
        feed(smoother, "hello", 0.9, 6)
        smoother.update_params(min_hold_frames=2)
        assert smoother.params == {"window_size": 10, "min_hold_frames": 2, "min_confidence": 0.5}
        assert smoother.state == "filling"

    def test_update_params_resizes_window(self, smoother):
        smoother.update_params(window_size=4)
        feed(smoother, "hello", 0.9, 10)
        assert smoother.window_fill == 1.0

    def test_instances_do_not_share_state(self, smoother):
        other = SmoothedClassifier(config=smoother.config)
        feed(smoother, "hello", 0.9, 6)
        assert other.state == "filling"
        assert other.candidate is None

    def test_predict_uses_classifier(self):
        clf = KNNClassifier(k=1)
        x = np.zeros(42, dtype=np.float32)
        clf.fit([x], ["hello"])
        smoother = SmoothedClassifier(clf, SmoothingConfig(window_size=2, min_hold_frames=1))
        assert smoother.predict_raw(x).label == "hello"
        assert smoother.predict(x).label == "hello"

    def test_predict_without_classifier(self, smoother):
        with pytest.raises(InvalidInputError):
            smoother.predict(np.zeros(42))
