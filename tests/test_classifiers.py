"""
Tests for Static Classifiers
==============================
"""

import numpy as np
import pytest

from signspeak.errors import InvalidInputError, NotTrainedError
from signspeak.recognition.classifier import ClassificationResult
from signspeak.recognition.factory import classifier_from_record, create_classifier
from signspeak.recognition.knn import KNNClassifier, KNNConfig
from signspeak.recognition.logistic import LogisticConfig, LogisticRegressionClassifier


def unit(index, value=1.0, dim=42):
    v = np.zeros(dim, dtype=np.float32)
    v[index] = value
    return v


@pytest.fixture
def toy_data():
    """Two linearly separable classes along feature 0."""
    X = [unit(0, 1.0)] * 5 + [unit(0, -1.0)] * 5
    y = ["a"] * 5 + ["b"] * 5
    return X, y


class TestKNNClassifier:
    """Test suite for the nearest-neighbor classifier."""

    def test_predicts_training_shapes(self, single_hand_dataset):
        X, y = single_hand_dataset
        clf = KNNClassifier(k=3)
        clf.fit(X, y)
        for features, label in zip(X, y):
            assert clf.predict(features).label == label

    def test_single_neighbor_recalls_each_sample(self, single_hand_dataset):
        X, y = single_hand_dataset
        firsts = {}
        for features, label in zip(X, y):
            firsts.setdefault(label, features)
        clf = KNNClassifier(k=1)
        clf.fit(list(firsts.values()), list(firsts.keys()))
        for label, features in firsts.items():
            result = clf.predict(features)
            assert result.label == label
            assert result.confidence == 1.0

    def test_three_tight_clusters(self):
        rng = np.random.RandomState(1)
        centers = {"A": unit(0), "B": unit(1), "C": unit(2)}
        X, y = [], []
        for label, center in centers.items():
            for _ in range(3):
                X.append(center + rng.normal(0.0, 0.01, 42).astype(np.float32))
                y.append(label)
        clf = KNNClassifier(k=3)
        clf.fit(X, y)

        result = clf.predict(centers["B"] + np.float32(0.005))
        assert result.label == "B"
        assert result.confidence >= 2 / 3

    def test_confidence_is_vote_fraction(self):
        clf = KNNClassifier(k=3)
        clf.fit([unit(0, 0.1), unit(0, 0.2), unit(0, 0.3)], ["a", "a", "b"])
        result = clf.predict(unit(0, 0.0))
        assert result.label == "a"
        assert result.confidence == pytest.approx(2 / 3)
        assert result.probabilities == pytest.approx({"a": 2 / 3, "b": 1 / 3})

    def test_tie_goes_to_nearest_label(self):
        clf = KNNClassifier(k=2)
        clf.fit([unit(0, 0.2), unit(0, 0.1)], ["far", "near"])
        result = clf.predict(unit(0, 0.0))
        assert result.label == "near"
        assert result.confidence == pytest.approx(0.5)

    def test_equal_distances_keep_training_order(self):
        clf = KNNClassifier(k=1)
        clf.fit([unit(1), unit(1)], ["second", "first"])
        assert clf.predict(unit(1)).label == "second"

    def test_k_larger_than_training_set(self):
        clf = KNNClassifier(k=5)
        clf.fit([unit(0), unit(1)], ["a", "a"])
        result = clf.predict(unit(0))
        assert result.label == "a"
        assert result.confidence == pytest.approx(2 / 5)

    def test_probabilities_cover_all_classes(self, single_hand_dataset):
        X, y = single_hand_dataset
        clf = KNNClassifier(k=1)
        clf.fit(X, y)
        result = clf.predict(X[0])
        assert set(result.probabilities) == set(y)
        assert sum(result.probabilities.values()) == pytest.approx(1.0)

    def test_deterministic(self, single_hand_dataset):
        X, y = single_hand_dataset
        clf = KNNClassifier()
        clf.fit(X, y)
        probe = X[3] + 0.01
        assert clf.predict(probe) == clf.predict(probe)

    def test_classes_sorted_copy(self, toy_data):
        clf = KNNClassifier()
        clf.fit(*toy_data)
        classes = clf.classes()
        classes.append("zzz")
        assert clf.classes() == ["a", "b"]

    def test_untrained_predict_raises(self):
        clf = KNNClassifier()
        assert not clf.is_trained
        assert clf.feature_dim is None
        with pytest.raises(NotTrainedError):
            clf.predict(unit(0))

    def test_dimension_mismatch_raises(self, toy_data):
        clf = KNNClassifier()
        clf.fit(*toy_data)
        with pytest.raises(InvalidInputError):
            clf.predict(np.zeros(84, dtype=np.float32))

    @pytest.mark.parametrize("X, y", [
        ([], []),
        ([np.zeros(42)], ["a", "b"]),
        ([np.zeros(42), np.zeros(84)], ["a", "b"]),
        ([np.zeros(10)], ["a"]),
    ])
    def test_invalid_training_data(self, X, y):
        with pytest.raises(InvalidInputError):
            KNNClassifier().fit(X, y)

    def test_invalid_k(self):
        with pytest.raises(InvalidInputError):
            KNNClassifier(k=0)

    def test_config(self):
        assert KNNClassifier.from_config(KNNConfig.from_dict({"k": 7})).k == 7


class TestLogisticRegression:
    """Test suite for one-vs-rest logistic regression."""

    def test_separates_toy_classes(self, toy_data):
        clf = LogisticRegressionClassifier()
        clf.fit(*toy_data)
        result = clf.predict(unit(0, 1.0))
        assert result.label == "a"
        assert result.confidence > 0.5
        assert clf.predict(unit(0, -1.0)).label == "b"

    def test_probabilities_renormalize_scores(self, toy_data):
        clf = LogisticRegressionClassifier()
        clf.fit(*toy_data)
        x = unit(0, 1.0)
        scores = clf.decision_scores(x)
        result = clf.predict(x)
        total = sum(scores.values())
        assert result.probabilities["a"] == pytest.approx(scores["a"] / total)
        assert sum(result.probabilities.values()) == pytest.approx(1.0)
        assert result.confidence == pytest.approx(scores["a"])

    def test_zero_iterations_tie_picks_first_class(self, toy_data):
        clf = LogisticRegressionClassifier(iterations=0)
        clf.fit(*toy_data)
        result = clf.predict(unit(0, 1.0))
        assert result.label == "a"
        assert result.confidence == pytest.approx(0.5)
        assert result.probabilities == pytest.approx({"a": 0.5, "b": 0.5})

    def test_learns_hand_shapes(self, single_hand_dataset):
        X, y = single_hand_dataset
        clf = LogisticRegressionClassifier(learning_rate=0.1, iterations=500)
        clf.fit(X, y)
        correct = sum(clf.predict(x).label == label for x, label in zip(X, y))
        assert correct / len(y) >= 0.75

    def test_export_weight_layout(self, toy_data):
        clf = LogisticRegressionClassifier()
        clf.fit(*toy_data)
        record = clf.export_model()
        assert record.type == "logistic"
        assert record.classes == ["a", "b"]
        assert len(record.params["models"]["a"]) == 43

    def test_untrained_predict_raises(self):
        with pytest.raises(NotTrainedError):
            LogisticRegressionClassifier().predict(unit(0))

    def test_invalid_params(self):
        with pytest.raises(InvalidInputError):
            LogisticRegressionClassifier(learning_rate=0)

    def test_config(self):
        config = LogisticConfig.from_dict({"iterations": 20})
        clf = LogisticRegressionClassifier.from_config(config)
        assert clf.iterations == 20
        assert clf.learning_rate == pytest.approx(0.1)


class TestFactory:
    """Test suite for classifier construction by type tag."""

    def test_create_known_types(self):
        assert isinstance(create_classifier("knn", k=3), KNNClassifier)
        assert isinstance(create_classifier("logistic"), LogisticRegressionClassifier)

    def test_unknown_type(self):
        with pytest.raises(InvalidInputError):
            create_classifier("svm")

    def test_from_record(self, toy_data):
        clf = LogisticRegressionClassifier()
        clf.fit(*toy_data)
        restored = classifier_from_record(clf.export_model().to_dict())
        assert isinstance(restored, LogisticRegressionClassifier)
        assert restored.classes() == ["a", "b"]


class TestClassificationResult:

    def test_to_dict(self):
        result = ClassificationResult("hello", 0.8, {"hello": 0.8, "no": 0.2})
        assert result.to_dict() == {
            "label": "hello",
            "confidence": 0.8,
            "probabilities": {"hello": 0.8, "no": 0.2},
        }
