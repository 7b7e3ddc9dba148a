"""
Tests for Classifier Evaluation
=================================
"""

import numpy as np
import pytest

from signspeak.errors import InvalidInputError
from signspeak.recognition.classifier import ClassificationResult
from signspeak.recognition.evaluation import (
    evaluate,
    format_confusion_matrix,
    train_test_split,
)
from signspeak.recognition.knn import KNNClassifier


class LookupClassifier:
    """Predicts from a fixed table keyed by the first feature value."""

    def __init__(self, table, classes):
        self.table = table
        self._classes = classes

    def predict(self, x):
        return ClassificationResult(self.table[float(x[0])], 1.0)

    def classes(self):
        return list(self._classes)


def sample(value):
    return np.full(42, value, dtype=np.float32)


class TestTrainTestSplit:
    """Test suite for the seeded split."""

    def test_sizes(self):
        X = [sample(i) for i in range(20)]
        y = ["a"] * 10 + ["b"] * 10
        X_train, y_train, X_val, y_val = train_test_split(X, y, val_split=0.2)
        assert len(X_val) == len(y_val) == 4
        assert len(X_train) == len(y_train) == 16

    def test_partition_keeps_pairs(self):
        X = [sample(i) for i in range(10)]
        y = ["s%d" % i for i in range(10)]
        X_train, y_train, X_val, y_val = train_test_split(X, y, seed=3)
        pairs = list(zip(X_train + X_val, y_train + y_val))
        assert sorted(label for _, label in pairs) == sorted(y)
        for x, label in pairs:
            assert label == "s%d" % int(x[0])

    def test_seeded(self):
        X = [sample(i) for i in range(10)]
        y = ["a"] * 10
        first = train_test_split(X, y, seed=7)[2]
        second = train_test_split(X, y, seed=7)[2]
        assert [x[0] for x in first] == [x[0] for x in second]

    def test_at_least_one_validation_sample(self):
        X_train, _, X_val, _ = train_test_split([sample(0), sample(1)], ["a", "b"], val_split=0.0)
        assert len(X_val) == 1
        assert len(X_train) == 1

    @pytest.mark.parametrize("X, y", [
        ([sample(0)], ["a"]),
        ([sample(0), sample(1)], ["a"]),
    ])
    def test_invalid(self, X, y):
        with pytest.raises(InvalidInputError):
            train_test_split(X, y)


class TestEvaluate:
    """Test suite for accuracy, confusion matrix and per-class scores."""

    def test_perfect_on_training_data(self, single_hand_dataset):
        X, y = single_hand_dataset
        clf = KNNClassifier(k=1)
        clf.fit(X, y)
        report = evaluate(clf, X, y)
        assert report.accuracy == 1.0
        assert report.total == len(y)
        assert np.array_equal(report.confusion_matrix, np.diag(np.diag(report.confusion_matrix)))
        assert all(v == 1.0 for v in report.recall.values())

    def test_confusion_counts(self):
        clf = LookupClassifier({0.0: "a", 1.0: "a", 2.0: "b", 3.0: "b"}, ["a", "b"])
        X = [sample(v) for v in (0.0, 1.0, 2.0, 3.0)]
        y = ["a", "b", "b", "b"]
        report = evaluate(clf, X, y)

        assert report.class_names == ["a", "b"]
        assert report.confusion_matrix.tolist() == [[1, 0], [1, 2]]
        assert report.accuracy == pytest.approx(0.75)
        assert report.recall == pytest.approx({"a": 1.0, "b": 2 / 3})
        assert report.precision == pytest.approx({"a": 0.5, "b": 1.0})

    def test_unseen_true_label_included(self):
        clf = LookupClassifier({0.0: "a"}, ["a"])
        report = evaluate(clf, [sample(0.0)], ["z"])
        assert report.class_names == ["a", "z"]
        assert report.accuracy == 0.0
        assert report.precision["a"] == 0.0

    def test_empty(self):
        with pytest.raises(InvalidInputError):
            evaluate(LookupClassifier({}, []), [], [])

    def test_to_dict(self):
        clf = LookupClassifier({0.0: "a"}, ["a"])
        data = evaluate(clf, [sample(0.0)], ["a"]).to_dict()
        assert data["accuracy"] == 1.0
        assert data["total_samples"] == 1
        assert data["confusion_matrix"] == [[1]]


class TestFormatConfusionMatrix:

    def test_layout(self):
        lines = format_confusion_matrix(np.array([[3, 1], [0, 4]]), ["hello", "thank_you"])
        assert len(lines) == 6
        assert lines[0].startswith("True \\ Pred")
        assert lines[0].endswith("Recall")
        assert "thank_" in lines[0]
        assert lines[2].split()[-1] == "0.750"
        assert lines[-1].startswith("Precision")
        assert lines[-1].split()[1:] == ["1.000", "0.800"]
