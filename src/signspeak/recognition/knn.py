"""
K-Nearest-Neighbor Static Classifier
=====================================

Instance-based classifier over normalized feature vectors. Stores the whole
training set and votes among the k closest samples by squared Euclidean
distance.
"""

import logging
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

from signspeak.errors import InvalidInputError, InvalidModelRecordError
from signspeak.persistence.codec import KNN_TYPE, ClassifierRecord
from signspeak.recognition.classifier import (
    BaseClassifier,
    ClassificationResult,
    validate_training_set,
    vote_k_nearest,
)

logger = logging.getLogger(__name__)


@dataclass
class KNNConfig:
    """Nearest-neighbor configuration."""
    k: int = 5

    @classmethod
    def from_dict(cls, config: dict) -> "KNNConfig":
        """Create config from dictionary."""
        return cls(k=config.get("k", 5))


@dataclass(frozen=True)
class _KNNModel:
    k: int
    X: np.ndarray
    y: Tuple[str, ...]
    classes: Tuple[str, ...]

    @property
    def feature_dim(self) -> int:
        return self.X.shape[1]


def _build_model(k: int, X: Sequence, y: Sequence) -> _KNNModel:
    if k < 1:
        raise InvalidInputError("k must be >= 1, got %s" % k)
    X_arr, labels = validate_training_set(X, y)
    X_arr.setflags(write=False)
    return _KNNModel(
        k=k,
        X=X_arr,
        y=tuple(labels),
        classes=tuple(sorted(set(labels))),
    )


class KNNClassifier(BaseClassifier):
    """k-NN classifier with nearest-first tie breaking.

    Example:
        >>> clf = KNNClassifier(k=3)
        >>> clf.fit(features, labels)
        >>> result = clf.predict(frame_features)
        >>> print(result.label, result.confidence)
    """

    TYPE = KNN_TYPE

    def __init__(self, k: int = 5):
        super().__init__()
        if k < 1:
            raise InvalidInputError("k must be >= 1, got %s" % k)
        self.k = k

    @classmethod
    def from_config(cls, config: KNNConfig) -> "KNNClassifier":
        return cls(k=config.k)

    def fit(self, X: Sequence, y: Sequence) -> None:
        """Store the training set.

        Raises:
            InvalidInputError: on empty data, count mismatch, or bad vectors
        """
        model = _build_model(self.k, X, y)
        self._model = model
        logger.info(
            "KNN fitted: %d samples, %d classes, dim=%d, k=%d",
            len(model.y), len(model.classes), model.feature_dim, model.k,
        )

    def predict(self, x) -> ClassificationResult:
        """Classify one feature vector.

        confidence is votes/k, so it can stay below 1.0 when the training
        set holds fewer than k samples.
        """
        x = self._check_input(x)
        model = self._model

        diff = model.X - x
        distances = np.einsum("ij,ij->i", diff, diff)

        label, confidence, probabilities, _ = vote_k_nearest(
            distances, model.y, model.k, model.classes
        )
        return ClassificationResult(label, confidence, probabilities)

    def export_model(self) -> ClassifierRecord:
        model = self._require_model()
        return ClassifierRecord(
            type=self.TYPE,
            classes=list(model.classes),
            params={
                "k": model.k,
                "X": model.X.tolist(),
                "y": list(model.y),
            },
        )

    def import_model(self, record) -> None:
        """Load a "knn" record, replacing any current model.

        Raises:
            ImportTypeMismatchError: if the record is not a knn record
            InvalidModelRecordError: if the stored samples are malformed
        """
        record = self._check_record(record)
        params = record.params
        try:
            model = _build_model(params["k"], params["X"], params["y"])
        except InvalidInputError as e:
            raise InvalidModelRecordError("Invalid knn record: %s" % e) from e

        self.k = model.k
        self._model = model
        logger.info("KNN model imported: %d samples, %d classes", len(model.y), len(model.classes))
