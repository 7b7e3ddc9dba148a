"""
Static Classifier Contract
===========================

Shared result types and base behaviour for the static-pose classifiers.

The variant set is closed: ``KNNClassifier`` ("knn") and
``LogisticRegressionClassifier`` ("logistic"). Both expose
fit / predict / classes / export_model / import_model. Fitted state lives in
one immutable model value that fit and import build completely and then
swap in with a single assignment, so predict never sees a half-built model.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from signspeak.errors import (
    ImportTypeMismatchError,
    InvalidInputError,
    NotTrainedError,
)
from signspeak.features.normalizer import validate_feature
from signspeak.persistence.codec import ClassifierRecord

logger = logging.getLogger(__name__)


@dataclass
class ClassificationResult:
    """Container for a single prediction."""
    label: str
    confidence: float
    probabilities: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "confidence": self.confidence,
            "probabilities": dict(self.probabilities),
        }


def validate_training_set(X: Sequence, y: Sequence) -> Tuple[np.ndarray, List[str]]:
    """Check a (features, labels) training set and stack it.

    Returns:
        (X as float32 array of shape (N, D), labels as list of str)
    """
    if len(X) != len(y) or len(X) == 0:
        raise InvalidInputError(
            "Invalid training data: %d samples, %d labels" % (len(X), len(y))
        )

    rows = [validate_feature(x) for x in X]
    dim = rows[0].shape[0]
    for i, row in enumerate(rows):
        if row.shape[0] != dim:
            raise InvalidInputError(
                "Inconsistent feature dimensions: expected %d, got %d at sample %d"
                % (dim, row.shape[0], i)
            )
    return np.stack(rows), [str(label) for label in y]


def vote_k_nearest(
    distances: np.ndarray,
    labels: Sequence[str],
    k: int,
    classes: Sequence[str],
) -> Tuple[str, float, Dict[str, float], np.ndarray]:
    """Plurality vote among the k smallest distances.

    Ties go to the label met first while scanning neighbors nearest-first.

    Returns:
        (label, confidence, probabilities, order) where ``order`` is the
        stable ascending sort of ``distances``.
    """
    order = np.argsort(distances, kind="stable")
    nearest = [labels[i] for i in order[:k]]

    votes = Counter()
    for label in nearest:
        votes[label] += 1

    max_votes = max(votes.values())
    predicted = next(label for label in nearest if votes[label] == max_votes)

    probabilities = {cls: votes.get(cls, 0) / k for cls in classes}
    return predicted, max_votes / k, probabilities, order


class BaseClassifier:
    """Behaviour shared by the static classifier variants."""

    TYPE = ""

    def __init__(self):
        self._model = None

    @property
    def is_trained(self) -> bool:
        return self._model is not None

    @property
    def feature_dim(self) -> Optional[int]:
        """Feature dimension seen at fit/import time, or None if untrained."""
        if self._model is None:
            return None
        return self._model.feature_dim

    def classes(self) -> List[str]:
        """Sorted distinct labels known to the model."""
        if self._model is None:
            return []
        return list(self._model.classes)

    def fit(self, X: Sequence, y: Sequence) -> None:
        raise NotImplementedError

    def predict(self, x) -> ClassificationResult:
        raise NotImplementedError

    def export_model(self) -> ClassifierRecord:
        raise NotImplementedError

    def import_model(self, record) -> None:
        raise NotImplementedError

    def _require_model(self):
        if self._model is None:
            raise NotTrainedError("Classifier not trained")
        return self._model

    def _check_input(self, x) -> np.ndarray:
        model = self._require_model()
        x = validate_feature(x)
        if x.shape[0] != model.feature_dim:
            raise InvalidInputError(
                "Feature dimension mismatch: model expects %d, got %d"
                % (model.feature_dim, x.shape[0])
            )
        return x

    def _check_record(self, record) -> ClassifierRecord:
        if not isinstance(record, ClassifierRecord):
            record = ClassifierRecord.from_dict(record)
        if record.type != self.TYPE:
            raise ImportTypeMismatchError(self.TYPE, record.type)
        return record

    def __repr__(self):
        state = "trained, %d classes" % len(self.classes()) if self.is_trained else "untrained"
        return "%s(%s)" % (type(self).__name__, state)
