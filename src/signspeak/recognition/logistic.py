"""
One-vs-Rest Logistic Regression
================================

Linear static classifier: one binary logistic model per class, trained by
full-batch gradient descent from zero weights. Each weight vector stores
the bias at index 0.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Sequence, Tuple

import numpy as np

from signspeak.errors import InvalidInputError, InvalidModelRecordError
from signspeak.features.normalizer import VALID_FEATURE_DIMS
from signspeak.persistence.codec import LOGISTIC_TYPE, ClassifierRecord
from signspeak.recognition.classifier import (
    BaseClassifier,
    ClassificationResult,
    validate_training_set,
)

logger = logging.getLogger(__name__)

# exp() overflows float64 beyond ~709
_SIGMOID_CLIP = 500.0


def sigmoid(z):
    z = np.clip(z, -_SIGMOID_CLIP, _SIGMOID_CLIP)
    return 1.0 / (1.0 + np.exp(-z))


@dataclass
class LogisticConfig:
    """Logistic regression training configuration."""
    learning_rate: float = 0.1
    iterations: int = 100

    @classmethod
    def from_dict(cls, config: dict) -> "LogisticConfig":
        """Create config from dictionary."""
        return cls(
            learning_rate=config.get("learning_rate", 0.1),
            iterations=config.get("iterations", 100),
        )


@dataclass(frozen=True)
class _LogisticModel:
    classes: Tuple[str, ...]
    weights: np.ndarray  # (num_classes, feature_dim + 1), float32

    @property
    def feature_dim(self) -> int:
        return self.weights.shape[1] - 1


class LogisticRegressionClassifier(BaseClassifier):
    """One-vs-rest logistic regression over sorted class labels.

    confidence is the winning class's raw sigmoid score; probabilities are
    the scores renormalized to sum to one.

    Example:
        >>> clf = LogisticRegressionClassifier(learning_rate=0.1, iterations=200)
        >>> clf.fit(features, labels)
        >>> clf.predict(frame_features).label
        'hello'
    """

    TYPE = LOGISTIC_TYPE

    def __init__(self, learning_rate: float = 0.1, iterations: int = 100):
        super().__init__()
        if learning_rate <= 0:
            raise InvalidInputError("learning_rate must be > 0, got %s" % learning_rate)
        if iterations < 0:
            raise InvalidInputError("iterations must be >= 0, got %s" % iterations)
        self.learning_rate = float(learning_rate)
        self.iterations = int(iterations)

    @classmethod
    def from_config(cls, config: LogisticConfig) -> "LogisticRegressionClassifier":
        return cls(learning_rate=config.learning_rate, iterations=config.iterations)

    def fit(self, X: Sequence, y: Sequence) -> None:
        """Train one binary model per class.

        All class models are updated together; each row of the weight matrix
        follows exactly the update it would get if trained alone.
        """
        X_arr, labels = validate_training_set(X, y)
        classes = tuple(sorted(set(labels)))
        n_samples = X_arr.shape[0]

        Xb = np.hstack([np.ones((n_samples, 1)), X_arr.astype(np.float64)])
        targets = np.array(
            [[1.0 if label == cls else 0.0 for cls in classes] for label in labels]
        )
        W = np.zeros((len(classes), Xb.shape[1]))

        for _ in range(self.iterations):
            scores = sigmoid(Xb @ W.T)
            grad = (scores - targets).T @ Xb
            W -= self.learning_rate * grad / n_samples

        weights = W.astype(np.float32)
        weights.setflags(write=False)
        self._model = _LogisticModel(classes=classes, weights=weights)
        logger.info(
            "Logistic regression fitted: %d samples, %d classes, %d iterations",
            n_samples, len(classes), self.iterations,
        )

    def decision_scores(self, x) -> Dict[str, float]:
        """Per-class sigmoid scores for one feature vector."""
        x = self._check_input(x)
        model = self._model
        w = model.weights.astype(np.float64)
        scores = sigmoid(w[:, 0] + w[:, 1:] @ x.astype(np.float64))
        return dict(zip(model.classes, scores.tolist()))

    def predict(self, x) -> ClassificationResult:
        scores = self.decision_scores(x)

        best_label, best_score = None, -1.0
        for label, score in scores.items():
            if score > best_score:
                best_label, best_score = label, score

        total = sum(scores.values())
        if total > 0:
            probabilities = {label: score / total for label, score in scores.items()}
        else:
            probabilities = {label: 0.0 for label in scores}

        return ClassificationResult(best_label, best_score, probabilities)

    def export_model(self) -> ClassifierRecord:
        model = self._require_model()
        return ClassifierRecord(
            type=self.TYPE,
            classes=list(model.classes),
            params={
                "learning_rate": self.learning_rate,
                "iterations": self.iterations,
                "models": {
                    label: row.tolist() for label, row in zip(model.classes, model.weights)
                },
            },
        )

    def import_model(self, record) -> None:
        """Load a "logistic" record, replacing any current model.

        Raises:
            ImportTypeMismatchError: if the record is not a logistic record
            InvalidModelRecordError: if the stored weights are malformed
        """
        record = self._check_record(record)
        params = record.params
        models = params["models"]

        classes = tuple(sorted(models))
        if not classes:
            raise InvalidModelRecordError("Logistic record has no class models")
        try:
            weights = np.array([models[label] for label in classes], dtype=np.float32)
        except (TypeError, ValueError) as e:
            raise InvalidModelRecordError("Invalid logistic weights: %s" % e) from e
        if weights.ndim != 2 or weights.shape[1] - 1 not in VALID_FEATURE_DIMS:
            raise InvalidModelRecordError(
                "Invalid logistic weights shape %s" % str(weights.shape)
            )
        if not np.all(np.isfinite(weights)):
            raise InvalidModelRecordError("Logistic weights contain non-finite values")

        weights.setflags(write=False)
        self.learning_rate = float(params["learning_rate"])
        self.iterations = int(params["iterations"])
        self._model = _LogisticModel(classes=classes, weights=weights)
        logger.info("Logistic model imported: %d classes", len(classes))
