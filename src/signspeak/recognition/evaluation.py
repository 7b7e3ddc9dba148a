"""
Bulk evaluation of static classifiers: accuracy, confusion matrix and
per-class recall/precision, plus a seeded train/validation split.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

import numpy as np

from signspeak.errors import InvalidInputError

logger = logging.getLogger(__name__)


@dataclass
class EvaluationReport:
    accuracy: float
    confusion_matrix: np.ndarray  # rows = true class, cols = predicted
    class_names: List[str]
    recall: Dict[str, float] = field(default_factory=dict)
    precision: Dict[str, float] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return int(self.confusion_matrix.sum())

    def to_dict(self) -> dict:
        return {
            "accuracy": self.accuracy,
            "total_samples": self.total,
            "class_names": list(self.class_names),
            "confusion_matrix": self.confusion_matrix.tolist(),
            "recall": dict(self.recall),
            "precision": dict(self.precision),
        }


def train_test_split(X: Sequence, y: Sequence, val_split: float = 0.2,
                     seed: int = 42) -> Tuple[list, list, list, list]:
    """Shuffle and split samples; at least one sample goes to validation."""
    if len(X) != len(y):
        raise InvalidInputError("Sample/label count mismatch: %d vs %d" % (len(X), len(y)))
    if len(X) < 2:
        raise InvalidInputError("Need at least 2 samples to split, got %d" % len(X))

    rng = np.random.RandomState(seed)
    indices = rng.permutation(len(X))
    val_size = max(1, int(len(X) * val_split))
    val_idx, train_idx = indices[:val_size], indices[val_size:]

    return (
        [X[i] for i in train_idx],
        [y[i] for i in train_idx],
        [X[i] for i in val_idx],
        [y[i] for i in val_idx],
    )


def evaluate(classifier, X: Sequence, y: Sequence) -> EvaluationReport:
    """Predict every sample and tabulate the outcome."""
    if len(X) != len(y) or len(X) == 0:
        raise InvalidInputError(
            "Invalid evaluation data: %d samples, %d labels" % (len(X), len(y))
        )

    predictions = [classifier.predict(x).label for x in X]
    class_names = sorted(set(classifier.classes()) | set(y))
    index = {name: i for i, name in enumerate(class_names)}

    matrix = np.zeros((len(class_names), len(class_names)), dtype=np.int64)
    for true_label, pred_label in zip(y, predictions):
        matrix[index[true_label]][index[pred_label]] += 1

    recall = {}
    precision = {}
    for i, name in enumerate(class_names):
        recall[name] = float(matrix[i][i] / max(matrix[i].sum(), 1))
        precision[name] = float(matrix[i][i] / max(matrix[:, i].sum(), 1))

    accuracy = float(np.trace(matrix) / len(y))
    return EvaluationReport(accuracy, matrix, class_names, recall, precision)


def format_confusion_matrix(matrix, class_names: Sequence[str]) -> List[str]:
    """Render a confusion matrix with a recall column and precision row."""
    num_classes = len(class_names)

    header = "%-14s" % "True \\ Pred"
    for name in class_names:
        header += " %6s" % name[:6]
    header += "  Recall"

    lines = [header, "-" * len(header)]
    for i in range(num_classes):
        row = "%-14s" % class_names[i][:14]
        for j in range(num_classes):
            row += " %6d" % matrix[i][j]
        row += "  %.3f" % (matrix[i][i] / max(matrix[i].sum(), 1))
        lines.append(row)

    lines.append("-" * len(header))
    prec_row = "%-14s" % "Precision"
    for j in range(num_classes):
        prec_row += " %6.3f" % (matrix[j][j] / max(matrix[:, j].sum(), 1))
    lines.append(prec_row)
    return lines


def log_report(report: EvaluationReport) -> None:
    logger.info("Accuracy: %.4f (%d samples)", report.accuracy, report.total)
    for line in format_confusion_matrix(report.confusion_matrix, report.class_names):
        logger.info(line)
