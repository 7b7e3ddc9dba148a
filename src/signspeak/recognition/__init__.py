"""Static and dynamic gesture classification."""
from .classifier import BaseClassifier, ClassificationResult
from .factory import classifier_from_record, create_classifier
from .knn import KNNClassifier, KNNConfig
from .logistic import LogisticConfig, LogisticRegressionClassifier
from .sequence_classifier import (
    DTWSequenceClassifier,
    SequenceClassificationResult,
    SequenceConfig,
    create_sequence_classifier,
    dtw_distance,
    normalize_sequence_length,
    validate_sequence,
)
from .smoothing import SmoothedClassifier, SmoothingConfig

__all__ = [
    "BaseClassifier",
    "ClassificationResult",
    "DTWSequenceClassifier",
    "KNNClassifier",
    "KNNConfig",
    "LogisticConfig",
    "LogisticRegressionClassifier",
    "SequenceClassificationResult",
    "SequenceConfig",
    "SmoothedClassifier",
    "SmoothingConfig",
    "classifier_from_record",
    "create_classifier",
    "create_sequence_classifier",
    "dtw_distance",
    "normalize_sequence_length",
    "validate_sequence",
]
