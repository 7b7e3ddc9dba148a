"""Classifier construction by type tag."""

import logging

from signspeak.errors import InvalidInputError
from signspeak.persistence.codec import (
    DTW_SEQUENCE_TYPE,
    KNN_TYPE,
    LOGISTIC_TYPE,
    ClassifierRecord,
)
from signspeak.recognition.knn import KNNClassifier
from signspeak.recognition.logistic import LogisticRegressionClassifier
from signspeak.recognition.sequence_classifier import DTWSequenceClassifier

logger = logging.getLogger(__name__)

CLASSIFIER_TYPES = {
    KNN_TYPE: KNNClassifier,
    LOGISTIC_TYPE: LogisticRegressionClassifier,
}


def create_classifier(classifier_type: str = KNN_TYPE, **params):
    """Create an untrained static classifier.

    Args:
        classifier_type: "knn" or "logistic"
        **params: constructor options (k, learning_rate, iterations)

    Raises:
        InvalidInputError: for an unknown type
    """
    cls = CLASSIFIER_TYPES.get(classifier_type)
    if cls is None:
        raise InvalidInputError(
            "Unknown classifier type: %s (expected one of %s)"
            % (classifier_type, ", ".join(sorted(CLASSIFIER_TYPES)))
        )
    return cls(**params)


def classifier_from_record(record):
    """Build and load the classifier matching a record's type tag.

    Accepts static and "dtw-sequence" records.
    """
    if not isinstance(record, ClassifierRecord):
        record = ClassifierRecord.from_dict(record)

    if record.type == DTW_SEQUENCE_TYPE:
        classifier = DTWSequenceClassifier()
    else:
        classifier = create_classifier(record.type)
    classifier.import_model(record)
    return classifier
