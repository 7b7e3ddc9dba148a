"""
Model Persistence Codec
========================

Trained classifiers serialize to a tagged record::

    {"type": "knn" | "logistic" | "dtw-sequence",
     "classes": [str, ...],
     "params": {...variant specific...}}

Params per type:

    knn           {k, X: [[float]], y: [str]}
    logistic      {learning_rate, iterations, models: {label: [float]}}
                  (weights[0] is the bias)
    dtw-sequence  {k, window_size, sequences: [[[float]]], labels: [str]}

Floats are written from float32 arrays via ``tolist()`` and read back as
float32, so an export/import round trip reproduces predictions exactly.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from signspeak.errors import IncompatibleModelError, InvalidModelRecordError

logger = logging.getLogger(__name__)

KNN_TYPE = "knn"
LOGISTIC_TYPE = "logistic"
DTW_SEQUENCE_TYPE = "dtw-sequence"

RECORD_TYPES = (KNN_TYPE, LOGISTIC_TYPE, DTW_SEQUENCE_TYPE)

# Required params keys and their expected python types per record type
PARAMS_SCHEMA = {
    KNN_TYPE: {"k": int, "X": list, "y": list},
    LOGISTIC_TYPE: {"learning_rate": (int, float), "iterations": int, "models": dict},
    DTW_SEQUENCE_TYPE: {"k": int, "window_size": (int, type(None)), "sequences": list, "labels": list},
}


@dataclass
class ClassifierRecord:
    """Serialized form of a trained classifier."""
    type: str
    classes: List[str] = field(default_factory=list)
    params: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "classes": list(self.classes),
            "params": self.params,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ClassifierRecord":
        """Build a record from a decoded mapping, checking its structure.

        Raises:
            InvalidModelRecordError: on missing or ill-typed fields
        """
        if not isinstance(data, dict):
            raise InvalidModelRecordError(
                "Model record must be an object, got %s" % type(data).__name__
            )

        record_type = data.get("type")
        if record_type not in RECORD_TYPES:
            raise InvalidModelRecordError("Unknown model record type: %r" % (record_type,))

        classes = data.get("classes")
        if not isinstance(classes, list) or not all(isinstance(c, str) for c in classes):
            raise InvalidModelRecordError("'classes' must be a list of strings")

        params = data.get("params")
        if not isinstance(params, dict):
            raise InvalidModelRecordError("'params' must be an object")

        for key, expected in PARAMS_SCHEMA[record_type].items():
            if key not in params:
                raise InvalidModelRecordError(
                    "Missing params.%s in %s record" % (key, record_type)
                )
            value = params[key]
            # bool is an int subclass but never a valid count or rate
            if isinstance(value, bool) or not isinstance(value, expected):
                raise InvalidModelRecordError(
                    "params.%s has wrong type %s in %s record"
                    % (key, type(value).__name__, record_type)
                )

        return cls(type=record_type, classes=list(classes), params=params)


def dumps(record: ClassifierRecord, indent: Optional[int] = None) -> str:
    """Serialize a record to JSON text."""
    return json.dumps(record.to_dict(), indent=indent)


def loads(text) -> ClassifierRecord:
    """Parse JSON text into a validated record.

    Raises:
        InvalidModelRecordError: on malformed JSON or structure
    """
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise InvalidModelRecordError("Model record is not valid JSON: %s" % e) from e
    return ClassifierRecord.from_dict(data)


def load_record_or_none(blob) -> Optional[ClassifierRecord]:
    """Decode a stored blob, treating absent or invalid data as "no model".

    Args:
        blob: None, JSON text/bytes, a dict, or a ClassifierRecord

    Returns:
        ClassifierRecord or None
    """
    if blob is None:
        return None
    if isinstance(blob, ClassifierRecord):
        return blob

    try:
        if isinstance(blob, dict):
            return ClassifierRecord.from_dict(blob)
        return loads(blob)
    except InvalidModelRecordError as e:
        logger.warning("Ignoring stored model: %s", e)
        return None


def infer_feature_dim(record: ClassifierRecord) -> Optional[int]:
    """Feature dimension a record was trained with, or None if not inferable."""
    params = record.params
    try:
        if record.type == KNN_TYPE:
            return len(params["X"][0]) if params["X"] else None
        if record.type == LOGISTIC_TYPE:
            for weights in params["models"].values():
                return len(weights) - 1
            return None
        if record.type == DTW_SEQUENCE_TYPE:
            for sequence in params["sequences"]:
                if sequence:
                    return len(sequence[0])
            return None
    except (KeyError, TypeError, IndexError):
        return None
    return None


def check_compatible(record: ClassifierRecord, expected_dim: int) -> None:
    """Raise IncompatibleModelError when the record's dimension differs."""
    actual = infer_feature_dim(record)
    if actual is not None and actual != expected_dim:
        raise IncompatibleModelError(expected_dim, actual)
