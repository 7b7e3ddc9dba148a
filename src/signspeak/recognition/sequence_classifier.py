"""
Dynamic Gesture Sequence Classifier
====================================

k-nearest-neighbor over variable-length feature sequences using Dynamic
Time Warping with a Sakoe-Chiba band. Handles gestures performed at
different speeds (waving, "thank you", "please"...) without resampling.

Band width defaults to max(floor(0.1 * longer_length), 5). Two sequences
whose lengths differ by more than the band have distance +inf.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from signspeak.errors import (
    ImportTypeMismatchError,
    InvalidInputError,
    InvalidModelRecordError,
)
from signspeak.persistence.codec import DTW_SEQUENCE_TYPE, ClassifierRecord
from signspeak.recognition.classifier import ClassificationResult, vote_k_nearest

logger = logging.getLogger(__name__)

MIN_BAND_WIDTH = 5
BAND_FRACTION = 0.1


@dataclass
class SequenceClassificationResult(ClassificationResult):
    """Sequence prediction with the distance to the nearest training sequence."""
    distance: float = math.inf

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["distance"] = self.distance
        return data


@dataclass
class SequenceConfig:
    """Dynamic gesture configuration.

    target_length: resample training sequences to this many frames before
        fitting (None keeps them verbatim)
    min_confidence: recorder accepts predictions at or above this
    max_frames: recorder stops automatically after this many frames
    """
    k: int = 3
    window_size: Optional[int] = None
    target_length: Optional[int] = None
    min_confidence: float = 0.6
    max_frames: int = 60

    @classmethod
    def from_dict(cls, config: dict) -> "SequenceConfig":
        """Create config from dictionary."""
        return cls(
            k=config.get("k", 3),
            window_size=config.get("window_size"),
            target_length=config.get("target_length"),
            min_confidence=config.get("min_confidence", 0.6),
            max_frames=config.get("max_frames", 60),
        )


def _as_sequence(sequence) -> np.ndarray:
    try:
        arr = np.asarray(sequence, dtype=np.float32)
    except (TypeError, ValueError) as e:
        raise InvalidInputError("Sequence frames must share one dimension: %s" % e) from e
    if arr.ndim != 2:
        raise InvalidInputError(
            "Sequence must be a list of equal-length frames, got shape %s" % str(arr.shape)
        )
    return arr


def dtw_distance(a, b, window: Optional[int] = None) -> float:
    """Banded DTW distance between two sequences.

    Args:
        a: sequence of n frames, each of dimension D
        b: sequence of m frames, each of dimension D
        window: band half-width; None or a non-positive width selects
            max(floor(0.1 * max(n, m)), 5)

    Returns:
        Accumulated Euclidean frame cost along the best warping path, or
        +inf when no path fits inside the band
    """
    if len(a) == 0 or len(b) == 0:
        return math.inf
    a = _as_sequence(a)
    b = _as_sequence(b)
    n, m = a.shape[0], b.shape[0]
    if a.shape[1] != b.shape[1]:
        raise InvalidInputError(
            "Frame dimension mismatch: %d vs %d" % (a.shape[1], b.shape[1])
        )

    w = window if window and window > 0 else max(int(BAND_FRACTION * max(n, m)), MIN_BAND_WIDTH)

    a64 = a.astype(np.float64)
    b64 = b.astype(np.float64)
    diff = a64[:, None, :] - b64[None, :, :]
    cost = np.sqrt(np.einsum("ijk,ijk->ij", diff, diff)).tolist()

    inf = math.inf
    table = [[inf] * (m + 1) for _ in range(n + 1)]
    table[0][0] = 0.0

    for i in range(1, n + 1):
        prev = table[i - 1]
        row = table[i]
        row_cost = cost[i - 1]
        for j in range(max(1, i - w), min(m, i + w) + 1):
            row[j] = row_cost[j - 1] + min(prev[j], row[j - 1], prev[j - 1])

    return table[n][m]


def validate_sequence(sequence) -> bool:
    """True for a non-empty sequence whose frames share one dimension."""
    if sequence is None or len(sequence) == 0:
        return False
    dims = set()
    for frame in sequence:
        try:
            dims.add(len(frame))
        except TypeError:
            return False
    return len(dims) == 1 and 0 not in dims


def normalize_sequence_length(sequence, target_length: int):
    """Resample a sequence to ``target_length`` frames by linear interpolation.

    Frame i of the output sits at source position i * (len - 1) / (target - 1).
    A sequence already of the target length is returned unchanged.
    """
    if target_length < 1:
        raise InvalidInputError("target_length must be >= 1, got %s" % target_length)
    if len(sequence) == target_length:
        return sequence
    if len(sequence) == 0:
        raise InvalidInputError("Cannot resample an empty sequence")

    arr = _as_sequence(sequence)
    if target_length == 1:
        return arr[:1].copy()

    last = arr.shape[0] - 1
    out = np.empty((target_length, arr.shape[1]), dtype=np.float32)
    for i in range(target_length):
        pos = i * last / (target_length - 1)
        lo = int(math.floor(pos))
        hi = min(int(math.ceil(pos)), last)
        weight = pos - lo
        if lo == hi:
            out[i] = arr[lo]
        else:
            out[i] = arr[lo] * (1 - weight) + arr[hi] * weight
    return out


@dataclass(frozen=True)
class _SequenceModel:
    sequences: Tuple[np.ndarray, ...]
    labels: Tuple[str, ...]
    classes: Tuple[str, ...]

    @property
    def feature_dim(self) -> int:
        return self.sequences[0].shape[1]


def _build_model(sequences: Sequence, labels: Sequence) -> _SequenceModel:
    if len(sequences) != len(labels) or len(sequences) == 0:
        raise InvalidInputError(
            "Invalid training data: %d sequences, %d labels" % (len(sequences), len(labels))
        )

    arrays = []
    dim = None
    for i, sequence in enumerate(sequences):
        if not validate_sequence(sequence):
            raise InvalidInputError("Sequence %d is empty or has ragged frames" % i)
        arr = _as_sequence(sequence).copy()
        if dim is None:
            dim = arr.shape[1]
        elif arr.shape[1] != dim:
            raise InvalidInputError(
                "Inconsistent frame dimensions: expected %d, got %d in sequence %d"
                % (dim, arr.shape[1], i)
            )
        arr.setflags(write=False)
        arrays.append(arr)

    labels = tuple(str(label) for label in labels)
    return _SequenceModel(
        sequences=tuple(arrays),
        labels=labels,
        classes=tuple(sorted(set(labels))),
    )


class DTWSequenceClassifier:
    """DTW k-NN classifier for dynamic gestures.

    Example:
        >>> clf = DTWSequenceClassifier(k=3)
        >>> clf.fit(recorded_sequences, labels)
        >>> result = clf.predict(new_sequence)
        >>> if result is not None:
        ...     print(result.label, result.distance)
    """

    TYPE = DTW_SEQUENCE_TYPE

    def __init__(self, k: int = 3, window_size: Optional[int] = None):
        if k < 1:
            raise InvalidInputError("k must be >= 1, got %s" % k)
        self.k = k
        self.window_size = window_size
        self._model = None

    @classmethod
    def from_config(cls, config: SequenceConfig) -> "DTWSequenceClassifier":
        return cls(k=config.k, window_size=config.window_size)

    @property
    def is_trained(self) -> bool:
        return self._model is not None

    @property
    def feature_dim(self) -> Optional[int]:
        if self._model is None:
            return None
        return self._model.feature_dim

    def classes(self) -> List[str]:
        if self._model is None:
            return []
        return list(self._model.classes)

    def fit(self, sequences: Sequence, labels: Sequence) -> None:
        """Store the training sequences verbatim."""
        model = _build_model(sequences, labels)
        self._model = model
        logger.info(
            "DTW classifier fitted: %d sequences, %d classes",
            len(model.sequences), len(model.classes),
        )

    def predict(self, sequence) -> Optional[SequenceClassificationResult]:
        """Classify a recorded sequence.

        Returns:
            SequenceClassificationResult, or None when the classifier is
            untrained or the sequence is empty
        """
        model = self._model
        if model is None:
            logger.warning("DTW classifier not trained")
            return None
        if sequence is None or len(sequence) == 0:
            logger.warning("Empty sequence provided")
            return None

        query = _as_sequence(sequence)
        distances = np.array(
            [dtw_distance(query, train, self.window_size) for train in model.sequences]
        )

        label, confidence, probabilities, order = vote_k_nearest(
            distances, model.labels, self.k, model.classes
        )
        return SequenceClassificationResult(
            label=label,
            confidence=confidence,
            probabilities=probabilities,
            distance=float(distances[order[0]]),
        )

    def export_model(self) -> ClassifierRecord:
        model = self._model
        if model is None:
            raise InvalidInputError("No sequences to export")
        return ClassifierRecord(
            type=self.TYPE,
            classes=list(model.classes),
            params={
                "k": self.k,
                "window_size": self.window_size,
                "sequences": [seq.tolist() for seq in model.sequences],
                "labels": list(model.labels),
            },
        )

    def import_model(self, record) -> None:
        """Load a "dtw-sequence" record, replacing any current model."""
        if not isinstance(record, ClassifierRecord):
            record = ClassifierRecord.from_dict(record)
        if record.type != self.TYPE:
            raise ImportTypeMismatchError(self.TYPE, record.type)

        params = record.params
        if params["k"] < 1:
            raise InvalidModelRecordError("Invalid dtw-sequence record: k=%s" % params["k"])
        try:
            model = _build_model(params["sequences"], params["labels"])
        except InvalidInputError as e:
            raise InvalidModelRecordError("Invalid dtw-sequence record: %s" % e) from e

        self.k = params["k"]
        self.window_size = params["window_size"]
        self._model = model
        logger.info(
            "DTW classifier imported: %d sequences, %d classes",
            len(model.sequences), len(model.classes),
        )

    def __repr__(self):
        state = "trained, %d classes" % len(self.classes()) if self.is_trained else "untrained"
        return "DTWSequenceClassifier(%s)" % state


def create_sequence_classifier(classifier_type: str = "dtw", k: int = 3,
                               window_size: Optional[int] = None) -> DTWSequenceClassifier:
    """Factory for sequence classifiers. Only "dtw" is available."""
    if classifier_type != "dtw":
        raise InvalidInputError("Unknown sequence classifier type: %s" % classifier_type)
    return DTWSequenceClassifier(k=k, window_size=window_size)
