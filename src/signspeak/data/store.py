"""
Dataset & Model Storage
========================

File-backed persistence for collected training data and trained models.

``BlobStore`` keeps one JSON document per key in a directory.
``DatasetStore`` builds the application layout on top of it:

    signspeak-dataset            static samples {label, features, timestamp}
    signspeak-model              static classifier record
    signspeak-sequence-dataset   sequence samples {label, sequence, timestamp, duration}
    signspeak-sequence-model     dtw-sequence classifier record

Timestamps are milliseconds since the epoch.
"""

import json
import logging
import os
import re
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import numpy as np

from signspeak.errors import InvalidInputError
from signspeak.features.normalizer import validate_feature
from signspeak.persistence.codec import ClassifierRecord, load_record_or_none
from signspeak.recognition.labels import is_valid_label
from signspeak.recognition.sequence_classifier import validate_sequence

logger = logging.getLogger(__name__)

DATASET_KEY = "signspeak-dataset"
MODEL_KEY = "signspeak-model"
SEQUENCE_DATASET_KEY = "signspeak-sequence-dataset"
SEQUENCE_MODEL_KEY = "signspeak-sequence-model"

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class StorageConfig:
    """Storage location for datasets and models."""
    root: str = "data/store"

    @classmethod
    def from_dict(cls, config: dict) -> "StorageConfig":
        """Create config from dictionary."""
        return cls(root=config.get("root", "data/store"))


class BlobStore:
    """Key/value store holding one JSON file per key.

    Writes go to a temporary file that is renamed over the target, so a
    reader sees either the old or the new document.
    """

    def __init__(self, root):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise InvalidInputError("Invalid storage key: %r" % key)
        return self.root / f"{key}.json"

    def get(self, key: str, default=None):
        """Decoded value for ``key``; ``default`` if absent or unreadable."""
        path = self._path(key)
        try:
            with open(path, "r") as f:
                return json.load(f)
        except FileNotFoundError:
            return default
        except ValueError as e:
            logger.warning("Corrupt blob %s: %s", path, e)
            return default

    def set(self, key: str, value) -> None:
        path = self._path(key)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.root), suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(value, f)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def delete(self, key: str) -> bool:
        try:
            self._path(key).unlink()
            return True
        except FileNotFoundError:
            return False

    def keys(self) -> List[str]:
        return sorted(p.stem for p in self.root.glob("*.json"))

    def __contains__(self, key: str) -> bool:
        return self._path(key).exists()


class DatasetStore:
    """Training data and model persistence for static and dynamic signs.

    Example:
        >>> store = DatasetStore("data/store")
        >>> store.save_samples("hello", features)
        >>> X, y = store.get_all_samples()
        >>> store.save_model(classifier.export_model())
    """

    def __init__(self, root=None, blobs: BlobStore = None):
        if blobs is None:
            blobs = BlobStore(root or StorageConfig().root)
        self.blobs = blobs

    @classmethod
    def from_config(cls, config: StorageConfig) -> "DatasetStore":
        return cls(root=config.root)

    # ------------------------------------------------------------------
    # Static samples
    # ------------------------------------------------------------------

    def load_dataset(self) -> dict:
        return self._load_collection(DATASET_KEY)

    def save_samples(self, label: str, features) -> int:
        """Append feature vectors recorded for ``label``; returns count added."""
        self._check_label(label)
        rows = [validate_feature(f).tolist() for f in features]

        dataset = self.load_dataset()
        timestamp = _now_ms()
        dataset["samples"].extend(
            {"label": label, "features": row, "timestamp": timestamp} for row in rows
        )
        dataset["updated_at"] = timestamp
        self.blobs.set(DATASET_KEY, dataset)
        logger.info("Saved %d samples for '%s'", len(rows), label)
        return len(rows)

    def get_all_samples(self) -> Tuple[List[np.ndarray], List[str]]:
        samples = self.load_dataset()["samples"]
        X = [np.asarray(s["features"], dtype=np.float32) for s in samples]
        y = [s["label"] for s in samples]
        return X, y

    def get_samples_by_label(self, label: str) -> List[np.ndarray]:
        return [
            np.asarray(s["features"], dtype=np.float32)
            for s in self.load_dataset()["samples"]
            if s["label"] == label
        ]

    def sample_counts(self) -> Dict[str, int]:
        return self._count_labels(self.load_dataset()["samples"])

    def delete_samples_by_label(self, label: str) -> int:
        """Remove all samples of one label; returns the number removed."""
        dataset = self.load_dataset()
        before = len(dataset["samples"])
        dataset["samples"] = [s for s in dataset["samples"] if s["label"] != label]
        removed = before - len(dataset["samples"])
        dataset["updated_at"] = _now_ms()
        self.blobs.set(DATASET_KEY, dataset)
        logger.info("Deleted %d samples for '%s'", removed, label)
        return removed

    def clear_dataset(self) -> None:
        self.blobs.delete(DATASET_KEY)

    # ------------------------------------------------------------------
    # Static model
    # ------------------------------------------------------------------

    def save_model(self, record: ClassifierRecord) -> None:
        self.blobs.set(MODEL_KEY, record.to_dict())

    def load_model(self) -> Optional[ClassifierRecord]:
        """Stored static model, or None when absent or invalid."""
        return load_record_or_none(self.blobs.get(MODEL_KEY))

    def clear_model(self) -> None:
        self.blobs.delete(MODEL_KEY)

    # ------------------------------------------------------------------
    # Sequences
    # ------------------------------------------------------------------

    def load_sequence_dataset(self) -> dict:
        return self._load_collection(SEQUENCE_DATASET_KEY)

    def save_sequence(self, label: str, sequence, duration_ms: float) -> None:
        self._check_label(label)
        if not validate_sequence(sequence):
            raise InvalidInputError("Sequence is empty or has ragged frames")

        dataset = self.load_sequence_dataset()
        timestamp = _now_ms()
        dataset["samples"].append({
            "label": label,
            "sequence": np.asarray(sequence, dtype=np.float32).tolist(),
            "timestamp": timestamp,
            "duration": duration_ms,
        })
        dataset["updated_at"] = timestamp
        self.blobs.set(SEQUENCE_DATASET_KEY, dataset)
        logger.info("Saved %d-frame sequence for '%s'", len(sequence), label)

    def get_all_sequences(self) -> Tuple[List[np.ndarray], List[str]]:
        samples = self.load_sequence_dataset()["samples"]
        sequences = [np.asarray(s["sequence"], dtype=np.float32) for s in samples]
        labels = [s["label"] for s in samples]
        return sequences, labels

    def sequence_sample_counts(self) -> Dict[str, int]:
        return self._count_labels(self.load_sequence_dataset()["samples"])

    def clear_sequence_dataset(self) -> None:
        self.blobs.delete(SEQUENCE_DATASET_KEY)

    def save_sequence_model(self, record: ClassifierRecord) -> None:
        self.blobs.set(SEQUENCE_MODEL_KEY, record.to_dict())

    def load_sequence_model(self) -> Optional[ClassifierRecord]:
        return load_record_or_none(self.blobs.get(SEQUENCE_MODEL_KEY))

    def clear_sequence_model(self) -> None:
        self.blobs.delete(SEQUENCE_MODEL_KEY)

    # ------------------------------------------------------------------
    # Bulk export / import and statistics
    # ------------------------------------------------------------------

    def export_all(self) -> str:
        """Static dataset and model as one JSON document."""
        model = self.load_model()
        return json.dumps(
            {
                "dataset": self.load_dataset(),
                "model": model.to_dict() if model else None,
                "exported_at": _now_ms(),
            },
            indent=2,
        )

    def import_all(self, text: str) -> None:
        """Restore the parts present in an ``export_all`` document.

        Nothing is written unless the whole document is valid.

        Raises:
            InvalidInputError: on malformed JSON, a malformed model record
                or a dataset sample without a valid label and feature vector
        """
        try:
            data = json.loads(text)
        except ValueError as e:
            raise InvalidInputError("Failed to import data: %s" % e) from e
        if not isinstance(data, dict):
            raise InvalidInputError("Failed to import data: expected a JSON object")

        model = None
        if data.get("model"):
            model = load_record_or_none(data["model"])
            if model is None:
                raise InvalidInputError("Failed to import data: invalid model record")
        dataset = data.get("dataset")
        if dataset:
            self._check_dataset(dataset)

        if model is not None:
            self.save_model(model)
        if dataset:
            self.blobs.set(DATASET_KEY, dataset)
        logger.info("Imported data (dataset=%s, model=%s)",
                    bool(data.get("dataset")), bool(data.get("model")))

    def stats(self) -> dict:
        dataset = self.load_dataset()
        return {
            "sample_count": len(dataset["samples"]),
            "label_count": len({s["label"] for s in dataset["samples"]}),
            "has_model": self.load_model() is not None,
            "dataset_size": len(json.dumps(dataset)),
        }

    def sequence_stats(self) -> dict:
        dataset = self.load_sequence_dataset()
        samples = dataset["samples"]
        avg_length = (
            sum(len(s["sequence"]) for s in samples) / len(samples) if samples else 0
        )
        return {
            "sample_count": len(samples),
            "label_count": len({s["label"] for s in samples}),
            "has_model": self.load_sequence_model() is not None,
            "dataset_size": len(json.dumps(dataset)),
            "avg_sequence_length": int(round(avg_length)),
        }

    # ------------------------------------------------------------------

    def _load_collection(self, key: str) -> dict:
        data = self.blobs.get(key)
        if not isinstance(data, dict) or not isinstance(data.get("samples"), list):
            now = _now_ms()
            return {"samples": [], "created_at": now, "updated_at": now}
        return data

    @staticmethod
    def _count_labels(samples) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for sample in samples:
            counts[sample["label"]] = counts.get(sample["label"], 0) + 1
        return counts

    @classmethod
    def _check_dataset(cls, dataset) -> None:
        """Apply the ``save_samples`` rules to every sample of a dataset."""
        if not isinstance(dataset, dict) or not isinstance(dataset.get("samples"), list):
            raise InvalidInputError("Failed to import data: dataset needs a 'samples' list")
        for i, sample in enumerate(dataset["samples"]):
            if (not isinstance(sample, dict) or "features" not in sample
                    or not isinstance(sample.get("label"), str)):
                raise InvalidInputError("Failed to import data: sample %d is malformed" % i)
            cls._check_label(sample["label"])
            validate_feature(sample["features"])

    @staticmethod
    def _check_label(label: str) -> None:
        if not is_valid_label(label):
            raise InvalidInputError(
                "Invalid label %r: use letters, digits and underscores" % (label,)
            )
