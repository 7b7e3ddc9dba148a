"""
Feature normalization: 21-point hand landmarks -> classifier feature vector.

Converts raw landmarks into a translation, scale and in-plane rotation
invariant vector suitable for nearest-neighbor and linear classifiers.

Per-hand layout (42 dimensions, 57 with geometric augmentation):
    [0:42]   Wrist-centred, scaled, rotated (x, y) pairs, row-major
    [42:57]  Pairwise distances among wrist + 5 fingertips (optional)

Multi-hand layout is two per-hand blocks (84 / 114) in detector order;
a missing hand contributes a zero block.
"""

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from signspeak.detection.landmarks import (
    FINGER_TIPS,
    MAX_HANDS,
    NUM_LANDMARKS,
    HandPose,
    LandmarkIndex,
)
from signspeak.errors import InvalidInputError

logger = logging.getLogger(__name__)

WRIST = LandmarkIndex.WRIST
INDEX_MCP = LandmarkIndex.INDEX_MCP
MIDDLE_MCP = LandmarkIndex.MIDDLE_MCP
PINKY_MCP = LandmarkIndex.PINKY_MCP

# Wrist + five fingertips -> 15 pairwise distances
GEOMETRIC_KEYPOINTS = (WRIST,) + FINGER_TIPS

BASE_FEATURE_DIM = NUM_LANDMARKS * 2
GEOMETRIC_FEATURE_DIM = 15
VALID_FEATURE_DIMS = (42, 57, 84, 114)

DEGENERATE_SCALE_EPS = 1e-6


def _as_points(pose) -> np.ndarray:
    """Coerce a HandPose or (21, 3) array-like into a float64 array."""
    if isinstance(pose, HandPose):
        return pose.to_numpy()
    points = np.asarray(pose, dtype=np.float64)
    if points.ndim != 2 or points.shape != (NUM_LANDMARKS, 3):
        raise InvalidInputError(
            "Expected (%d, 3) landmarks, got %s" % (NUM_LANDMARKS, str(points.shape))
        )
    return points


def normalize_landmarks(pose) -> np.ndarray:
    """Normalize one hand into a 42-dim invariant feature vector.

    Steps: wrist to origin, divide by wrist->middle-MCP length, rotate so
    index-MCP->pinky-MCP lies on +x, drop z.

    Args:
        pose: HandPose or array of shape (21, 3)

    Returns:
        np.ndarray of shape (42,), dtype float32. All zeros for a
        collapsed pose.
    """
    points = _as_points(pose)

    translated = points - points[WRIST]

    scale = float(np.linalg.norm(translated[MIDDLE_MCP]))
    if scale < DEGENERATE_SCALE_EPS:
        return np.zeros(BASE_FEATURE_DIM, dtype=np.float32)

    scaled = translated / scale

    dx, dy = scaled[PINKY_MCP, :2] - scaled[INDEX_MCP, :2]
    angle = np.arctan2(dy, dx)
    cos_a = np.cos(-angle)
    sin_a = np.sin(-angle)

    xs = scaled[:, 0] * cos_a - scaled[:, 1] * sin_a
    ys = scaled[:, 0] * sin_a + scaled[:, 1] * cos_a

    return np.column_stack([xs, ys]).reshape(-1).astype(np.float32)


def extract_geometric_features(pose) -> np.ndarray:
    """Pairwise 3-D distances among the wrist and fingertips (15 dims).

    Computed on raw landmark coordinates, ordered (i, j) with i < j over
    ``GEOMETRIC_KEYPOINTS``.
    """
    points = _as_points(pose)
    keypoints = points[list(GEOMETRIC_KEYPOINTS)]
    distances = [
        np.linalg.norm(keypoints[i] - keypoints[j])
        for i in range(len(keypoints))
        for j in range(i + 1, len(keypoints))
    ]
    return np.asarray(distances, dtype=np.float32)


def to_feature_vector(pose, include_geometric: bool = False) -> np.ndarray:
    """Per-hand feature vector: 42 dims, or 57 with geometric features."""
    normalized = normalize_landmarks(pose)
    if not include_geometric:
        return normalized
    return np.concatenate([normalized, extract_geometric_features(pose)])


def to_multi_hand_feature_vector(poses: Sequence, include_geometric: bool = False) -> np.ndarray:
    """Two-slot feature vector for 0, 1 or 2 hands.

    Hands fill slots in detector order; there is no left/right identity
    assignment, so the same hand may land in either slot across frames.
    """
    if len(poses) > MAX_HANDS:
        raise InvalidInputError("Expected at most %d hands, got %d" % (MAX_HANDS, len(poses)))

    per_hand = feature_dimension(include_geometric)
    features = np.zeros(per_hand * MAX_HANDS, dtype=np.float32)
    for slot, pose in enumerate(poses):
        features[slot * per_hand:(slot + 1) * per_hand] = to_feature_vector(pose, include_geometric)
    return features


def feature_dimension(include_geometric: bool = False) -> int:
    """Per-hand feature length (42 or 57)."""
    return BASE_FEATURE_DIM + (GEOMETRIC_FEATURE_DIM if include_geometric else 0)


def multi_hand_feature_dimension(include_geometric: bool = False) -> int:
    """Two-hand feature length (84 or 114)."""
    return feature_dimension(include_geometric) * MAX_HANDS


def is_valid_feature(feature) -> bool:
    """True when the vector has a known length and only finite values."""
    arr = np.asarray(feature)
    if arr.ndim != 1 or arr.shape[0] not in VALID_FEATURE_DIMS:
        return False
    return bool(np.all(np.isfinite(arr)))


def validate_feature(feature) -> np.ndarray:
    """Return ``feature`` as a float32 vector or raise InvalidInputError."""
    try:
        arr = np.asarray(feature, dtype=np.float32)
    except (TypeError, ValueError) as e:
        raise InvalidInputError("Feature vector is not numeric: %s" % e) from e
    if not is_valid_feature(arr):
        raise InvalidInputError(
            "Invalid feature vector: shape %s (expected length in %s, finite values)"
            % (str(arr.shape), VALID_FEATURE_DIMS)
        )
    return arr


@dataclass
class FeatureConfig:
    """Feature normalizer configuration.

    The same settings must be used for training and inference.
    """
    include_geometric: bool = False
    multi_hand: bool = True

    @classmethod
    def from_dict(cls, config: dict) -> "FeatureConfig":
        """Create config from dictionary."""
        return cls(
            include_geometric=config.get("include_geometric", False),
            multi_hand=config.get("multi_hand", True),
        )


class FeatureNormalizer:
    """Applies one fixed feature configuration to poses and frames.

    Example:
        >>> normalizer = FeatureNormalizer(FeatureConfig(multi_hand=True))
        >>> features = normalizer.extract_frame(poses)   # (84,)
    """

    def __init__(self, config: FeatureConfig = None):
        self.config = config or FeatureConfig()

    @property
    def feature_dim(self) -> int:
        if self.config.multi_hand:
            return multi_hand_feature_dimension(self.config.include_geometric)
        return feature_dimension(self.config.include_geometric)

    def extract(self, pose) -> np.ndarray:
        """Single-hand feature vector for one pose."""
        return to_feature_vector(pose, self.config.include_geometric)

    def extract_frame(self, poses: Sequence) -> np.ndarray:
        """Feature vector for one frame's detected hands.

        In single-hand mode only the first detected hand is used; a frame
        with no hands yields a zero vector.
        """
        if self.config.multi_hand:
            return to_multi_hand_feature_vector(poses, self.config.include_geometric)
        if not poses:
            return np.zeros(self.feature_dim, dtype=np.float32)
        return self.extract(poses[0])

    def extract_batch(self, frames: Sequence) -> np.ndarray:
        """Vectorised extraction for a batch of frames.

        Args:
            frames: sequence of per-frame pose lists

        Returns:
            np.ndarray of shape (N, feature_dim)
        """
        out = np.zeros((len(frames), self.feature_dim), dtype=np.float32)
        for i, poses in enumerate(frames):
            out[i] = self.extract_frame(poses)
        return out
