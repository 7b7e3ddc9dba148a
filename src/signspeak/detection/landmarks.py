"""
Hand Landmark Types
====================

Input boundary of the pipeline. Landmarks arrive from an external hand-pose
detector (MediaPipe HandLandmarker or similar), at most two hands per frame,
in detector-assigned order. No hand identity is tracked across frames.
"""

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, List, NamedTuple, Sequence

import numpy as np

from signspeak.errors import InvalidInputError

logger = logging.getLogger(__name__)

NUM_LANDMARKS = 21
MAX_HANDS = 2


class LandmarkIndex(IntEnum):
    """Hand landmark indices following MediaPipe convention."""
    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_MCP = 5
    INDEX_PIP = 6
    INDEX_DIP = 7
    INDEX_TIP = 8
    MIDDLE_MCP = 9
    MIDDLE_PIP = 10
    MIDDLE_DIP = 11
    MIDDLE_TIP = 12
    RING_MCP = 13
    RING_PIP = 14
    RING_DIP = 15
    RING_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


FINGER_TIPS = (
    LandmarkIndex.THUMB_TIP,
    LandmarkIndex.INDEX_TIP,
    LandmarkIndex.MIDDLE_TIP,
    LandmarkIndex.RING_TIP,
    LandmarkIndex.PINKY_TIP,
)


class Landmark(NamedTuple):
    """A single landmark point with image-normalized coordinates."""
    x: float  # 0.0 to 1.0, normalized by image width
    y: float  # 0.0 to 1.0, normalized by image height
    z: float  # Depth relative to wrist


@dataclass(frozen=True)
class HandPose:
    """Exactly 21 landmarks of one detected hand.

    ``handedness`` and ``confidence`` are detector metadata and do not
    take part in feature extraction.
    """
    landmarks: tuple
    handedness: str = ""
    confidence: float = 0.0

    def __post_init__(self):
        if len(self.landmarks) != NUM_LANDMARKS:
            raise InvalidInputError(
                f"Expected {NUM_LANDMARKS} landmarks, got {len(self.landmarks)}"
            )
        try:
            landmarks = tuple(Landmark(*map(float, lm)) for lm in self.landmarks)
        except (TypeError, ValueError) as e:
            raise InvalidInputError(f"Landmarks must be (x, y, z) triples: {e}") from e
        object.__setattr__(self, "landmarks", landmarks)

    @classmethod
    def from_array(cls, points, handedness: str = "", confidence: float = 0.0) -> "HandPose":
        """Create a pose from a (21, 3) or (21, 2) array-like."""
        arr = np.asarray(points, dtype=np.float64)
        if arr.ndim != 2 or arr.shape[0] != NUM_LANDMARKS or arr.shape[1] not in (2, 3):
            raise InvalidInputError(
                f"Expected ({NUM_LANDMARKS}, 3) landmarks, got {arr.shape}"
            )
        if arr.shape[1] == 2:
            arr = np.hstack([arr, np.zeros((NUM_LANDMARKS, 1))])
        return cls(tuple(Landmark(*row) for row in arr.tolist()), handedness, confidence)

    @classmethod
    def from_points(cls, points: Iterable, handedness: str = "", confidence: float = 0.0) -> "HandPose":
        """Create a pose from objects exposing ``.x``, ``.y`` and ``.z``.

        Works directly on MediaPipe ``NormalizedLandmark`` lists.
        """
        landmarks = tuple(
            Landmark(x=p.x, y=p.y, z=getattr(p, "z", 0.0)) for p in points
        )
        return cls(landmarks, handedness, confidence)

    def get(self, index: LandmarkIndex) -> Landmark:
        """Get landmark by index."""
        return self.landmarks[index]

    def to_numpy(self) -> np.ndarray:
        """Convert landmarks to numpy array of shape (21, 3)."""
        return np.array(self.landmarks, dtype=np.float64)

    def __len__(self) -> int:
        return len(self.landmarks)


def poses_from_detection(hand_landmarks: Sequence, handedness: Sequence = ()) -> List[HandPose]:
    """Convert a detector result (list of per-hand landmark lists) to HandPoses.

    Args:
        hand_landmarks: e.g. ``HandLandmarkerResult.hand_landmarks``
        handedness: e.g. ``HandLandmarkerResult.handedness``; optional

    Returns:
        Up to two HandPoses in detector order
    """
    poses = []
    for i, points in enumerate(hand_landmarks):
        label, score = "", 0.0
        if len(handedness) > i and handedness[i]:
            category = handedness[i][0]
            label = getattr(category, "category_name", "")
            score = getattr(category, "score", 0.0)
        poses.append(HandPose.from_points(points, label, score))

    if len(poses) > MAX_HANDS:
        logger.debug("Detector returned %d hands, keeping first %d", len(poses), MAX_HANDS)
        poses = poses[:MAX_HANDS]
    return poses
