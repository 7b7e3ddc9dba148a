"""
Shared fixtures: synthetic hand poses and labeled feature sets.
"""

import math

import numpy as np
import pytest

from signspeak.detection.landmarks import HandPose, Landmark
from signspeak.features.normalizer import FeatureNormalizer, FeatureConfig
from signspeak.utils.config import Config


# Finger column x-offsets and joint y-offsets (MCP, PIP, DIP, TIP up, TIP down)
_FINGERS = {
    "index": (-0.05, (0.08, 0.14, 0.20, 0.28, 0.10)),
    "middle": (0.0, (0.09, 0.16, 0.23, 0.32, 0.11)),
    "ring": (0.04, (0.08, 0.14, 0.20, 0.27, 0.10)),
    "pinky": (0.08, (0.07, 0.12, 0.16, 0.22, 0.09)),
}

HAND_SHAPES = {
    "hello": {"thumb": "up", "index": "up", "middle": "up", "ring": "up", "pinky": "up"},
    "yes": {},
    "ily": {"thumb": "up", "index": "up", "pinky": "up"},
    "no": {"index": "up", "middle": "up"},
}


def create_mock_pose(finger_states=None, base=(0.5, 0.6), scale=1.0, angle=0.0,
                     noise=0.0, rng=None) -> HandPose:
    """Build a 21-landmark hand.

    Args:
        finger_states: finger -> "up" / "down" (missing means down)
        base: wrist position in image coordinates
        scale: uniform hand size multiplier
        angle: in-plane rotation about the wrist, radians
        noise: std-dev of gaussian jitter added to every coordinate
    """
    finger_states = finger_states or {}
    points = [(0.0, 0.0)]

    thumb_up = finger_states.get("thumb", "down") == "up"
    points += [(-0.04, -0.02), (-0.08, -0.04), (-0.11, -0.06)]
    points.append((-0.15, -0.08) if thumb_up else (-0.06, -0.07))

    for name in ("index", "middle", "ring", "pinky"):
        x, (mcp, pip, dip, tip_up, tip_down) = _FINGERS[name]
        up = finger_states.get(name, "down") == "up"
        for y_off in (mcp, pip, dip, tip_up if up else tip_down):
            points.append((x, -y_off))

    cos_a, sin_a = math.cos(angle), math.sin(angle)
    landmarks = []
    for i, (x, y) in enumerate(points):
        rx = (x * cos_a - y * sin_a) * scale
        ry = (x * sin_a + y * cos_a) * scale
        z = -0.01 * (i % 4) * scale
        if noise and rng is not None:
            rx, ry, z = np.array([rx, ry, z]) + rng.normal(0.0, noise, 3)
        landmarks.append(Landmark(base[0] + rx, base[1] + ry, z))
    return HandPose(tuple(landmarks))


@pytest.fixture
def pose_factory():
    return create_mock_pose


@pytest.fixture
def hand_shapes():
    return dict(HAND_SHAPES)


@pytest.fixture
def rng():
    return np.random.RandomState(0)


@pytest.fixture
def single_hand_dataset(rng):
    """(X, y) of 42-dim features, 8 jittered samples per shape."""
    normalizer = FeatureNormalizer(FeatureConfig(multi_hand=False))
    X, y = [], []
    for label, states in HAND_SHAPES.items():
        for _ in range(8):
            pose = create_mock_pose(states, noise=0.002, rng=rng)
            X.append(normalizer.extract(pose))
            y.append(label)
    return X, y


@pytest.fixture
def two_hand_dataset(rng):
    """(X, y) of 84-dim features from one-hand frames."""
    normalizer = FeatureNormalizer(FeatureConfig(multi_hand=True))
    X, y = [], []
    for label, states in HAND_SHAPES.items():
        for _ in range(6):
            pose = create_mock_pose(states, noise=0.002, rng=rng)
            X.append(normalizer.extract_frame([pose]))
            y.append(label)
    return X, y


@pytest.fixture(autouse=True)
def reset_config():
    """Config is a singleton; isolate tests from each other."""
    Config.reset()
    yield
    Config.reset()
