"""Hand landmark input types."""
from .landmarks import HandPose, Landmark, LandmarkIndex, poses_from_detection

__all__ = ["HandPose", "Landmark", "LandmarkIndex", "poses_from_detection"]
