"""Landmark feature normalization."""
from .normalizer import (
    FeatureConfig,
    FeatureNormalizer,
    extract_geometric_features,
    feature_dimension,
    is_valid_feature,
    multi_hand_feature_dimension,
    normalize_landmarks,
    to_feature_vector,
    to_multi_hand_feature_vector,
    validate_feature,
)

__all__ = [
    "FeatureConfig",
    "FeatureNormalizer",
    "extract_geometric_features",
    "feature_dimension",
    "is_valid_feature",
    "multi_hand_feature_dimension",
    "normalize_landmarks",
    "to_feature_vector",
    "to_multi_hand_feature_vector",
    "validate_feature",
]
