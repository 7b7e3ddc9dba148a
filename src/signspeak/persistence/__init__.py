"""Model record serialization."""
from .codec import (
    ClassifierRecord,
    check_compatible,
    dumps,
    infer_feature_dim,
    load_record_or_none,
    loads,
)

__all__ = [
    "ClassifierRecord",
    "check_compatible",
    "dumps",
    "infer_feature_dim",
    "load_record_or_none",
    "loads",
]
