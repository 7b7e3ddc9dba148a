"""Training data and model storage."""
from .store import BlobStore, DatasetStore, StorageConfig

__all__ = ["BlobStore", "DatasetStore", "StorageConfig"]
