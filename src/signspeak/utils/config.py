"""
Centralized configuration manager.
Loads config/config.yaml over built-in defaults and provides dotted access.

Validation only warns: a wrong type in the YAML is reported and the value
is left for the component's dataclass config to deal with.
"""

import copy
import os
import yaml
import logging

logger = logging.getLogger(__name__)

_BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))
_CONFIG_DIR = os.path.join(_BASE_DIR, "config")

DEFAULTS = {
    "features": {
        "include_geometric": False,
        "multi_hand": True,
    },
    "classifier": {
        "type": "knn",
        "knn": {"k": 5},
        "logistic": {"learning_rate": 0.1, "iterations": 100},
    },
    "smoothing": {
        "window_size": 15,
        "min_hold_frames": 8,
        "min_confidence": 0.6,
    },
    "sequence": {
        "k": 3,
        "window_size": None,
        "target_length": None,
        "min_confidence": 0.6,
        "max_frames": 60,
    },
    "storage": {
        "root": "data/store",
    },
    "session": {
        "frame_budget_ms": 33.0,
        "performance_window": 30,
    },
    "logging": {
        "level": "INFO",
        "file": None,
        "max_size_mb": 10,
        "backup_count": 3,
    },
}

# Schema: sections and the expected types of their fields
_CONFIG_SCHEMA = {
    "features": {
        "include_geometric": bool,
        "multi_hand": bool,
    },
    "classifier": {
        "type": str,
        "knn": dict,
        "logistic": dict,
    },
    "smoothing": {
        "window_size": int,
        "min_hold_frames": int,
        "min_confidence": float,
    },
    "sequence": {
        "k": int,
        "window_size": int,
        "target_length": int,
        "min_confidence": float,
        "max_frames": int,
    },
    "storage": {
        "root": str,
    },
    "session": {
        "frame_budget_ms": float,
        "performance_window": int,
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base dict."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    """Singleton configuration manager.

    Example:
        >>> config = Config().load()
        >>> config.get("smoothing.window_size")
        15
    """

    _instance = None
    _data = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._data = copy.deepcopy(DEFAULTS)
        return cls._instance

    def load(self, config_path=None):
        """Load YAML config and merge it over the defaults."""
        config_path = config_path or os.path.join(_CONFIG_DIR, "config.yaml")

        try:
            with open(config_path, "r") as f:
                loaded = yaml.safe_load(f) or {}
            logger.info("Loaded config from %s", config_path)
        except FileNotFoundError:
            logger.warning("Config file not found: %s, using defaults", config_path)
            loaded = {}

        if not isinstance(loaded, dict):
            logger.warning("Config root should be a mapping, got %s; using defaults",
                           type(loaded).__name__)
            loaded = {}

        self._data = _deep_merge(copy.deepcopy(DEFAULTS), loaded)
        self._validate()
        return self

    def _validate(self):
        """Check config fields against the schema, warning on mismatches."""
        warnings = []
        for section_name, fields in _CONFIG_SCHEMA.items():
            section = self._data.get(section_name)
            if not isinstance(section, dict):
                warnings.append(
                    f"Section '{section_name}' should be a dict, got {type(section).__name__}"
                )
                continue
            for field_name, expected_type in fields.items():
                value = section.get(field_name)
                if value is None:
                    continue
                # Allow int where float is expected
                if expected_type is float and isinstance(value, (int, float)) and not isinstance(value, bool):
                    continue
                if expected_type is int and isinstance(value, bool):
                    warnings.append(f"{section_name}.{field_name}: expected int, got bool")
                    continue
                if not isinstance(value, expected_type):
                    warnings.append(
                        f"{section_name}.{field_name}: expected {expected_type.__name__}, "
                        f"got {type(value).__name__} ({value!r})"
                    )

        if warnings:
            for w in warnings:
                logger.warning("Config validation: %s", w)
        else:
            logger.debug("Config validation passed")
        return warnings

    def get(self, key_path: str, default=None):
        """Get nested config value using dot notation: 'smoothing.window_size'."""
        value = self._data
        for key in key_path.split("."):
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def get_section(self, section: str) -> dict:
        return self._data.get(section, {})

    @property
    def features(self) -> dict:
        return self.get_section("features")

    @property
    def classifier(self) -> dict:
        return self.get_section("classifier")

    @property
    def smoothing(self) -> dict:
        return self.get_section("smoothing")

    @property
    def sequence(self) -> dict:
        return self.get_section("sequence")

    @property
    def storage(self) -> dict:
        return self.get_section("storage")

    @property
    def session(self) -> dict:
        return self.get_section("session")

    @property
    def logging(self) -> dict:
        return self.get_section("logging")

    @property
    def base_dir(self) -> str:
        return _BASE_DIR

    @classmethod
    def reset(cls):
        """Reset singleton instance (for testing)."""
        cls._instance = None
        cls._data = {}
