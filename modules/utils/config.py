"""
Centralized configuration manager.
Loads config/config.yaml over built-in defaults and provides typed access.

    - Schema validation for critical config fields (warnings, never raises)
    - Dot-path access: Config().get("camera.width")
    - Reset support for testing
"""

import os
import copy
import yaml
import logging

logger = logging.getLogger(__name__)

_BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
_CONFIG_DIR = os.path.join(_BASE_DIR, "config")

DEFAULT_CONFIG = {
    "camera": {
        "device_id": 0,
        "width": 640,
        "height": 480,
        "fps": 30,
        "max_width": 1920,
        "max_height": 1080,
        "flip_horizontal": True,
        "warmup_frames": 5,
        "acquire_timeout_s": 5.0,
        "max_read_failures": 30,
    },
    "hand_landmarker": {
        "model_path": "",
        "max_num_hands": 2,
        "min_detection_confidence": 0.5,
        "min_presence_confidence": 0.5,
        "min_tracking_confidence": 0.5,
    },
    "recognition": {
        "ok_tolerance": 0.05,
    },
    "demo": {
        "confirmation_s": 2.0,
    },
    "speech": {
        "language": "fr-FR",
        "device_index": None,
        "acquire_timeout_s": 5.0,
        "ambient_noise_s": 0.5,
        "pause_threshold": 0.8,
        "phrase_time_limit_s": 8.0,
        "no_signal_limit": 3,
    },
    "logging": {
        "level": "INFO",
        "file": None,
        "max_size_mb": 10,
        "backup_count": 3,
    },
}

# Schema: required sections and their expected types
_CONFIG_SCHEMA = {
    "camera": {
        "device_id": int,
        "width": int,
        "height": int,
        "fps": int,
        "acquire_timeout_s": float,
    },
    "hand_landmarker": {
        "max_num_hands": int,
        "min_detection_confidence": float,
        "min_tracking_confidence": float,
    },
    "recognition": {
        "ok_tolerance": float,
    },
    "demo": {
        "confirmation_s": float,
    },
    "speech": {
        "language": str,
        "acquire_timeout_s": float,
        "no_signal_limit": int,
    },
    "logging": {
        "level": str,
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base dict."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    """Singleton configuration manager."""

    _instance = None
    _data = copy.deepcopy(DEFAULT_CONFIG)

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def load(self, config_path=None):
        """Load configuration from YAML, merged over the defaults."""
        config_path = config_path or os.path.join(_CONFIG_DIR, "config.yaml")

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                overrides = yaml.safe_load(f) or {}
            logger.info("Loaded config from %s", config_path)
        except FileNotFoundError:
            logger.warning("Config file not found: %s, using defaults", config_path)
            overrides = {}

        if not isinstance(overrides, dict):
            logger.warning("Config file %s is not a mapping, using defaults", config_path)
            overrides = {}

        self._data = _deep_merge(DEFAULT_CONFIG, overrides)
        self._validate()
        return self

    def _validate(self):
        """Validate critical config fields against schema."""
        warnings = []
        for section_name, fields in _CONFIG_SCHEMA.items():
            section = self._data.get(section_name)
            if section is None:
                warnings.append(f"Missing config section: '{section_name}'")
                continue
            if not isinstance(section, dict):
                warnings.append(f"Section '{section_name}' should be a dict, got {type(section).__name__}")
                continue
            for field_name, expected_type in fields.items():
                if field_name in section:
                    value = section[field_name]
                    # Allow int where float is expected
                    if expected_type is float and isinstance(value, (int, float)) and not isinstance(value, bool):
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
        """Get nested config value using dot notation: 'camera.width'."""
        keys = key_path.split(".")
        value = self._data
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def get_section(self, section: str) -> dict:
        """Get an entire config section."""
        return self._data.get(section, {})

    @property
    def camera(self) -> dict:
        return self._data.get("camera", {})

    @property
    def hand_landmarker(self) -> dict:
        return self._data.get("hand_landmarker", {})

    @property
    def recognition(self) -> dict:
        return self._data.get("recognition", {})

    @property
    def demo(self) -> dict:
        return self._data.get("demo", {})

    @property
    def speech(self) -> dict:
        return self._data.get("speech", {})

    @property
    def log_config(self) -> dict:
        return self._data.get("logging", {})

    @property
    def gesture_pipeline(self) -> dict:
        """Flattened settings consumed by GesturePipeline."""
        return {
            "acquire_timeout_s": self.camera.get("acquire_timeout_s", 5.0),
            "ok_tolerance": self.recognition.get("ok_tolerance", 0.05),
            "confirmation_s": self.demo.get("confirmation_s", 2.0),
        }

    @property
    def base_dir(self) -> str:
        return _BASE_DIR

    @classmethod
    def reset(cls):
        """Reset singleton instance (for testing)."""
        cls._instance = None
        cls._data = copy.deepcopy(DEFAULT_CONFIG)
