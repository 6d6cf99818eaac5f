"""
Tests for the YAML configuration manager.
"""

import logging
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from modules.utils.config import Config, DEFAULT_CONFIG


@pytest.fixture(autouse=True)
def fresh_config():
    Config.reset()
    yield
    Config.reset()


def write_yaml(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return str(path)


class TestConfig:

    def test_singleton(self):
        assert Config() is Config()

    def test_defaults_without_file(self, tmp_path):
        config = Config().load(str(tmp_path / "missing.yaml"))

        assert config.get("camera.width") == DEFAULT_CONFIG["camera"]["width"]
        assert config.get("speech.language") == "fr-FR"
        assert config.get("demo.confirmation_s") == 2.0

    def test_file_overrides_merge_with_defaults(self, tmp_path):
        path = write_yaml(tmp_path, "camera:\n  width: 1280\nspeech:\n  language: en-US\n")

        config = Config().load(path)

        assert config.get("camera.width") == 1280
        assert config.get("camera.height") == 480
        assert config.speech["language"] == "en-US"
        assert config.speech["acquire_timeout_s"] == 5.0

    def test_get_missing_returns_default(self):
        config = Config().load()

        assert config.get("camera.nope", 42) == 42
        assert config.get("nope.deeper") is None

    def test_validation_warns_without_raising(self, tmp_path, caplog):
        path = write_yaml(tmp_path, "camera:\n  width: wide\n")

        with caplog.at_level(logging.WARNING):
            config = Config().load(path)

        assert config.get("camera.width") == "wide"
        assert any("camera.width" in r.getMessage() for r in caplog.records)

    def test_int_accepted_for_float(self, tmp_path):
        path = write_yaml(tmp_path, "recognition:\n  ok_tolerance: 1\n")
        config = Config().load(path)

        assert config._validate() == []

    def test_non_mapping_file_falls_back_to_defaults(self, tmp_path):
        path = write_yaml(tmp_path, "- just\n- a list\n")

        config = Config().load(path)

        assert config.camera == DEFAULT_CONFIG["camera"]

    def test_mutating_section_leaves_defaults_intact(self, tmp_path):
        config = Config().load(str(tmp_path / "missing.yaml"))

        config.camera["width"] = 1
        Config.reset()

        assert DEFAULT_CONFIG["camera"]["width"] == 640
        assert Config().load(str(tmp_path / "missing.yaml")).get("camera.width") == 640

    def test_gesture_pipeline_settings(self, tmp_path):
        path = write_yaml(tmp_path, "demo:\n  confirmation_s: 3.0\ncamera:\n  acquire_timeout_s: 2\n")

        settings = Config().load(path).gesture_pipeline

        assert settings == {"acquire_timeout_s": 2, "ok_tolerance": 0.05, "confirmation_s": 3.0}

    def test_shipped_config_loads(self):
        config = Config().load()

        assert config._validate() == []
        assert config.hand_landmarker["max_num_hands"] == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
