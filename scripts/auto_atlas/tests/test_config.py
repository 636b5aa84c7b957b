"""
Tests for configuration loading, environment overrides and validation.
"""

import os
import json
import shutil
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from ..config import ErrorConfig, PipelineConfig, SceneEntry


class TestPipelineConfig:
    """Test configuration loading."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_defaults(self):
        config = PipelineConfig()

        assert config.max_size == 2048
        assert config.platforms == ["Android", "iPhone"]
        assert config.always_included_folder == "Resources"
        assert config.validate() == []

    def test_from_toml(self):
        config_path = Path(self.temp_dir) / "auto_atlas.toml"
        config_path.write_text("""
[project]
project_dir = "game"

[build]
scenes = [
    "Assets/Scenes/Main.scene",
    { path = "Assets/Scenes/Debug.scene", enabled = false },
]

[atlas]
max_size = 1024
padding = 2
platforms = ["Android"]

[output]
output_dir = "Assets/Generated"
""")

        config = PipelineConfig.from_file(config_path)

        assert config.project_dir == "game"
        assert config.enabled_scenes == ["Assets/Scenes/Main.scene"]
        assert len(config.build_scenes) == 2
        assert config.max_size == 1024
        assert config.padding == 2
        assert config.platforms == ["Android"]
        assert config.output_dir == "Assets/Generated"
        assert config.profile_path == ".auto_atlas/profile.toml"

    def test_from_json(self):
        config_path = Path(self.temp_dir) / "auto_atlas.json"
        config_path.write_text(json.dumps({
            "build": {"scenes": [{"path": "Assets/Main.scene"}]},
            "atlas": {"max_size": 512},
        }))

        config = PipelineConfig.from_file(config_path)

        assert config.enabled_scenes == ["Assets/Main.scene"]
        assert config.max_size == 512

    def test_missing_file(self):
        with pytest.raises(FileNotFoundError):
            PipelineConfig.from_file(Path(self.temp_dir) / "nope.toml")

    def test_unsupported_format(self):
        config_path = Path(self.temp_dir) / "auto_atlas.yaml"
        config_path.write_text("max_size: 1")

        with pytest.raises(ValueError):
            PipelineConfig.from_file(config_path)

    def test_invalid_scene_entry(self):
        with pytest.raises(ValueError):
            SceneEntry.from_value(42)

    def test_env_overrides(self):
        env = {
            "AUTO_ATLAS_MAX_SIZE": "512",
            "AUTO_ATLAS_BUILD_SCENES": "Assets/A.scene, Assets/B.scene",
            "AUTO_ATLAS_PLATFORMS": "iPhone,Standalone",
        }
        with patch.dict(os.environ, env):
            config = PipelineConfig.default()

        assert config.max_size == 512
        assert config.enabled_scenes == ["Assets/A.scene", "Assets/B.scene"]
        assert config.platforms == ["iPhone", "Standalone"]

    @pytest.mark.parametrize("changes,message", [
        ({"max_size": 1000}, "power of two"),
        ({"padding": -1}, "padding"),
        ({"platforms": []}, "at least one platform"),
        ({"platforms": ["Switch"]}, "Switch"),
        ({"output_dir": "/"}, "output_dir"),
        ({"always_included_folder": "A/B"}, "single folder"),
    ])
    def test_validate(self, changes, message):
        config = PipelineConfig(**changes)

        errors = config.validate()

        assert len(errors) == 1
        assert message in errors[0]

    def test_error_config_defaults(self):
        error_config = ErrorConfig()

        assert error_config.max_retries == 2
        assert error_config.retry_delay == 0.0
