"""
Integration tests for the auto-atlas CLI.
Tests command exit codes and configuration handling.
"""

import os
import json
import shutil
import tempfile
from pathlib import Path
from unittest.mock import patch

from typer.testing import CliRunner

from .. import __version__
from .. import cli as cli_module
from ..cli import app
from ..report import RunReport
from .project import ProjectBuilder


OUTPUT = "Assets/AutoAtlas/Atlases"


class TestCLIIntegration:
    """Test CLI integration and command functionality."""

    def setup_method(self):
        """Set up a project in a temporary working directory."""
        self.runner = CliRunner()
        self.temp_dir = tempfile.mkdtemp()
        self.original_cwd = os.getcwd()
        os.chdir(self.temp_dir)

        project = ProjectBuilder(self.temp_dir)
        project.document("Assets/Scenes/Main.scene", ["Assets/UI/coin.png", "Assets/UI/gem.png"])
        project.image("Assets/UI/coin.png", (30, 20))
        project.image("Assets/UI/gem.png", (12, 40))

    def teardown_method(self):
        """Clean up test environment after each test."""
        os.chdir(self.original_cwd)
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def create_test_config(self, max_size: int = 2048) -> Path:
        """Create a test configuration file."""
        config_path = Path(self.temp_dir) / "auto_atlas.toml"
        config_path.write_text(f"""
[project]
project_dir = "."

[build]
scenes = ["Assets/Scenes/Main.scene"]

[atlas]
max_size = {max_size}
""")
        return config_path

    def test_help(self):
        result = self.runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        assert "generate" in result.stdout
        assert "delete" in result.stdout

    def test_version(self):
        result = self.runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_generate_and_delete(self):
        self.create_test_config()

        result = self.runner.invoke(app, ["generate"])

        assert result.exit_code == 0, result.stdout
        atlas = Path(self.temp_dir) / OUTPUT / "Assets/UI/UI_AutoAtlas_RGBA_NoMips.spriteatlas"
        assert atlas.exists()
        assert sorted(json.loads(atlas.read_text())["sprites"]) == ["Assets/UI/coin.png", "Assets/UI/gem.png"]

        result = self.runner.invoke(app, ["delete"])

        assert result.exit_code == 0
        assert not (Path(self.temp_dir) / OUTPUT).exists()

    def test_generate_with_explicit_config(self):
        config_path = Path(self.temp_dir) / "custom.json"
        config_path.write_text(json.dumps({
            "project": {"project_dir": "."},
            "build": {"scenes": ["Assets/Scenes/Main.scene"]},
        }))

        result = self.runner.invoke(app, ["generate", "--config", str(config_path)])

        assert result.exit_code == 0

    def test_generate_missing_config(self):
        result = self.runner.invoke(app, ["generate", "-c", "nope.toml"])

        assert result.exit_code == 1
        assert "not found" in result.stdout

    def test_generate_invalid_config(self):
        self.create_test_config(max_size=1000)

        result = self.runner.invoke(app, ["generate"])

        assert result.exit_code == 1
        assert "Pipeline error" in result.stdout

    def test_generate_failed_group_exit_code(self):
        self.create_test_config()
        report = RunReport()
        report.fail_group(f"{OUTPUT}/Assets/UI/UI_AutoAtlas_RGBA_NoMips.spriteatlas", "packer failed")

        with patch.object(cli_module, "AtlasPipeline") as pipeline_cls:
            pipeline_cls.return_value.generate.return_value = report
            result = self.runner.invoke(app, ["generate"])

        assert result.exit_code == 1
        assert "1 atlas groups failed" in result.stdout

    def test_referenced(self):
        self.create_test_config()

        result = self.runner.invoke(app, ["referenced"])

        assert result.exit_code == 0
        assert "2 images referenced" in result.stdout

    def test_dependents(self):
        self.create_test_config()

        result = self.runner.invoke(app, ["dependents", "Assets/UI/coin.png"])

        assert result.exit_code == 0
        assert "number of dependents (1)" in result.stdout

    def test_dependents_missing_asset(self):
        self.create_test_config()

        result = self.runner.invoke(app, ["dependents", "Assets/UI/none.png"])

        assert result.exit_code == 1

    def test_config_validate(self):
        self.create_test_config()

        result = self.runner.invoke(app, ["config", "--validate"])

        assert result.exit_code == 0
        assert "Configuration is valid" in result.stdout

    def test_config_validate_errors(self):
        self.create_test_config(max_size=1000)

        result = self.runner.invoke(app, ["config", "--validate"])

        assert result.exit_code == 1
        assert "power of two" in result.stdout

    def test_config_show(self):
        self.create_test_config(max_size=512)

        result = self.runner.invoke(app, ["config", "--show"])

        assert result.exit_code == 0
        assert "512" in result.stdout

    def test_config_env_vars(self):
        result = self.runner.invoke(app, ["config", "--env-vars"])

        assert result.exit_code == 0
        assert "AUTO_ATLAS_MAX_SIZE" in result.stdout

    def test_env_override_applied(self):
        self.create_test_config()

        result = self.runner.invoke(app, ["config", "--validate"], env={"AUTO_ATLAS_MAX_SIZE": "300"})

        assert result.exit_code == 1

    def test_profile_reset(self):
        result = self.runner.invoke(app, ["profile", "--reset"])

        assert result.exit_code == 0
        assert (Path(self.temp_dir) / ".auto_atlas" / "profile.toml").exists()

    def test_profile_show_defaults(self):
        result = self.runner.invoke(app, ["profile", "--show"])

        assert result.exit_code == 0
        assert "filter_mode" in result.stdout
        assert not (Path(self.temp_dir) / ".auto_atlas" / "profile.toml").exists()
