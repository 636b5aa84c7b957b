"""
Configuration management for the atlas generator.
Supports TOML and JSON configuration files with validation.
"""

import os
import sys
import json
from dataclasses import dataclass, field
from typing import Dict, List, Any, Union
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from .export import FORMAT_TABLE


DEFAULT_PLATFORMS = ["Android", "iPhone"]


@dataclass
class SceneEntry:
    """A scene listed in the build settings."""
    path: str
    enabled: bool = True

    @classmethod
    def from_value(cls, value: Union[str, Dict[str, Any]]) -> "SceneEntry":
        """Accept either a bare path or a ``{path, enabled}`` table."""
        if isinstance(value, str):
            return cls(path=value)
        if isinstance(value, dict) and "path" in value:
            return cls(path=str(value["path"]), enabled=bool(value.get("enabled", True)))
        raise ValueError(f"Invalid scene entry: {value!r}")


@dataclass
class PipelineConfig:
    """Main configuration class for atlas generation."""

    # Project layout
    project_dir: str = "."
    assets_dir: str = "Assets"

    # Build roots
    build_scenes: List[SceneEntry] = field(default_factory=list)
    always_included_folder: str = "Resources"

    # Eligibility
    runtime_bundle_folder: str = "Resources"

    # Atlas settings
    max_size: int = 2048
    padding: int = 0
    platforms: List[str] = field(default_factory=lambda: list(DEFAULT_PLATFORMS))

    # Output
    output_dir: str = "Assets/AutoAtlas/Atlases"
    profile_path: str = ".auto_atlas/profile.toml"

    @property
    def enabled_scenes(self) -> List[str]:
        """Paths of the scenes enabled in the build list."""
        return [scene.path for scene in self.build_scenes if scene.enabled]

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> "PipelineConfig":
        """Load configuration from TOML or JSON file."""
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        if config_path.suffix.lower() == '.toml':
            return cls._from_toml(config_path)
        elif config_path.suffix.lower() == '.json':
            return cls._from_json(config_path)
        else:
            raise ValueError(f"Unsupported configuration format: {config_path.suffix}")

    @classmethod
    def _from_toml(cls, config_path: Path) -> "PipelineConfig":
        """Load configuration from TOML file."""
        with open(config_path, 'rb') as f:
            data = tomllib.load(f)
        return cls._from_dict(data)

    @classmethod
    def _from_json(cls, config_path: Path) -> "PipelineConfig":
        """Load configuration from JSON file."""
        with open(config_path, 'r') as f:
            data = json.load(f)
        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "PipelineConfig":
        """Create configuration from dictionary."""
        config_data = {}

        if 'project' in data:
            project = data['project']
            config_data['project_dir'] = project.get('project_dir', '.')
            config_data['assets_dir'] = project.get('assets_dir', 'Assets')

        if 'build' in data:
            build = data['build']
            config_data['build_scenes'] = [
                SceneEntry.from_value(scene) for scene in build.get('scenes', [])
            ]
            config_data['always_included_folder'] = build.get('always_included_folder', 'Resources')
            config_data['runtime_bundle_folder'] = build.get('runtime_bundle_folder', 'Resources')

        if 'atlas' in data:
            atlas = data['atlas']
            config_data['max_size'] = atlas.get('max_size', 2048)
            config_data['padding'] = atlas.get('padding', 0)
            config_data['platforms'] = list(atlas.get('platforms', DEFAULT_PLATFORMS))

        if 'output' in data:
            output = data['output']
            config_data['output_dir'] = output.get('output_dir', 'Assets/AutoAtlas/Atlases')
            config_data['profile_path'] = output.get('profile_path', '.auto_atlas/profile.toml')

        return cls(**config_data)

    @classmethod
    def default(cls) -> "PipelineConfig":
        """Create default configuration with environment variable overrides."""
        return cls._apply_env_overrides(cls())

    @classmethod
    def _apply_env_overrides(cls, config: "PipelineConfig") -> "PipelineConfig":
        """Apply environment variable overrides to configuration."""
        if os.getenv('AUTO_ATLAS_PROJECT_DIR'):
            config.project_dir = os.getenv('AUTO_ATLAS_PROJECT_DIR', '.')

        if os.getenv('AUTO_ATLAS_ASSETS_DIR'):
            config.assets_dir = os.getenv('AUTO_ATLAS_ASSETS_DIR', 'Assets')

        if os.getenv('AUTO_ATLAS_BUILD_SCENES'):
            config.build_scenes = [
                SceneEntry(path.strip())
                for path in os.getenv('AUTO_ATLAS_BUILD_SCENES', '').split(',')
                if path.strip()
            ]

        if os.getenv('AUTO_ATLAS_MAX_SIZE'):
            config.max_size = int(os.getenv('AUTO_ATLAS_MAX_SIZE', '2048'))

        if os.getenv('AUTO_ATLAS_PADDING'):
            config.padding = int(os.getenv('AUTO_ATLAS_PADDING', '0'))

        if os.getenv('AUTO_ATLAS_PLATFORMS'):
            config.platforms = [
                name.strip() for name in os.getenv('AUTO_ATLAS_PLATFORMS', '').split(',') if name.strip()
            ]

        if os.getenv('AUTO_ATLAS_OUTPUT_DIR'):
            config.output_dir = os.getenv('AUTO_ATLAS_OUTPUT_DIR', 'Assets/AutoAtlas/Atlases')

        if os.getenv('AUTO_ATLAS_PROFILE_PATH'):
            config.profile_path = os.getenv('AUTO_ATLAS_PROFILE_PATH', '.auto_atlas/profile.toml')

        return config

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors."""
        errors = []

        if self.max_size <= 0 or self.max_size & (self.max_size - 1) != 0:
            errors.append("max_size must be a positive power of two")

        if self.padding < 0:
            errors.append("padding must not be negative")

        if not self.platforms:
            errors.append("at least one platform must be configured")

        known_platforms = {platform for platform, _ in FORMAT_TABLE}
        for platform in self.platforms:
            if platform not in known_platforms:
                errors.append(f"platform '{platform}' has no entry in the format table")

        if not self.output_dir.strip("/"):
            errors.append("output_dir must not be empty")

        if not self.always_included_folder or "/" in self.always_included_folder:
            errors.append("always_included_folder must be a single folder name")

        return errors


@dataclass
class ErrorConfig:
    """Configuration for error handling."""
    max_retries: int = 2
    retry_delay: float = 0.0
