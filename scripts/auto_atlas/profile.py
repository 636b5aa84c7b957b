"""
Typed settings profile and its persisted snapshot.
"""

import sys
import logging
from dataclasses import asdict, dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

import toml

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


logger = logging.getLogger(__name__)

MAX_SIZE_CHOICES = (32, 64, 128, 256, 512, 1024, 2048, 4096, 8192)


class FilterMode(Enum):
    """Texture sampling filter."""
    POINT = "point"
    BILINEAR = "bilinear"
    TRILINEAR = "trilinear"


@dataclass
class Profile:
    """User-facing atlas settings."""
    enabled: bool = True
    play_mode_enabled: bool = False
    readable: bool = False
    srgb: bool = True
    filter_mode: FilterMode = FilterMode.BILINEAR
    max_size: int = 4096

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to plain values."""
        data = asdict(self)
        data["filter_mode"] = self.filter_mode.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Profile":
        """
        Deserialize from plain values.

        Unknown keys are ignored and missing keys keep their defaults.

        Raises:
            ValueError: If a value has the wrong type or is out of range
        """
        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {}

        for key, value in data.items():
            if key not in known:
                logger.warning(f"Ignoring unknown profile key: {key}")
                continue
            values[key] = value

        for key in ("enabled", "play_mode_enabled", "readable", "srgb"):
            if key in values and not isinstance(values[key], bool):
                raise ValueError(f"Profile key '{key}' must be a boolean, got {values[key]!r}")

        if "filter_mode" in values:
            values["filter_mode"] = FilterMode(values["filter_mode"])

        if "max_size" in values:
            if isinstance(values["max_size"], bool) or not isinstance(values["max_size"], int):
                raise ValueError(f"Profile key 'max_size' must be an integer, got {values['max_size']!r}")
            if values["max_size"] not in MAX_SIZE_CHOICES:
                raise ValueError(f"Profile max_size must be one of {MAX_SIZE_CHOICES}, got {values['max_size']}")

        return cls(**values)


class ProfileStore:
    """
    Persists a profile as TOML and keeps an in-memory snapshot.

    ``save_backup`` captures the current profile so edits can be discarded
    with ``load_backup``; ``save`` and ``load`` go to disk.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._backup: Optional[Dict[str, Any]] = None

    def load(self) -> Profile:
        """Load the profile, falling back to defaults if none is stored."""
        if not self.path.exists():
            return Profile()

        with open(self.path, "rb") as f:
            data = tomllib.load(f)
        return Profile.from_dict(data.get("profile", {}))

    def save(self, profile: Profile) -> None:
        """Write the profile to disk."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            toml.dump({"profile": profile.to_dict()}, f)

    def reset(self) -> Profile:
        """Store and return the default profile."""
        profile = Profile()
        self.save(profile)
        return profile

    def save_backup(self, profile: Profile) -> None:
        """Capture a snapshot of the profile."""
        self._backup = profile.to_dict()

    def load_backup(self) -> Optional[Profile]:
        """Return the last snapshot, or None if none was taken."""
        if self._backup is None:
            return None
        return Profile.from_dict(self._backup)
