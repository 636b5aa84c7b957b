"""
Per-platform export settings attached to each generated atlas.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple

from .grouping import SettingsFingerprint
from .profile import FilterMode, Profile


# (platform, alpha present) -> compressed texture format
FORMAT_TABLE: Dict[Tuple[str, bool], str] = {
    ("Android", True): "ETC2_RGBA8",
    ("Android", False): "ETC2_RGB4",
    ("iPhone", True): "PVRTC_RGBA4",
    ("iPhone", False): "PVRTC_RGB4",
    ("Standalone", True): "DXT5",
    ("Standalone", False): "DXT1",
}


class UnsupportedPlatformError(Exception):
    """Raised when a platform has no entry in the format table."""

    def __init__(self, platform: str):
        super().__init__(f"No texture format registered for platform '{platform}'")
        self.platform = platform


@dataclass(frozen=True)
class PlatformSettings:
    """Export override for one target platform."""
    name: str
    max_texture_size: int
    format: str
    overridden: bool = True


@dataclass
class ExportConfig:
    """Packing, texture and platform settings of an atlas."""
    platforms: Dict[str, PlatformSettings] = field(default_factory=dict)
    enable_rotation: bool = False
    enable_tight_packing: bool = False
    padding: int = 0
    generate_mip_maps: bool = False
    readable: bool = False
    srgb: bool = True
    filter_mode: FilterMode = FilterMode.BILINEAR
    include_in_build: bool = True

    def to_dict(self) -> dict:
        return {
            "packing": {
                "enable_rotation": self.enable_rotation,
                "enable_tight_packing": self.enable_tight_packing,
                "padding": self.padding,
            },
            "texture": {
                "generate_mip_maps": self.generate_mip_maps,
                "readable": self.readable,
                "srgb": self.srgb,
                "filter_mode": self.filter_mode.value,
            },
            "include_in_build": self.include_in_build,
            "platforms": {
                name: {
                    "overridden": settings.overridden,
                    "max_texture_size": settings.max_texture_size,
                    "format": settings.format,
                }
                for name, settings in self.platforms.items()
            },
        }


def texture_format_for(platform: str, alpha_present: bool) -> str:
    """Look up the compressed format for a platform."""
    try:
        return FORMAT_TABLE[(platform, alpha_present)]
    except KeyError:
        raise UnsupportedPlatformError(platform)


def build_export_config(fingerprint: SettingsFingerprint, size: int,
                        platforms: Iterable[str] = ("Android", "iPhone"),
                        profile: Optional[Profile] = None,
                        padding: int = 0) -> ExportConfig:
    """
    Derive export settings for an atlas of the given size.

    Args:
        fingerprint: Settings shared by the atlas sprites
        size: Chosen atlas page edge length
        platforms: Target platform names
        profile: Profile supplying texture defaults
        padding: Padding used while packing

    Returns:
        ExportConfig with one override per platform
    """
    profile = profile or Profile()

    return ExportConfig(
        platforms={
            platform: PlatformSettings(
                name=platform,
                max_texture_size=size,
                format=texture_format_for(platform, fingerprint.alpha_present),
            )
            for platform in platforms
        },
        padding=padding,
        generate_mip_maps=fingerprint.has_mips,
        readable=profile.readable,
        srgb=profile.srgb,
        filter_mode=profile.filter_mode,
    )
