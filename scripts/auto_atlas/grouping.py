"""
Partitioning of eligible images into packing groups.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Set

from .index import ImageResource


ATLAS_EXTENSION = ".spriteatlas"


@dataclass(frozen=True)
class SettingsFingerprint:
    """Compression and mip compatibility key."""
    alpha_present: bool
    has_mips: bool

    @classmethod
    def of(cls, image: ImageResource) -> "SettingsFingerprint":
        return cls(alpha_present=image.alpha_present, has_mips=image.has_mips)

    @property
    def label(self) -> str:
        return f"{'RGBA' if self.alpha_present else 'RGB'}_{'Mips' if self.has_mips else 'NoMips'}"


@dataclass(frozen=True)
class GroupKey:
    """Identifies one packing group: container folder plus fingerprint."""
    container_path: str
    fingerprint: SettingsFingerprint

    @property
    def folder_name(self) -> str:
        return self.container_path.rsplit("/", 1)[-1]

    @property
    def atlas_name(self) -> str:
        return f"{self.folder_name}_AutoAtlas_{self.fingerprint.label}"

    def output_path(self, output_dir: str) -> str:
        """Project-relative path of the atlas file for this group."""
        parts = [output_dir.strip("/"), self.container_path.strip("/"), self.atlas_name + ATLAS_EXTENSION]
        return "/".join(part for part in parts if part)


def group_resources(resources: Iterable[ImageResource]) -> Dict[GroupKey, List[ImageResource]]:
    """
    Partition images by container folder and settings fingerprint.

    Groups keep first-seen order; an image appearing twice is kept once.
    """
    groups: Dict[GroupKey, List[ImageResource]] = {}
    seen: Dict[GroupKey, Set[str]] = {}

    for image in resources:
        key = GroupKey(image.directory, SettingsFingerprint.of(image))
        members = groups.setdefault(key, [])
        guids = seen.setdefault(key, set())
        if image.ref.guid in guids:
            continue
        guids.add(image.ref.guid)
        members.append(image)

    return groups
