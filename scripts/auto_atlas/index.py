"""
Asset index abstraction and a filesystem-backed implementation.

The index maps project paths to asset identifiers, answers direct dependency
queries and loads image headers. Everything else in the package talks to the
project only through this interface.
"""

import os
import sys
import json
import shutil
import uuid
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from PIL import Image, UnidentifiedImageError

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


logger = logging.getLogger(__name__)

META_SUFFIX = ".meta"

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".tga", ".bmp", ".gif", ".psd", ".tif", ".tiff", ".webp"}

ASSET_TYPES = {
    ".scene": "scene",
    ".unity": "scene",
    ".prefab": "prefab",
    ".mat": "material",
    ".spriteatlas": "spriteatlas",
    ".asset": "asset",
}

# Asset types whose contents are JSON documents listing their references
DOCUMENT_TYPES = {"scene", "prefab", "material", "asset"}

TEXTURE_FORMAT_ALPHA: Dict[str, bool] = {
    "RGBA32": True,
    "ETC2_RGBA8": True,
    "ETC2_RGBA1": True,
    "PVRTC_RGBA4": True,
    "PVRTC_RGBA2": True,
    "DXT5": True,
    "DXT5Crunched": True,
    "RGB24": False,
    "ETC2_RGB": False,
    "ETC_RGB4": False,
    "PVRTC_RGB4": False,
    "PVRTC_RGB2": False,
    "DXT1": False,
    "DXT1Crunched": False,
}

_ALPHA_MODES = {"RGBA", "LA", "PA", "RGBa", "La"}
_OPAQUE_MODES = {"RGB", "L", "P", "1"}


def has_alpha(texture_format: str) -> Optional[bool]:
    """Return whether a texture format carries alpha, or None if unknown."""
    return TEXTURE_FORMAT_ALPHA.get(texture_format)


def texture_format_for_mode(mode: str, transparency: bool = False) -> str:
    """Map a Pillow image mode to the texture format it would import as."""
    if mode in _ALPHA_MODES or (mode == "P" and transparency):
        return "RGBA32"
    if mode in _OPAQUE_MODES:
        return "RGB24"
    return mode


@dataclass(frozen=True)
class AssetRef:
    """Opaque identifier plus project-relative path of one asset."""
    guid: str
    path: str = field(compare=False)

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    @property
    def directory(self) -> str:
        return self.path.rsplit("/", 1)[0] if "/" in self.path else ""

    @property
    def extension(self) -> str:
        return os.path.splitext(self.path)[1].lower()


@dataclass(frozen=True)
class ImageResource:
    """An image asset with the texture properties relevant to atlasing."""
    ref: AssetRef
    width: int
    height: int
    texture_format: str
    alpha_present: bool
    mip_count: int = 1

    @property
    def path(self) -> str:
        return self.ref.path

    @property
    def directory(self) -> str:
        return self.ref.directory

    @property
    def has_mips(self) -> bool:
        return self.mip_count > 1

    @property
    def format_known(self) -> bool:
        return has_alpha(self.texture_format) is not None


class AssetIndexError(Exception):
    """Base exception for asset index errors."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class AssetNotFoundError(AssetIndexError):
    """Raised when a path or identifier does not resolve to an asset."""
    pass


class IndexWriteError(AssetIndexError):
    """Raised when the index cannot create or delete an asset."""
    pass


class AssetIndex(ABC):
    """Abstract base class for asset indexes."""

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Check whether an asset or folder exists at the given path."""
        pass

    @abstractmethod
    def resolve(self, path: str) -> Optional[AssetRef]:
        """Return the asset reference for a path, or None if it does not resolve."""
        pass

    @abstractmethod
    def find_by_type(self, type_filter: str, scope: Optional[str] = None) -> List[AssetRef]:
        """
        Find assets of a type, optionally restricted to a folder.

        Args:
            type_filter: Asset type name ('image', 'scene', 'folder', ...); empty
                string matches every non-folder asset
            scope: Folder path to search recursively

        Returns:
            Matching references sorted by path
        """
        pass

    @abstractmethod
    def get_direct_dependencies(self, ref: AssetRef) -> List[AssetRef]:
        """
        Return the assets directly referenced by an asset.

        Raises:
            AssetNotFoundError: If the asset is not in the index
        """
        pass

    @abstractmethod
    def load_image(self, ref: AssetRef) -> Optional[ImageResource]:
        """Load image properties, or None if the asset is not an image."""
        pass

    @abstractmethod
    def create(self, obj: Dict[str, Any], path: str) -> None:
        """
        Create an asset at the given path.

        Raises:
            IndexWriteError: If the asset cannot be written
        """
        pass

    @abstractmethod
    def delete(self, path: str) -> bool:
        """
        Delete an asset or folder. Returns False if nothing existed at path.

        Raises:
            IndexWriteError: If the asset cannot be removed
        """
        pass

    @abstractmethod
    def refresh(self) -> None:
        """Discard cached state so later queries see the current project."""
        pass


class FileSystemAssetIndex(AssetIndex):
    """
    Asset index over a project directory.

    Every file is an asset and every directory a folder asset. An optional
    ``<file>.meta`` TOML sidecar can pin the asset ``guid`` and, for images,
    override ``format`` and ``mip_count``. Scenes, prefabs, materials and
    generic ``.asset`` files are JSON documents whose ``references`` list
    holds project-relative paths of the assets they use.
    """

    def __init__(self, project_dir: Union[str, Path]):
        self.project_dir = Path(project_dir)
        self._assets: Optional[Dict[str, AssetRef]] = None
        self._folders: Optional[Dict[str, AssetRef]] = None
        self._meta_cache: Dict[str, Dict[str, Any]] = {}

    def exists(self, path: str) -> bool:
        path = self._normalize(path)
        self._ensure_scanned()
        return path in self._assets or path in self._folders

    def resolve(self, path: str) -> Optional[AssetRef]:
        path = self._normalize(path)
        self._ensure_scanned()
        return self._assets.get(path) or self._folders.get(path)

    def find_by_type(self, type_filter: str, scope: Optional[str] = None) -> List[AssetRef]:
        self._ensure_scanned()

        if type_filter == "folder":
            candidates = self._folders.values()
        elif type_filter:
            candidates = [ref for ref in self._assets.values() if self.asset_type(ref) == type_filter]
        else:
            candidates = self._assets.values()

        scope = self._normalize(scope) if scope is not None else ""
        if scope:
            prefix = scope + "/"
            candidates = [ref for ref in candidates if ref.path.startswith(prefix)]

        return sorted(candidates, key=lambda ref: ref.path)

    def get_direct_dependencies(self, ref: AssetRef) -> List[AssetRef]:
        self._ensure_scanned()
        if ref.path not in self._assets and ref.path not in self._folders:
            raise AssetNotFoundError(f"Asset not found in index: {ref.path}", ref.path)

        if self.asset_type(ref) not in DOCUMENT_TYPES:
            return []

        try:
            with open(self._full_path(ref.path), "r", encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Cannot read references from {ref.path}: {e}")
            return []

        references = document.get("references", []) if isinstance(document, dict) else []
        if not isinstance(references, list):
            logger.warning(f"Ignoring malformed references in {ref.path}: expected a list")
            return []

        dependencies = []
        for reference in references:
            if not isinstance(reference, str):
                logger.warning(f"Ignoring non-path reference in {ref.path}: {reference!r}")
                continue
            dependency = self.resolve(reference)
            if dependency is None:
                logger.debug(f"{ref.path} references missing asset {reference}")
                continue
            if dependency not in dependencies:
                dependencies.append(dependency)

        return dependencies

    def load_image(self, ref: AssetRef) -> Optional[ImageResource]:
        if self.asset_type(ref) != "image":
            return None

        try:
            with Image.open(self._full_path(ref.path)) as image:
                width, height = image.size
                texture_format = texture_format_for_mode(image.mode, "transparency" in image.info)
        except (OSError, UnidentifiedImageError) as e:
            logger.warning(f"Cannot read image header for {ref.path}: {e}")
            return None

        meta = self._read_meta(ref.path)
        texture_format = str(meta.get("format", texture_format))
        try:
            mip_count = int(meta.get("mip_count", 1))
        except (TypeError, ValueError):
            logger.warning(f"Ignoring invalid mip_count in meta file for {ref.path}: {meta.get('mip_count')!r}")
            mip_count = 1
        alpha = has_alpha(texture_format)

        return ImageResource(
            ref=ref,
            width=width,
            height=height,
            texture_format=texture_format,
            alpha_present=True if alpha is None else alpha,
            mip_count=max(1, mip_count),
        )

    def create(self, obj: Dict[str, Any], path: str) -> None:
        path = self._normalize(path)
        full_path = self._full_path(path)

        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)
            with open(full_path, "w", encoding="utf-8") as f:
                json.dump(obj, f, indent=2)
        except (OSError, TypeError) as e:
            raise IndexWriteError(f"Cannot create asset {path}: {e}", path)

        self._invalidate()

    def delete(self, path: str) -> bool:
        path = self._normalize(path)
        full_path = self._full_path(path)

        if not full_path.exists():
            return False

        try:
            if full_path.is_dir():
                shutil.rmtree(full_path)
            else:
                full_path.unlink()
            meta_path = full_path.with_name(full_path.name + META_SUFFIX)
            if meta_path.exists():
                meta_path.unlink()
        except OSError as e:
            raise IndexWriteError(f"Cannot delete asset {path}: {e}", path)

        self._invalidate()
        return True

    def refresh(self) -> None:
        self._invalidate()

    def asset_type(self, ref: AssetRef) -> str:
        """Classify an asset by its extension."""
        if self._folders is not None and ref.path in self._folders:
            return "folder"
        extension = ref.extension
        if extension in IMAGE_EXTENSIONS:
            return "image"
        return ASSET_TYPES.get(extension, "asset")

    def _ensure_scanned(self) -> None:
        if self._assets is not None:
            return

        assets: Dict[str, AssetRef] = {}
        folders: Dict[str, AssetRef] = {}

        if self.project_dir.exists():
            for dirpath, dirnames, filenames in os.walk(self.project_dir):
                dirnames[:] = sorted(name for name in dirnames if not name.startswith("."))
                relative_dir = Path(dirpath).relative_to(self.project_dir).as_posix()

                for dirname in dirnames:
                    path = self._join(relative_dir, dirname)
                    folders[path] = AssetRef(self._guid_for(path), path)

                for filename in sorted(filenames):
                    if filename.startswith(".") or filename.endswith(META_SUFFIX):
                        continue
                    path = self._join(relative_dir, filename)
                    assets[path] = AssetRef(self._guid_for(path), path)

        self._assets = assets
        self._folders = folders

    def _invalidate(self) -> None:
        self._assets = None
        self._folders = None
        self._meta_cache.clear()

    def _guid_for(self, path: str) -> str:
        meta = self._read_meta(path)
        if "guid" in meta:
            return str(meta["guid"])
        return uuid.uuid5(uuid.NAMESPACE_URL, path).hex

    def _read_meta(self, path: str) -> Dict[str, Any]:
        if path in self._meta_cache:
            return self._meta_cache[path]

        meta: Dict[str, Any] = {}
        meta_path = self._full_path(path + META_SUFFIX)
        if meta_path.is_file():
            try:
                with open(meta_path, "rb") as f:
                    meta = tomllib.load(f)
            except (OSError, tomllib.TOMLDecodeError) as e:
                logger.warning(f"Ignoring unreadable meta file {meta_path}: {e}")

        self._meta_cache[path] = meta
        return meta

    def _full_path(self, path: str) -> Path:
        return self.project_dir / path

    @staticmethod
    def _join(directory: str, name: str) -> str:
        return name if directory in ("", ".") else f"{directory}/{name}"

    @staticmethod
    def _normalize(path: str) -> str:
        path = path.replace("\\", "/").strip("/")
        while path.startswith("./"):
            path = path[2:]
        return "" if path == "." else path
