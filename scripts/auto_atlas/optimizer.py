"""
Iterative doubling search for the atlas page size with the smallest packed area.
"""

import math
import time
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .export import ExportConfig
from .grouping import GroupKey
from .index import ImageResource
from .packer import Packer, PhysicalTexture, next_power_of_two


logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 2048


@dataclass
class SearchTrial:
    """Outcome of packing a group at one candidate size."""
    size: int
    texture_count: int
    cost: float
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def to_dict(self) -> dict:
        data = {"size": self.size, "texture_count": self.texture_count,
                "cost": None if math.isinf(self.cost) else int(self.cost)}
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class AtlasResult:
    """Chosen size and physical textures for one packing group."""
    key: Optional[GroupKey]
    size: int
    textures: List[PhysicalTexture]
    trials: List[SearchTrial] = field(default_factory=list)
    export: Optional[ExportConfig] = None

    @property
    def cost(self) -> int:
        return sum(texture.area for texture in self.textures)

    @property
    def texture_count(self) -> int:
        return len(self.textures)

    def to_dict(self) -> dict:
        """Serialize to the atlas descriptor layout."""
        sprites = []
        for texture in self.textures:
            sprites.extend(placement.path for placement in texture.placements)

        data = {
            "size": self.size,
            "cost": self.cost,
            "sprites": sorted(sprites),
            "textures": [texture.to_dict() for texture in self.textures],
            "trials": [trial.to_dict() for trial in self.trials],
        }
        if self.key is not None:
            data = {
                "name": self.key.atlas_name,
                "container": self.key.container_path,
                "fingerprint": {
                    "alpha": self.key.fingerprint.alpha_present,
                    "mips": self.key.fingerprint.has_mips,
                },
                **data,
            }
        if self.export is not None:
            data["export"] = self.export.to_dict()
        return data


class PackingFailedError(Exception):
    """Raised when no candidate size produced a valid packing."""

    def __init__(self, message: str, trials: Optional[List[SearchTrial]] = None):
        super().__init__(message)
        self.trials = trials or []


def min_atlas_size(resources: Sequence[ImageResource]) -> int:
    """Smallest power-of-two edge that holds the largest sprite edge."""
    size = 0
    for image in resources:
        size = max(size, next_power_of_two(image.width), next_power_of_two(image.height))
    return size


class SizeSearchOptimizer:
    """
    Searches doubling page sizes for the smallest total packed area.

    Packing with a larger page budget does not reliably reduce fragmentation,
    so every doubling from the minimum size up to ``max_size`` is sampled and
    the cheapest one kept. The search stops early once a single page holds the
    whole group. Later candidates must be strictly cheaper to win, so ties go
    to the smaller size.
    """

    def __init__(self, packer: Packer, max_size: int = DEFAULT_MAX_SIZE,
                 max_retries: int = 0, retry_delay: float = 0.0):
        """
        Args:
            packer: Packer invoked for every candidate size
            max_size: Largest candidate size
            max_retries: Extra attempts when the packer fails
            retry_delay: Seconds to wait between attempts
        """
        self.packer = packer
        self.max_size = max_size
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    def optimize(self, resources: Sequence[ImageResource], key: Optional[GroupKey] = None) -> AtlasResult:
        """
        Find the best page size for a group.

        Args:
            resources: Images of one packing group
            key: Group key, carried into the result

        Returns:
            AtlasResult whose textures were packed at the chosen size

        Raises:
            ValueError: If the group is empty
            PackingFailedError: If no candidate size could be packed
        """
        if not resources:
            raise ValueError("Cannot optimize an empty packing group")

        label = key.atlas_name if key else "group"
        min_size = min_atlas_size(resources)

        best_size = min_size
        best_cost = math.inf
        best_textures: Optional[List[PhysicalTexture]] = None
        trials: List[SearchTrial] = []

        candidate = min_size
        while True:
            current = candidate
            textures, error = self._pack(resources, current)

            if error is None:
                texture_count = len(textures)
                cost = sum(texture.area for texture in textures)
            else:
                texture_count = 0
                cost = math.inf

            trials.append(SearchTrial(current, texture_count, cost, error))
            logger.debug(f"{label}: size {current} -> {texture_count} textures, cost {cost}")

            if cost < best_cost:
                best_size = current
                best_cost = cost
                best_textures = textures

            candidate = current * 2
            if candidate > self.max_size:
                break
            if error is None and texture_count <= 1:
                break

        if best_textures is None:
            raise PackingFailedError(f"No candidate size could pack {label}", trials)

        if best_size != current:
            textures, error = self._pack(resources, best_size)
            if error is not None:
                raise PackingFailedError(f"Repacking {label} at size {best_size} failed: {error}", trials)
            best_textures = textures

        logger.debug(f"{label}: chose size {best_size} after {len(trials)} trials")
        return AtlasResult(key=key, size=best_size, textures=best_textures, trials=trials)

    def _pack(self, resources: Sequence[ImageResource], size: int):
        """Invoke the packer with bounded retry; returns (textures, error)."""
        attempts = self.max_retries + 1
        error = None

        for attempt in range(attempts):
            try:
                return self.packer.pack(resources, size), None
            except Exception as e:
                error = f"{type(e).__name__}: {e}"
                logger.debug(f"Packer attempt {attempt + 1}/{attempts} at size {size} failed: {error}")
                if attempt + 1 < attempts and self.retry_delay > 0:
                    time.sleep(self.retry_delay)

        return [], error
