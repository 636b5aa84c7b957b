"""
Auto Atlas

Build-time sprite atlas generator. Resolves the images reachable from the
shipped scenes and always-included folders, groups them by folder and texture
settings, and searches the atlas size that packs each group into the smallest
total texture area.
"""

__version__ = "0.1.0"

from .config import PipelineConfig
from .index import AssetIndex, AssetRef, FileSystemAssetIndex, ImageResource
from .packer import BinaryTreePacker, Packer, PhysicalTexture
from .optimizer import AtlasResult, SizeSearchOptimizer
from .pipeline import AtlasPipeline
from .report import RunReport

__all__ = [
    "PipelineConfig",
    "AssetIndex",
    "AssetRef",
    "FileSystemAssetIndex",
    "ImageResource",
    "BinaryTreePacker",
    "Packer",
    "PhysicalTexture",
    "AtlasResult",
    "SizeSearchOptimizer",
    "AtlasPipeline",
    "RunReport",
]
