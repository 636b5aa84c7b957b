"""
Sprite packers turning a group of images into physical atlas pages.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .index import ImageResource


def next_power_of_two(n: int) -> int:
    """Find the next power of two greater than or equal to n."""
    if n <= 0:
        return 1

    if n & (n - 1) == 0:
        return n

    power = 1
    while power < n:
        power <<= 1

    return power


@dataclass
class Rectangle:
    """Rectangle for atlas layout calculations."""
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height


@dataclass
class LayoutNode:
    """Node in the page layout tree for bin packing."""
    rect: Rectangle
    used: bool = False
    right: Optional['LayoutNode'] = None
    down: Optional['LayoutNode'] = None

    def find_node(self, width: int, height: int) -> Optional['LayoutNode']:
        """Find a node that can fit the given dimensions."""
        if self.used:
            node = self.right.find_node(width, height) if self.right else None
            if node:
                return node
            return self.down.find_node(width, height) if self.down else None
        elif width <= self.rect.width and height <= self.rect.height:
            return self
        else:
            return None

    def split_node(self, width: int, height: int) -> 'LayoutNode':
        """Split this node to accommodate the given dimensions."""
        self.used = True

        if self.rect.width > width:
            self.right = LayoutNode(Rectangle(
                self.rect.x + width, self.rect.y,
                self.rect.width - width, self.rect.height
            ))

        if self.rect.height > height:
            self.down = LayoutNode(Rectangle(
                self.rect.x, self.rect.y + height,
                width, self.rect.height - height
            ))

        return self


@dataclass(frozen=True)
class Placement:
    """Position of one sprite inside a physical texture."""
    guid: str
    path: str
    x: int
    y: int
    width: int
    height: int


@dataclass
class PhysicalTexture:
    """One output bitmap produced for a group at a given page size."""
    width: int
    height: int
    placements: List[Placement] = field(default_factory=list)

    @property
    def area(self) -> int:
        return self.width * self.height

    def to_dict(self) -> dict:
        return {
            "size": {"w": self.width, "h": self.height},
            "sprites": {
                placement.path: {"x": placement.x, "y": placement.y, "w": placement.width, "h": placement.height}
                for placement in self.placements
            },
        }


class PackerError(Exception):
    """Raised when a packer cannot lay out a group at a given size."""

    def __init__(self, message: str, max_edge: Optional[int] = None):
        super().__init__(message)
        self.max_edge = max_edge


class Packer(ABC):
    """Interface of the sprite packer used by the size search."""

    @abstractmethod
    def pack(self, resources: Sequence[ImageResource], max_edge: int) -> List[PhysicalTexture]:
        """
        Pack images into square pages no larger than ``max_edge``.

        Args:
            resources: Images to pack
            max_edge: Maximum page edge length in pixels

        Returns:
            Physical textures produced, in page order

        Raises:
            PackerError: If the images cannot be packed at this size
        """
        pass


class _Page:
    def __init__(self, size: int):
        self.root = LayoutNode(Rectangle(0, 0, size, size))
        self.placements: List[Placement] = []

    def try_place(self, image: ImageResource, width: int, height: int) -> bool:
        node = self.root.find_node(width, height)
        if node is None:
            return False
        node.split_node(width, height)
        self.placements.append(Placement(
            image.ref.guid, image.path, node.rect.x, node.rect.y, image.width, image.height
        ))
        return True

    def to_texture(self, max_edge: int) -> PhysicalTexture:
        max_x = max(placement.x + placement.width for placement in self.placements)
        max_y = max(placement.y + placement.height for placement in self.placements)
        return PhysicalTexture(
            width=min(next_power_of_two(max_x), max_edge),
            height=min(next_power_of_two(max_y), max_edge),
            placements=list(self.placements),
        )


class BinaryTreePacker(Packer):
    """
    Multi-page binary tree packer.

    Sprites are placed largest first into ``max_edge`` square pages; a sprite
    that fits no open page starts a new one. Each page is finally shrunk to the
    power-of-two bounds of its content. No rotation, no tight packing.
    """

    def __init__(self, padding: int = 0):
        self.padding = padding

    def pack(self, resources: Sequence[ImageResource], max_edge: int) -> List[PhysicalTexture]:
        if max_edge <= 0:
            raise PackerError(f"Invalid page size {max_edge}", max_edge)

        items = sorted(resources, key=lambda image: (-image.width * image.height, image.path))
        pages: List[_Page] = []

        for image in items:
            padded_width = image.width + self.padding
            padded_height = image.height + self.padding

            if padded_width > max_edge or padded_height > max_edge:
                raise PackerError(
                    f"Sprite {image.path} ({image.width}x{image.height}) does not fit a {max_edge}x{max_edge} page",
                    max_edge
                )

            if not any(page.try_place(image, padded_width, padded_height) for page in pages):
                page = _Page(max_edge)
                page.try_place(image, padded_width, padded_height)
                pages.append(page)

        return [page.to_texture(max_edge) for page in pages]
