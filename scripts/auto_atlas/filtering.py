"""
Eligibility rules deciding which reachable images get atlased.
"""

from dataclasses import dataclass, field
from typing import Iterable, List

from .index import AssetIndex, AssetRef, ImageResource
from .report import Diagnostic, DiagnosticKind


def is_power_of_two(n: int) -> bool:
    """Check if number is a power of two."""
    return n > 0 and (n & (n - 1)) == 0


@dataclass
class FilterResult:
    """Images selected for atlasing and the reasons others were dropped."""
    eligible: List[ImageResource] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)


class EligibilityFilter:
    """Selects reachable images that benefit from atlasing."""

    def __init__(self, runtime_bundle_folder: str = "Resources"):
        """
        Args:
            runtime_bundle_folder: Folder name marking assets loaded at runtime
        """
        self.runtime_bundle_folder = runtime_bundle_folder

    def is_runtime_bundle(self, path: str) -> bool:
        """Check whether a path lies under a runtime-loaded folder."""
        return f"/{self.runtime_bundle_folder}/" in f"/{path}"

    def is_already_optimal(self, image: ImageResource) -> bool:
        """Square power-of-two textures gain nothing from atlasing."""
        return image.width == image.height and is_power_of_two(image.width) and is_power_of_two(image.height)

    def apply(self, index: AssetIndex, reachable: Iterable[AssetRef]) -> FilterResult:
        """
        Filter the reachable set down to eligible images.

        Args:
            index: Asset index used to load image properties
            reachable: Reachable asset references

        Returns:
            FilterResult with images sorted by path
        """
        result = FilterResult()

        for ref in sorted(reachable, key=lambda r: (r.path, r.guid)):
            image = index.load_image(ref)
            if image is None:
                continue

            if self.is_runtime_bundle(image.path):
                result.diagnostics.append(Diagnostic(
                    DiagnosticKind.EXCLUDED_RUNTIME_BUNDLE, image.path,
                    f"Skipping image under runtime-loaded '{self.runtime_bundle_folder}' folder"
                ))
            elif self.is_already_optimal(image):
                result.diagnostics.append(Diagnostic(
                    DiagnosticKind.EXCLUDED_POWER_OF_TWO, image.path,
                    f"Skipping image already square and power of two ({image.width}x{image.height})"
                ))
            else:
                if not image.format_known:
                    result.diagnostics.append(Diagnostic(
                        DiagnosticKind.UNSUPPORTED_FORMAT, image.path,
                        f"Unsupported texture format ({image.texture_format}), treating as alpha"
                    ))
                result.eligible.append(image)

        return result
