"""
Tests for image eligibility rules.
"""

import unittest
from unittest.mock import Mock

from ..filtering import EligibilityFilter, is_power_of_two
from ..index import AssetIndex, AssetRef
from ..report import DiagnosticKind
from .project import make_image


class TestEligibilityFilter(unittest.TestCase):
    """Test filtering of reachable assets."""

    def setUp(self):
        self.images = {
            "Assets/UI/button.png": make_image("Assets/UI/button.png", 120, 40),
            "Assets/UI/square.png": make_image("Assets/UI/square.png", 64, 64),
            "Assets/UI/npot.png": make_image("Assets/UI/npot.png", 100, 100),
            "Assets/Resources/dynamic.png": make_image("Assets/Resources/dynamic.png", 30, 30),
            "Assets/UI/odd.png": make_image("Assets/UI/odd.png", 10, 20, texture_format="BC7"),
        }
        self.index = Mock(spec=AssetIndex)
        self.index.load_image.side_effect = lambda ref: self.images.get(ref.path)
        self.filter = EligibilityFilter("Resources")

    def refs(self, *paths):
        return {AssetRef(path, path) for path in paths}

    def test_power_of_two_helper(self):
        self.assertTrue(is_power_of_two(1))
        self.assertTrue(is_power_of_two(256))
        self.assertFalse(is_power_of_two(0))
        self.assertFalse(is_power_of_two(96))

    def test_keeps_eligible_images_sorted(self):
        result = self.filter.apply(self.index, self.refs("Assets/UI/npot.png", "Assets/UI/button.png"))

        self.assertEqual([image.path for image in result.eligible],
                         ["Assets/UI/button.png", "Assets/UI/npot.png"])
        self.assertEqual(result.diagnostics, [])

    def test_non_images_skipped_silently(self):
        result = self.filter.apply(self.index, self.refs("Assets/Scenes/Main.scene"))

        self.assertEqual(result.eligible, [])
        self.assertEqual(result.diagnostics, [])

    def test_square_power_of_two_excluded(self):
        result = self.filter.apply(self.index, self.refs("Assets/UI/square.png"))

        self.assertEqual(result.eligible, [])
        self.assertEqual(result.diagnostics[0].kind, DiagnosticKind.EXCLUDED_POWER_OF_TWO)

    def test_runtime_bundle_excluded(self):
        result = self.filter.apply(self.index, self.refs("Assets/Resources/dynamic.png"))

        self.assertEqual(result.eligible, [])
        self.assertEqual(result.diagnostics[0].kind, DiagnosticKind.EXCLUDED_RUNTIME_BUNDLE)

    def test_runtime_bundle_requires_exact_folder(self):
        self.assertFalse(self.filter.is_runtime_bundle("Assets/MyResources/a.png"))
        self.assertTrue(self.filter.is_runtime_bundle("Assets/Deep/Resources/Sub/a.png"))

    def test_unknown_format_kept_with_diagnostic(self):
        result = self.filter.apply(self.index, self.refs("Assets/UI/odd.png"))

        self.assertEqual(len(result.eligible), 1)
        self.assertEqual(result.diagnostics[0].kind, DiagnosticKind.UNSUPPORTED_FORMAT)


if __name__ == '__main__':
    unittest.main()
