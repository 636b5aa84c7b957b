"""
Tests for packing group partitioning and atlas naming.
"""

import unittest

from ..grouping import GroupKey, SettingsFingerprint, group_resources
from .project import make_image


class TestSettingsFingerprint(unittest.TestCase):
    """Test fingerprint labels."""

    def test_labels(self):
        self.assertEqual(SettingsFingerprint(True, False).label, "RGBA_NoMips")
        self.assertEqual(SettingsFingerprint(False, True).label, "RGB_Mips")

    def test_of_image(self):
        image = make_image("Assets/UI/a.png", 10, 10, alpha=False, mip_count=4)
        self.assertEqual(SettingsFingerprint.of(image), SettingsFingerprint(False, True))


class TestGroupKey(unittest.TestCase):
    """Test atlas naming."""

    def test_atlas_name_uses_folder_name(self):
        key = GroupKey("Assets/UI/Icons", SettingsFingerprint(True, False))
        self.assertEqual(key.atlas_name, "Icons_AutoAtlas_RGBA_NoMips")

    def test_output_path_mirrors_container(self):
        key = GroupKey("Assets/UI/Icons", SettingsFingerprint(False, True))
        self.assertEqual(
            key.output_path("Assets/AutoAtlas/Atlases/"),
            "Assets/AutoAtlas/Atlases/Assets/UI/Icons/Icons_AutoAtlas_RGB_Mips.spriteatlas"
        )

    def test_same_folder_name_different_paths_do_not_collide(self):
        fingerprint = SettingsFingerprint(True, False)
        first = GroupKey("Assets/A/Icons", fingerprint).output_path("Out")
        second = GroupKey("Assets/B/Icons", fingerprint).output_path("Out")
        self.assertNotEqual(first, second)


class TestGroupResources(unittest.TestCase):
    """Test partitioning."""

    def test_partition_by_folder_and_fingerprint(self):
        images = [
            make_image("Assets/UI/a.png", 10, 20),
            make_image("Assets/UI/b.png", 10, 20, alpha=False),
            make_image("Assets/UI/c.png", 10, 20),
            make_image("Assets/UI/d.png", 10, 20, mip_count=3),
            make_image("Assets/Chars/e.png", 10, 20),
        ]

        groups = group_resources(images)

        self.assertEqual(len(groups), 4)
        key = GroupKey("Assets/UI", SettingsFingerprint(True, False))
        self.assertEqual([image.path for image in groups[key]], ["Assets/UI/a.png", "Assets/UI/c.png"])

    def test_union_equals_input(self):
        images = [make_image(f"Assets/F{i % 3}/s{i}.png", 10, 20, alpha=i % 2 == 0) for i in range(9)]

        groups = group_resources(images)
        grouped = [image for members in groups.values() for image in members]

        self.assertEqual(sorted(image.path for image in grouped), sorted(image.path for image in images))

    def test_members_share_key(self):
        images = [make_image(f"Assets/F{i % 2}/s{i}.png", 10, 20, mip_count=1 + i % 3) for i in range(8)]

        for key, members in group_resources(images).items():
            for image in members:
                self.assertEqual(image.directory, key.container_path)
                self.assertEqual(SettingsFingerprint.of(image), key.fingerprint)

    def test_duplicate_image_kept_once(self):
        image = make_image("Assets/UI/a.png", 10, 20)

        groups = group_resources([image, image])

        self.assertEqual(list(groups.values()), [[image]])

    def test_empty_input(self):
        self.assertEqual(group_resources([]), {})


if __name__ == '__main__':
    unittest.main()
