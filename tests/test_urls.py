import unittest

from demo_launcher.urls import (
    breadcrumb,
    combine_url,
    is_inside_root,
    is_s3_url,
    local_file_name,
    normalize_folder_url,
    s3_folder_url,
    s3_object_url,
    s3_prefix_for,
    url_origin,
)

ROOT = "https://demos.example.com/aqtion/"


class FolderUrlTests(unittest.TestCase):
    def test_combined_child_stays_inside_root(self):
        for relative in ("2024/", "Cup%20Finals/", "a/b/"):
            with self.subTest(relative=relative):
                self.assertTrue(is_inside_root(combine_url(ROOT, relative), ROOT))

    def test_combine_treats_base_as_folder(self):
        self.assertEqual(
            "https://demos.example.com/aqtion/2024/",
            combine_url("https://demos.example.com/aqtion", "2024/"),
        )

    def test_parent_and_absolute_links_leave_root(self):
        self.assertFalse(is_inside_root(combine_url(ROOT, "../"), ROOT))
        self.assertFalse(is_inside_root(combine_url(ROOT, "/other/"), ROOT))

    def test_root_check_ignores_case(self):
        self.assertTrue(is_inside_root("HTTPS://Demos.Example.com/AQtion/2024/", ROOT))

    def test_sibling_with_shared_prefix_is_outside(self):
        self.assertFalse(is_inside_root("https://demos.example.com/aqtion-old/", ROOT))

    def test_normalize_resolves_dot_segments(self):
        self.assertEqual("https://demos.example.com/", normalize_folder_url(ROOT + "../"))
        self.assertEqual(ROOT + "2024/", normalize_folder_url(ROOT + "2024/./"))
        self.assertEqual(ROOT + "2024/", normalize_folder_url(ROOT + "2024"))


class BreadcrumbTests(unittest.TestCase):
    def test_root(self):
        self.assertEqual("Root", breadcrumb(ROOT, ROOT))

    def test_nested(self):
        self.assertEqual("Root / 2024 / cup", breadcrumb(ROOT + "2024/cup/", ROOT))

    def test_segments_are_decoded(self):
        self.assertEqual("Root / Cup Finals", breadcrumb(ROOT + "Cup%20Finals/", ROOT))


class LocalFileNameTests(unittest.TestCase):
    def test_takes_final_segment(self):
        self.assertEqual("a.dm2", local_file_name("a.dm2"))
        self.assertEqual("2024", local_file_name("demos/2024/"))
        self.assertEqual("pwned.dm2", local_file_name("../../pwned.dm2"))

    def test_backslash_separates_segments(self):
        self.assertEqual("evil.dm2", local_file_name("..\\..\\evil.dm2"))

    def test_rejects_names_without_a_file(self):
        for path in ("", "/", ".", "..", "../", "a/.."):
            with self.subTest(path=path):
                self.assertIsNone(local_file_name(path))


class S3UrlTests(unittest.TestCase):
    BUCKET = "https://demos.s3.amazonaws.com/"

    def test_detects_s3_hosts(self):
        self.assertTrue(is_s3_url("https://demos.S3.amazonaws.com/demos/"))
        self.assertFalse(is_s3_url(ROOT))

    def test_prefix_for_folder(self):
        self.assertEqual("demos/aqtion", s3_prefix_for(self.BUCKET + "demos/aqtion/", self.BUCKET))
        self.assertEqual("", s3_prefix_for(self.BUCKET, self.BUCKET))

    def test_folder_url_from_key(self):
        self.assertEqual(self.BUCKET + "demos/2024/", s3_folder_url(self.BUCKET, "demos/2024/"))
        self.assertEqual(self.BUCKET, s3_folder_url(self.BUCKET, ""))

    def test_object_url(self):
        self.assertEqual(self.BUCKET + "demos/a.dm2", s3_object_url(self.BUCKET, "demos/a.dm2"))

    def test_object_url_drops_repeated_root_path(self):
        self.assertEqual(
            "https://demos.s3.amazonaws.com/demos/a.dm2",
            s3_object_url("https://demos.s3.amazonaws.com/demos/", "demos/a.dm2"),
        )

    def test_origin(self):
        self.assertEqual("https://demos.s3.amazonaws.com/", url_origin(self.BUCKET + "demos/x/"))


if __name__ == "__main__":
    unittest.main()
