import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from demo_launcher.models import DemoSource
from demo_launcher.settings import (
    AppSettings,
    ConfigError,
    LauncherConfig,
    SettingsStorage,
    load_config,
)


class LauncherConfigTests(unittest.TestCase):
    def test_from_dict_normalizes_urls(self):
        config = LauncherConfig.from_dict(
            {
                "DemoSources": {"Mirror": "https://demos.example.com/aqtion"},
                "S3BucketRoot": "https://demos.s3.amazonaws.com",
                "Q2ProZipUrl": "https://example.com/q2pro.zip",
                "MapZipUrlPattern": "https://maps.example.com/{0}.zip",
            }
        )

        self.assertEqual((DemoSource(name="Mirror", base_url="https://demos.example.com/aqtion/"),), config.sources)
        self.assertEqual("https://demos.s3.amazonaws.com/", config.s3_bucket_root)
        self.assertEqual("https://maps.example.com/{0}.zip", config.map_zip_url_pattern)
        self.assertEqual("", config.update_api_url)

    def test_sources_keep_configured_order(self):
        config = LauncherConfig.from_dict({"DemoSources": {"B": "https://b/", "A": "https://a/"}})

        self.assertEqual(["B", "A"], [source.name for source in config.sources])

    def test_missing_or_invalid_sources_raise(self):
        for data in ({}, {"DemoSources": {}}, {"DemoSources": ["x"]}, {"DemoSources": {"A": ""}}):
            with self.subTest(data=data):
                with self.assertRaises(ConfigError):
                    LauncherConfig.from_dict(data)

    def test_non_string_endpoint_raises(self):
        with self.assertRaises(ConfigError):
            LauncherConfig.from_dict({"DemoSources": {"A": "https://a/"}, "Q2ProZipUrl": 5})


class LoadConfigTests(unittest.TestCase):
    def test_explicit_path(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp, "appsettings.json")
            path.write_text(json.dumps({"DemoSources": {"Local": "https://local.example.com/"}}), encoding="utf-8")

            config = load_config(path)

        self.assertEqual(["Local"], [source.name for source in config.sources])

    def test_missing_explicit_path_raises(self):
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(ConfigError):
                load_config(Path(tmp, "missing.json"))

    def test_invalid_json_raises(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp, "appsettings.json")
            path.write_text("{not json", encoding="utf-8")

            with self.assertRaises(ConfigError):
                load_config(path)

    def test_working_directory_file_wins_over_bundled(self):
        with tempfile.TemporaryDirectory() as tmp:
            Path(tmp, "appsettings.json").write_text(
                json.dumps({"DemoSources": {"Cwd": "https://cwd.example.com/"}}),
                encoding="utf-8",
            )
            with patch.object(Path, "cwd", return_value=Path(tmp)):
                config = load_config()

        self.assertEqual(["Cwd"], [source.name for source in config.sources])

    def test_falls_back_to_bundled_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            with patch.object(Path, "cwd", return_value=Path(tmp)):
                config = load_config()

        self.assertTrue(config.sources)
        self.assertTrue(all(source.base_url.endswith("/") for source in config.sources))


class SettingsStorageTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name, "settings.json")
        self.storage = SettingsStorage(self.path)

    def tearDown(self):
        self._tmp.cleanup()

    def test_missing_file_gives_defaults(self):
        self.assertEqual(AppSettings(), self.storage.load())

    def test_round_trip(self):
        settings = AppSettings(engine_path="/games/q2pro", last_source="Mirror", sort_descending=True)

        self.storage.save(settings)

        self.assertEqual(settings, self.storage.load())

    def test_invalid_values_are_replaced_by_defaults(self):
        self.path.write_text(
            json.dumps({"engine_path": 3, "last_source": "Mirror", "sort_descending": "yes"}),
            encoding="utf-8",
        )

        self.assertEqual(AppSettings(last_source="Mirror"), self.storage.load())

    def test_corrupt_file_gives_defaults(self):
        self.path.write_text("[1, 2", encoding="utf-8")

        self.assertEqual(AppSettings(), self.storage.load())


if __name__ == "__main__":
    unittest.main()
