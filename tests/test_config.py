from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from tempfile import TemporaryDirectory
import unittest

from muhasib.config import ConfigManager, MuhasibConfig


class ConfigManagerTests(unittest.TestCase):
    def test_first_load_writes_defaults(self) -> None:
        with TemporaryDirectory() as tmp:
            path = Path(tmp) / "muhasib" / "config.toml"
            manager = ConfigManager(path)

            config = manager.load()

            self.assertTrue(path.exists())
            self.assertEqual(config.to_dict(), MuhasibConfig.default().to_dict())
            self.assertEqual(manager.load().to_dict(), config.to_dict())
            self.assertEqual(manager.errors(), [])

    def test_reads_all_sections(self) -> None:
        with TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.toml"
            path.write_text(
                "\n".join([
                    "[location]",
                    "latitude = 60.17",
                    "longitude = 24.94",
                    'timezone = "Europe/Helsinki"',
                    "use_geolocation = false",
                    "",
                    "[prayer_settings]",
                    'calculation_method = "MuslimWorldLeague"',
                    'madhab = "Hanafi"',
                    "timeout = 4",
                    "",
                    "[cache]",
                    "freshness_hours = 12",
                    "",
                    "[storage]",
                    f'path = "{Path(tmp) / "store.json"}"',
                    'completion_scope = "day"',
                ]),
                encoding="utf-8",
            )

            config = ConfigManager(path).load()

            self.assertEqual(config.location.latitude, 60.17)
            self.assertEqual(config.location.longitude, 24.94)
            self.assertEqual(config.location.timezone, "Europe/Helsinki")
            self.assertFalse(config.location.use_geolocation)
            self.assertEqual(config.prayer_settings.calculation_method, "MuslimWorldLeague")
            self.assertEqual(config.prayer_settings.madhab, "Hanafi")
            self.assertEqual(config.prayer_settings.timeout, 4.0)
            self.assertEqual(config.cache.freshness, timedelta(hours=12))
            self.assertEqual(config.storage.path, Path(tmp) / "store.json")
            self.assertEqual(config.storage.completion_scope, "day")

    def test_invalid_values_fall_back_and_are_reported(self) -> None:
        with TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.toml"
            path.write_text(
                "\n".join([
                    "[location]",
                    'latitude = "north"',
                    "",
                    "[cache]",
                    "freshness_hours = -1",
                    "",
                    "[storage]",
                    'completion_scope = "week"',
                ]),
                encoding="utf-8",
            )
            manager = ConfigManager(path)

            config = manager.load()

            self.assertIsNone(config.location.latitude)
            self.assertEqual(config.cache.freshness_hours, 24.0)
            self.assertEqual(config.storage.completion_scope, "prayer")
            self.assertEqual(len(manager.errors()), 3)

    def test_unparseable_file_uses_defaults(self) -> None:
        with TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.toml"
            path.write_text("[location\nlatitude = ", encoding="utf-8")
            manager = ConfigManager(path)

            config = manager.load()

            self.assertEqual(config.to_dict(), MuhasibConfig.default().to_dict())
            self.assertEqual(len(manager.errors()), 1)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
