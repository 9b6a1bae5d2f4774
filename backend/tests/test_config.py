from __future__ import annotations

import sys
import unittest
from pathlib import Path

from pydantic import ValidationError

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from backend.app.config import Settings


class SettingsTests(unittest.TestCase):
    def test_sqlite_url_is_built_when_database_url_missing(self):
        s = Settings(database_url=None, sqlite_db_path="/tmp/wd-test.db")
        self.assertEqual(s.database_url, "sqlite+aiosqlite:////tmp/wd-test.db")

    def test_explicit_database_url_wins(self):
        s = Settings(database_url="sqlite+aiosqlite:///:memory:")
        self.assertEqual(s.database_url, "sqlite+aiosqlite:///:memory:")

    def test_out_of_range_refresh_time_falls_back_to_one_am(self):
        s = Settings(weather_refresh_hour=30, weather_refresh_minute=-5)
        self.assertEqual(s.weather_refresh_hour, 1)
        self.assertEqual(s.weather_refresh_minute, 0)

    def test_unknown_timezone_is_rejected(self):
        with self.assertRaises(ValidationError):
            Settings(timezone="Mars/Olympus_Mons")

    def test_blank_weather_key_is_treated_as_missing(self):
        s = Settings(openweathermap_key="   ")
        self.assertIsNone(s.openweathermap_key)
        with self.assertRaises(RuntimeError):
            s.require_weather_key()

    def test_require_weather_key_returns_key(self):
        s = Settings(openweathermap_key=" abc ")
        self.assertEqual(s.require_weather_key(), "abc")

    def test_non_positive_timeout_falls_back_to_default(self):
        s = Settings(weather_http_timeout_seconds=0)
        self.assertEqual(s.weather_http_timeout_seconds, 5.0)


if __name__ == "__main__":
    unittest.main()
