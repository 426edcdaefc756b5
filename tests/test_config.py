import os
import unittest

from darkspots.config import DEFAULT_RASTER_PATH, Settings
from darkspots.domain import SearchPolicy


class TestConfig(unittest.TestCase):
    def test_settings_defaults(self):
        previous = os.environ.pop("DARKSPOTS_RASTER_SOURCE", None)
        try:
            s = Settings()
            self.assertEqual(s.raster_source, "json")
            self.assertEqual(s.raster_path, DEFAULT_RASTER_PATH)
            self.assertEqual(s.accessibility_search_radius_m, 2000)
            self.assertEqual(s.nearest_pool_size, 10)
            self.assertEqual(s.band_pool_size, 5)
        finally:
            if previous is not None:
                os.environ["DARKSPOTS_RASTER_SOURCE"] = previous

    def test_settings_env_override(self):
        previous = os.environ.get("DARKSPOTS_OVERPASS_URL")
        try:
            os.environ["DARKSPOTS_OVERPASS_URL"] = "http://overpass.local/api/interpreter/"
            s = Settings()
            self.assertEqual(s.overpass_url, "http://overpass.local/api/interpreter")
        finally:
            if previous is None:
                os.environ.pop("DARKSPOTS_OVERPASS_URL", None)
            else:
                os.environ["DARKSPOTS_OVERPASS_URL"] = previous

    def test_raster_source_is_normalized(self):
        previous = os.environ.get("DARKSPOTS_RASTER_SOURCE")
        try:
            os.environ["DARKSPOTS_RASTER_SOURCE"] = " SQL "
            self.assertEqual(Settings().raster_source, "sql")
        finally:
            if previous is None:
                os.environ.pop("DARKSPOTS_RASTER_SOURCE", None)
            else:
                os.environ["DARKSPOTS_RASTER_SOURCE"] = previous

    def test_policy_from_settings(self):
        s = Settings(darkness_weight=3.0, accessibility_weight=0.5, nearest_pool_size=20, band_pool_size=7)
        policy = SearchPolicy.from_settings(s)
        self.assertEqual(policy.darkness_weight, 3.0)
        self.assertEqual(policy.accessibility_weight, 0.5)
        self.assertEqual(policy.nearest_pool_size, 20)
        self.assertEqual(policy.band_pool_size, 7)
        self.assertEqual(policy.minimum_accessible_count, 1)


if __name__ == "__main__":
    unittest.main()
