import unittest

from fastapi.testclient import TestClient

from darkspots.api import get_spot_finder
from darkspots.config import DEFAULT_RASTER_PATH
from darkspots.data_sources.base import CallableSpotDataSource
from darkspots.data_sources.raster_sources import load_raster_json
from darkspots.main import app
from darkspots.spot_finder import SpotFinder


class TestMain(unittest.TestCase):
    def test_app_metadata(self):
        self.assertEqual(app.title, "Dark Sky Spots")
        paths = {route.path for route in app.routes}
        self.assertTrue({"/healthz", "/v1/find-spots", "/v1/spots", "/v1/spot-info"} <= paths)

    def test_healthz_reports_raster(self):
        finder = SpotFinder(
            load_raster_json(DEFAULT_RASTER_PATH),
            CallableSpotDataSource(features=lambda *a, **k: [], geocoder=lambda *a, **k: None),
        )
        app.dependency_overrides[get_spot_finder] = lambda: finder
        try:
            resp = TestClient(app).get("/healthz")
        finally:
            app.dependency_overrides.clear()

        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["status"], "ok")
        self.assertEqual(body["raster"]["resolution"], 0.25)
        self.assertGreater(body["raster"]["covered_cells"], 0)


if __name__ == "__main__":
    unittest.main()
