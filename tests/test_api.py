import unittest

from fastapi.testclient import TestClient

from darkspots.config import DEFAULT_RASTER_PATH
from darkspots.data_sources.base import CallableSpotDataSource
from darkspots.data_sources.overpass_client import RoadFeature
from darkspots.data_sources.raster_sources import load_raster_json
from darkspots.domain import FeatureKind
from darkspots.main import app as fastapi_app
from darkspots.spot_finder import SpotFinder

MUNICH = {"lat": 48.1351, "lng": 11.582}


def _features(lat, lng, **kwargs):
    return [RoadFeature(FeatureKind.PARKING, "Wanderparkplatz", lat + 0.002, lng)]


def _geocoder(lat, lng, **kwargs):
    return "München, Bayern, Deutschland"


class TestApi(unittest.TestCase):
    def setUp(self):
        import darkspots.api as api_mod
        from darkspots.config import settings

        self.api_mod = api_mod
        self._orig_api_key = settings.api_key
        settings.api_key = None

        finder = SpotFinder(
            load_raster_json(DEFAULT_RASTER_PATH),
            CallableSpotDataSource(features=_features, geocoder=_geocoder),
        )
        fastapi_app.dependency_overrides[api_mod.get_spot_finder] = lambda: finder
        self.client = TestClient(fastapi_app)

    def tearDown(self):
        from darkspots.config import settings

        fastapi_app.dependency_overrides.clear()
        settings.api_key = self._orig_api_key

    def test_find_spots(self):
        resp = self.client.get("/v1/find-spots", params={**MUNICH, "maxDistance": 60})
        self.assertEqual(resp.status_code, 200)
        spots = resp.json()["spots"]
        self.assertEqual(len(spots), 3)
        self.assertTrue(all(s["has_road_access"] for s in spots))
        self.assertEqual(spots[0]["nearest_feature"]["kind"], "parking")
        classes = [s["brightness_class"] for s in spots]
        self.assertEqual(classes, sorted(classes))

    def test_find_spots_count(self):
        resp = self.client.get("/v1/find-spots", params={**MUNICH, "maxDistance": 60, "count": 1})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.json()["spots"]), 1)

    def test_find_spots_outside_coverage(self):
        resp = self.client.get("/v1/find-spots", params={"lat": 52.52, "lng": 13.405, "maxDistance": 50})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"spots": []})

    def test_find_spots_invalid_input(self):
        for params in (
            {"lat": 95, "lng": 11.5, "maxDistance": 50},
            {**MUNICH, "maxDistance": 0},
            {**MUNICH, "maxDistance": -3},
            {**MUNICH, "maxDistance": 50, "count": 0},
        ):
            resp = self.client.get("/v1/find-spots", params=params)
            self.assertEqual(resp.status_code, 400, params)
            self.assertIn("detail", resp.json())

    def test_find_spots_missing_distance(self):
        resp = self.client.get("/v1/find-spots", params=MUNICH)
        self.assertEqual(resp.status_code, 422)

    def test_spots_by_band(self):
        resp = self.client.get("/v1/spots", params=MUNICH)
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["origin"]["display_name"], "München, Bayern, Deutschland")
        labels = [s["band_label"] for s in body["spots"]]
        self.assertTrue(set(labels) <= {"10 km", "50 km", "150 km"})
        self.assertEqual(len(labels), len(set(labels)))
        for spot in body["spots"]:
            self.assertIsNotNone(spot["combined_score"])

    def test_spot_info(self):
        resp = self.client.get("/v1/spot-info", params=MUNICH)
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["brightness_class"], 8)
        self.assertEqual(body["score"], 3)
        self.assertTrue(body["label"].startswith("Poor"))
        self.assertTrue(body["covered"])
        self.assertTrue(body["has_road_access"])

    def test_spot_info_invalid(self):
        resp = self.client.get("/v1/spot-info", params={"lat": 10, "lng": 200})
        self.assertEqual(resp.status_code, 400)

    def test_api_key_required_when_configured(self):
        from darkspots.config import settings

        settings.api_key = "s3cret"
        resp = self.client.get("/v1/spot-info", params=MUNICH)
        self.assertEqual(resp.status_code, 401)

        resp = self.client.get("/v1/spot-info", params=MUNICH, headers={"X-API-Key": "wrong"})
        self.assertEqual(resp.status_code, 401)

        resp = self.client.get("/v1/spot-info", params=MUNICH, headers={"X-API-Key": "s3cret"})
        self.assertEqual(resp.status_code, 200)


if __name__ == "__main__":
    unittest.main()
