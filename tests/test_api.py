import datetime as dt
import unittest

from fastapi.testclient import TestClient

from weatherguide.main import app as fastapi_app
from weatherguide.data_sources.alerts import WeatherAlert
from weatherguide.data_sources.geocode import CityResult
from weatherguide.domain import HourlySample
from weatherguide.errors import (
    ForecastDataError,
    ForecastError,
    ForecastNetworkError,
    LocationNotFoundError,
    RateLimitError,
)
from weatherguide.forecast_service import build_dashboard

START = dt.datetime(2025, 7, 1, 9, 0)
NOW = dt.datetime(2025, 7, 1, 12, 0, tzinfo=dt.timezone.utc)


def _hour(idx: int = 0, **overrides) -> dict:
    base = {
        "timestamp": (START + dt.timedelta(hours=idx)).isoformat(),
        "air_temperature": 29.0,
        "apparent_temperature": 31.0,
        "precipitation_probability": 10.0,
        "precipitation_amount": 0.0,
        "wind_speed": 12.0,
        "uv_index": 8.0,
        "relative_humidity": 55.0,
    }
    base.update(overrides)
    return base


def _mock_dashboard(name="Oakville, Ontario, Canada"):
    hours = [HourlySample(**_hour(i)) for i in range(24)]
    alerts = [WeatherAlert(title="Heat Warning", description="Hot.", severity="Moderate",
                           effective=NOW, expires=NOW + dt.timedelta(hours=12))]
    city = CityResult(name=name, latitude=43.4675, longitude=-79.6877)
    return build_dashboard(city, hours, alerts, window_hours=6)


class TestApi(unittest.TestCase):
    def setUp(self):
        import weatherguide.api as api_mod
        from weatherguide.config import settings

        self.api_mod = api_mod
        self._orig_for_city = api_mod.get_dashboard_for_city
        self._orig_for_coords = api_mod.get_dashboard_for_coordinates
        self._orig_api_key = settings.api_key
        settings.api_key = None
        api_mod.clear_dashboard_cache()

    def tearDown(self):
        from weatherguide.config import settings

        self.api_mod.get_dashboard_for_city = self._orig_for_city
        self.api_mod.get_dashboard_for_coordinates = self._orig_for_coords
        settings.api_key = self._orig_api_key
        self.api_mod.clear_dashboard_cache()

    def _stub_city(self, result=None, error=None):
        calls = []

        def fake(query, **kwargs):
            calls.append(query)
            if error is not None:
                raise error
            return result or _mock_dashboard()

        self.api_mod.get_dashboard_for_city = fake
        return calls

    def test_health(self):
        client = TestClient(fastapi_app)
        resp = client.get("/v1/health")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"status": "ok"})

    def test_dashboard_for_city(self):
        calls = self._stub_city()
        client = TestClient(fastapi_app)

        resp = client.get("/v1/dashboard", params={"city": "Oakville"})
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(calls, ["Oakville"])
        self.assertEqual(body["city"]["name"], "Oakville, Ontario, Canada")
        self.assertEqual(len(body["hours"]), 24)
        self.assertEqual(body["outlook"]["max_apparent"], 31)
        self.assertEqual([a["id"] for a in body["advisories"]], ["light-clothing", "sunscreen-high"])
        self.assertEqual(body["advisories"][1]["severity_label"], "Important")
        self.assertEqual([g["title"] for g in body["advisory_groups"]], ["What to Wear", "Safety First"])
        self.assertEqual(body["alerts"][0]["severity_class"], "moderate")
        self.assertEqual(body["summary"]["badges"],
                         ["Sunscreen recommended", "Wind caution", "Heat comfort tips"])

    def test_dashboard_defaults_to_configured_city(self):
        from weatherguide.config import settings

        calls = self._stub_city()
        client = TestClient(fastapi_app)
        resp = client.get("/v1/dashboard")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(calls, [settings.default_city])

    def test_dashboard_is_cached_per_city(self):
        calls = self._stub_city()
        client = TestClient(fastapi_app)
        client.get("/v1/dashboard", params={"city": "Oakville"})
        client.get("/v1/dashboard", params={"city": "oakville "})
        self.assertEqual(calls, ["Oakville"])

        client.get("/v1/dashboard", params={"city": "Toronto"})
        self.assertEqual(calls, ["Oakville", "Toronto"])

    def test_dashboard_error_mapping(self):
        cases = [
            (LocationNotFoundError("Atlantis"), 404),
            (RateLimitError(), 429),
            (ForecastNetworkError("HTTP 503"), 502),
            (ForecastDataError("Insufficient forecast data"), 502),
            (ForecastError("Latitude must be between -90 and 90"), 400),
        ]
        client = TestClient(fastapi_app)
        for error, expected in cases:
            with self.subTest(error=type(error).__name__):
                self._stub_city(error=error)
                resp = client.get("/v1/dashboard", params={"city": "Atlantis"})
                self.assertEqual(resp.status_code, expected)
                self.assertEqual(resp.json()["detail"], error.message)

    def _stub_coordinates(self):
        calls = []

        def fake(latitude, longitude, name=None, **kwargs):
            calls.append((latitude, longitude))
            return _mock_dashboard(name=name or f"{latitude:.4f}, {longitude:.4f}")

        self.api_mod.get_dashboard_for_coordinates = fake
        return calls

    def test_expired_dashboards_are_swept_on_store(self):
        from weatherguide.config import settings

        self._stub_coordinates()
        client = TestClient(fastapi_app)
        orig_ttl = settings.dashboard_ttl_seconds
        settings.dashboard_ttl_seconds = 0
        try:
            for i in range(50):
                resp = client.get("/v1/dashboard/coordinates", params={"latitude": i, "longitude": 0})
                self.assertEqual(resp.status_code, 200)
            self.assertLessEqual(len(self.api_mod._dashboard_cache), 1)
        finally:
            settings.dashboard_ttl_seconds = orig_ttl

    def test_dashboard_cache_is_bounded(self):
        calls = self._stub_coordinates()
        client = TestClient(fastapi_app)
        orig_max = self.api_mod.MAX_CACHED_DASHBOARDS
        self.api_mod.MAX_CACHED_DASHBOARDS = 3
        try:
            for i in range(10):
                client.get("/v1/dashboard/coordinates", params={"latitude": i, "longitude": 0})
            self.assertEqual(len(self.api_mod._dashboard_cache), 3)
            self.assertEqual(
                list(self.api_mod._dashboard_cache),
                ["coords:7.0000,0.0000", "coords:8.0000,0.0000", "coords:9.0000,0.0000"],
            )
            # oldest entries were evicted, the newest are still served from cache
            client.get("/v1/dashboard/coordinates", params={"latitude": 9, "longitude": 0})
            self.assertEqual(len(calls), 10)
            client.get("/v1/dashboard/coordinates", params={"latitude": 0, "longitude": 0})
            self.assertEqual(len(calls), 11)
        finally:
            self.api_mod.MAX_CACHED_DASHBOARDS = orig_max

    def test_outlook_numbers_are_integers(self):
        self._stub_city()
        client = TestClient(fastapi_app)
        outlook = client.get("/v1/dashboard", params={"city": "Oakville"}).json()["outlook"]
        self.assertIsInstance(outlook["avg_apparent"], int)
        self.assertIsInstance(outlook["max_wind"], int)
        self.assertIsInstance(outlook["total_precipitation"], float)

    def test_errors_are_not_cached(self):
        client = TestClient(fastapi_app)
        self._stub_city(error=ForecastNetworkError("timeout"))
        self.assertEqual(client.get("/v1/dashboard", params={"city": "Oakville"}).status_code, 502)
        self._stub_city()
        self.assertEqual(client.get("/v1/dashboard", params={"city": "Oakville"}).status_code, 200)

    def test_dashboard_for_coordinates(self):
        calls = []

        def fake(latitude, longitude, name=None, **kwargs):
            calls.append((latitude, longitude, name))
            return _mock_dashboard(name=name or "43.4675, -79.6877")

        self.api_mod.get_dashboard_for_coordinates = fake
        client = TestClient(fastapi_app)
        resp = client.get("/v1/dashboard/coordinates", params={"latitude": 43.4675, "longitude": -79.6877})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["city"]["name"], "43.4675, -79.6877")
        self.assertEqual(calls, [(43.4675, -79.6877, None)])

    def test_coordinates_out_of_range(self):
        client = TestClient(fastapi_app)
        resp = client.get("/v1/dashboard/coordinates", params={"latitude": 91, "longitude": 0})
        self.assertEqual(resp.status_code, 422)

    def test_advice(self):
        client = TestClient(fastapi_app)
        hours = [_hour(i) for i in range(6)]
        resp = client.post("/v1/advice", json={"hours": hours, "window_hours": 3})
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["window_hours"], 3)
        self.assertEqual(body["stats"]["max_uv"], 8)
        self.assertEqual([a["id"] for a in body["advisories"]], ["light-clothing", "sunscreen-high"])
        self.assertIn("Heat comfort tips", body["summary"]["badges"])

    def test_advice_apparent_aware_resolves_missing_values(self):
        client = TestClient(fastapi_app)
        hours = [_hour(i, air_temperature=-5.0, apparent_temperature=None, wind_speed=30.0, uv_index=0.0)
                 for i in range(6)]
        plain = client.post("/v1/advice", json={"hours": hours}).json()
        aware = client.post("/v1/advice", json={"hours": hours, "apparent_aware": True}).json()
        self.assertEqual(plain["stats"], aware["stats"])
        self.assertLess(aware["stats"]["min_apparent"], -5)

    def test_advice_with_no_hours(self):
        client = TestClient(fastapi_app)
        resp = client.post("/v1/advice", json={"hours": []})
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["advisories"], [])
        self.assertEqual(body["summary"], {"badges": [], "text": "No weather data available for guidance."})
        self.assertEqual(body["stats"]["avg_apparent"], 0)

    def test_advice_rejects_bad_samples(self):
        client = TestClient(fastapi_app)
        resp = client.post("/v1/advice", json={"hours": [_hour(0, precipitation_probability=140.0)]})
        self.assertEqual(resp.status_code, 422)
        resp = client.post("/v1/advice", json={"hours": [_hour(0)], "window_hours": 0})
        self.assertEqual(resp.status_code, 422)

    def test_requires_api_key_when_set(self):
        from weatherguide.config import settings

        self._stub_city()
        client = TestClient(fastapi_app)
        settings.api_key = "sekret"

        missing = client.get("/v1/health")
        self.assertEqual(missing.status_code, 401)
        self.assertEqual(missing.json()["detail"], "Missing API key")

        wrong = client.get("/v1/health", headers={"X-API-Key": "nope"})
        self.assertEqual(wrong.status_code, 401)

        ok = client.get("/v1/dashboard", headers={"X-API-Key": "sekret"})
        self.assertEqual(ok.status_code, 200)


if __name__ == "__main__":
    unittest.main()
