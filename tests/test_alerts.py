import datetime as dt
import unittest

import requests

from weatherguide.data_sources import alerts
from weatherguide.errors import AlertsError

NOW = dt.datetime(2025, 1, 15, 12, 0, tzinfo=dt.timezone.utc)


class DummyResp:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)

    def json(self):
        return self._payload


def _feature(**props):
    return {"type": "Feature", "properties": props}


class TestParseAlerts(unittest.TestCase):
    def test_maps_primary_fields(self):
        payload = {
            "features": [
                _feature(
                    headline="Snowfall warning",
                    description="15 cm of snow expected.",
                    severity="Moderate",
                    effective="2025-01-15T06:00:00Z",
                    expires="2025-01-16T06:00:00Z",
                )
            ]
        }
        (alert,) = alerts.parse_alerts(payload, now=NOW)
        self.assertEqual(alert.title, "Snowfall warning")
        self.assertEqual(alert.description, "15 cm of snow expected.")
        self.assertEqual(alert.severity, "Moderate")
        self.assertEqual(alert.effective, dt.datetime(2025, 1, 15, 6, 0, tzinfo=dt.timezone.utc))

    def test_falls_back_through_alternative_fields(self):
        payload = {"features": [_feature(event="Fog", instruction="Drive slowly.", urgency="Expected",
                                         onset="2025-01-15T10:00:00")]}
        (alert,) = alerts.parse_alerts(payload, now=NOW)
        self.assertEqual(alert.title, "Fog")
        self.assertEqual(alert.description, "Drive slowly.")
        self.assertEqual(alert.severity, "Expected")
        self.assertEqual(alert.effective, dt.datetime(2025, 1, 15, 10, 0, tzinfo=dt.timezone.utc))
        self.assertEqual(alert.expires, NOW + dt.timedelta(hours=24))

    def test_defaults_when_everything_is_missing(self):
        (alert,) = alerts.parse_alerts({"features": [_feature(areaDesc="Halton")]}, now=NOW)
        self.assertEqual(alert.title, "Weather Alert")
        self.assertEqual(alert.description, "No description available")
        self.assertEqual(alert.severity, "Unknown")
        self.assertEqual(alert.effective, NOW)

    def test_expired_alerts_are_dropped(self):
        payload = {"features": [_feature(headline="Old", expires="2025-01-14T00:00:00Z"),
                                _feature(headline="Current", expires="2025-01-15T18:00:00Z")]}
        self.assertEqual([a.title for a in alerts.parse_alerts(payload, now=NOW)], ["Current"])

    def test_missing_features_or_properties(self):
        self.assertEqual(alerts.parse_alerts({}, now=NOW), [])
        self.assertEqual(alerts.parse_alerts({"features": [{"type": "Feature"}]}, now=NOW), [])


class TestFetchAlerts(unittest.TestCase):
    def setUp(self):
        self._orig_session = alerts.session

    def tearDown(self):
        alerts.session = self._orig_session

    def test_fetch_alerts(self):
        payload = {"features": [_feature(headline="Wind warning", severity="Severe")]}
        calls = []

        def get(*args, **kwargs):
            calls.append(kwargs)
            return DummyResp(payload)

        alerts.session = type("S", (), {"get": staticmethod(get)})()
        result = alerts.fetch_alerts(43.4, -79.7, now=NOW)
        self.assertEqual([a.title for a in result], ["Wind warning"])
        self.assertEqual(calls[0]["params"], {"f": "json", "lat": 43.4, "lon": -79.7})

    def test_http_error(self):
        alerts.session = type("S", (), {"get": lambda *a, **k: DummyResp({}, status_code=503)})()
        with self.assertRaises(AlertsError) as ctx:
            alerts.fetch_alerts(43.4, -79.7, now=NOW)
        self.assertEqual(ctx.exception.code, "503")

    def test_network_error(self):
        def boom(*args, **kwargs):
            raise requests.Timeout("slow")

        alerts.session = type("S", (), {"get": staticmethod(boom)})()
        with self.assertRaises(AlertsError) as ctx:
            alerts.fetch_alerts(43.4, -79.7, now=NOW)
        self.assertEqual(ctx.exception.code, "NETWORK_ERROR")


class TestDemoAlerts(unittest.TestCase):
    def test_temperate_latitude(self):
        result = alerts.demo_alerts(43.4, -79.7, now=NOW)
        self.assertEqual([a.title for a in result], ["Weather Advisory"])
        self.assertEqual(result[0].expires, NOW + dt.timedelta(hours=24))

    def test_far_north(self):
        result = alerts.demo_alerts(64.0, -110.0, now=NOW)
        self.assertEqual([a.title for a in result], ["Weather Advisory", "Extreme Cold Warning"])
        self.assertEqual(result[1].severity, "Severe")

    def test_tropics(self):
        result = alerts.demo_alerts(20.0, -80.0, now=NOW)
        self.assertEqual([a.title for a in result], ["Weather Advisory", "Heat Warning"])
        self.assertEqual(result[1].expires, NOW + dt.timedelta(hours=12))


class TestSeverityClass(unittest.TestCase):
    def test_buckets(self):
        self.assertEqual(alerts.alert_severity_class("Extreme"), "severe")
        self.assertEqual(alerts.alert_severity_class("SEVERE"), "severe")
        self.assertEqual(alerts.alert_severity_class("Moderate"), "moderate")
        self.assertEqual(alerts.alert_severity_class("minor"), "minor")
        self.assertEqual(alerts.alert_severity_class("Expected"), "unknown")
        self.assertEqual(alerts.alert_severity_class(""), "unknown")


if __name__ == "__main__":
    unittest.main()
