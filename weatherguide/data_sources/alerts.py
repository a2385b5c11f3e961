"""Active weather alerts from the MSC GeoMet (Environment Canada) alerts collection."""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from weatherguide import config
from weatherguide.data_sources.http_session import session
from weatherguide.errors import AlertsError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="alerts")

DEFAULT_ALERT_LIFETIME = dt.timedelta(hours=24)


@dataclass
class WeatherAlert:
    """One alert as shown on the dashboard."""
    title: str
    description: str
    severity: str
    effective: dt.datetime
    expires: dt.datetime

    def is_active(self, now: dt.datetime) -> bool:
        return self.expires > now


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _parse_time(value: Optional[str], default: dt.datetime) -> dt.datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if not value:
        return default
    try:
        parsed = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (TypeError, ValueError):
        logger.debug("Unparseable alert timestamp; using default", extra={"value": value})
        return default
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed


def alert_from_properties(props: Dict[str, Any], now: dt.datetime) -> WeatherAlert:
    """Map one feature's properties, falling back through the alternative field names."""
    return WeatherAlert(
        title=props.get("headline") or props.get("event") or "Weather Alert",
        description=props.get("description") or props.get("instruction") or "No description available",
        severity=props.get("severity") or props.get("urgency") or "Unknown",
        effective=_parse_time(props.get("effective") or props.get("onset"), now),
        expires=_parse_time(props.get("expires") or props.get("ends"), now + DEFAULT_ALERT_LIFETIME),
    )


def parse_alerts(payload: Any, now: dt.datetime | None = None) -> List[WeatherAlert]:
    """Return the unexpired alerts in a GeoJSON feature collection."""
    now = now or _utcnow()
    features = payload.get("features") if isinstance(payload, dict) else None
    if not isinstance(features, list):
        logger.debug("No features array in alerts response")
        return []

    alerts: List[WeatherAlert] = []
    for feature in features:
        props = feature.get("properties") if isinstance(feature, dict) else None
        if not props:
            continue
        alert = alert_from_properties(props, now)
        if alert.is_active(now):
            alerts.append(alert)
        else:
            logger.debug("Dropping expired alert", extra={"title": alert.title})
    return alerts


def fetch_alerts(
    latitude: float,
    longitude: float,
    *,
    now: dt.datetime | None = None,
    settings: config.Settings | None = None,
) -> List[WeatherAlert]:
    """Fetch active alerts covering the coordinates; raise AlertsError on any failure."""
    settings = settings or config.settings
    params = {"f": "json", "lat": latitude, "lon": longitude}
    headers = {"Accept": "application/json", "User-Agent": settings.geocode_user_agent}

    try:
        resp = session.get(
            settings.alerts_base_url,
            params=params,
            headers=headers,
            timeout=settings.request_timeout_seconds,
        )
        resp.raise_for_status()
        payload = resp.json()
    except requests.HTTPError as exc:
        status = exc.response.status_code if exc.response is not None else None
        raise AlertsError(f"Failed to fetch alerts: {exc}", code=str(status) if status else None)
    except ValueError as exc:
        raise AlertsError(f"Alerts response was not valid JSON: {exc}")
    except requests.RequestException as exc:
        raise AlertsError(f"Failed to fetch alerts: {exc}", code="NETWORK_ERROR")

    alerts = parse_alerts(payload, now=now)
    logger.info("Fetched weather alerts", extra={"latitude": latitude, "longitude": longitude, "count": len(alerts)})
    return alerts


def demo_alerts(latitude: float, longitude: float, *, now: dt.datetime | None = None) -> List[WeatherAlert]:
    """Sample alerts shown when the live feed is unreachable."""
    now = now or _utcnow()
    alerts = [
        WeatherAlert(
            title="Weather Advisory",
            description=(
                "Changing weather conditions expected. Monitor local forecasts and be prepared "
                "for varying conditions throughout the day."
            ),
            severity="Minor",
            effective=now,
            expires=now + dt.timedelta(hours=24),
        )
    ]
    if latitude > 60:
        alerts.append(
            WeatherAlert(
                title="Extreme Cold Warning",
                description=(
                    "Extremely cold temperatures or wind chill values are expected. Dress warmly "
                    "in layers and limit time outdoors."
                ),
                severity="Severe",
                effective=now,
                expires=now + dt.timedelta(hours=48),
            )
        )
    elif latitude < 25:
        alerts.append(
            WeatherAlert(
                title="Heat Warning",
                description=(
                    "High temperatures and humidity may pose health risks. Stay hydrated and seek "
                    "air conditioning when possible."
                ),
                severity="Moderate",
                effective=now,
                expires=now + dt.timedelta(hours=12),
            )
        )
    return alerts


def alert_severity_class(severity: str) -> str:
    """Bucket free-text severities into severe / moderate / minor / unknown."""
    lowered = (severity or "").lower()
    if "extreme" in lowered or "severe" in lowered:
        return "severe"
    if "moderate" in lowered:
        return "moderate"
    if "minor" in lowered:
        return "minor"
    return "unknown"
