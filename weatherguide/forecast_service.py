"""Assemble forecast hours, alerts and derived advice into a dashboard payload."""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from weatherguide import config
from weatherguide.advice_engine import build_advice, generate_advisory_items, group_advisories_by_category
from weatherguide.data_sources import WeatherDataSource, default_data_source, demo_alerts
from weatherguide.data_sources.alerts import WeatherAlert
from weatherguide.data_sources.geocode import CityResult
from weatherguide.domain import AdvisoryCategory, AdvisoryItem, AdvisorySummary, HourlySample, WindowResult
from weatherguide.errors import AlertsError
from weatherguide.window_stats import compute_window_stats
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="forecast_service")


@dataclass
class WeatherDashboard:
    """Everything the dashboard shows for one place."""
    city: CityResult
    hours: List[HourlySample]
    alerts: List[WeatherAlert]
    outlook: WindowResult
    advisories: List[AdvisoryItem]
    summary: AdvisorySummary
    grouped_advisories: Dict[AdvisoryCategory, List[AdvisoryItem]] = field(default_factory=dict)


def to_local_time(iso_time: str, tz: Optional[str] = None) -> dt.datetime:
    """Parse an ISO timestamp as wall-clock time.

    ``tz`` is ignored: the forecast is requested
    with ``timezone=auto`` so timestamps are already local to the location.
    """
    return dt.datetime.fromisoformat(iso_time.replace("Z", "+00:00")).replace(tzinfo=None)


def build_dashboard(
    city: CityResult,
    hours: List[HourlySample],
    alerts: List[WeatherAlert],
    *,
    window_hours: int | None = None,
) -> WeatherDashboard:
    """Pure assembly: stats over the outlook window, advisory items and the badge summary."""
    window_hours = window_hours or config.settings.advice_window_hours
    outlook = compute_window_stats(hours, window_hours)
    advisories = generate_advisory_items(outlook.raw) if outlook.window else []
    summary = build_advice(hours)
    return WeatherDashboard(
        city=city,
        hours=list(hours),
        alerts=list(alerts),
        outlook=outlook,
        advisories=advisories,
        summary=summary,
        grouped_advisories=dict(group_advisories_by_category(advisories)),
    )


def _fetch_alerts_or_fallback(
    ds: WeatherDataSource,
    city: CityResult,
    settings: config.Settings,
) -> List[WeatherAlert]:
    """Alerts are best-effort: a failing feed never blocks the forecast."""
    try:
        return ds.fetch_alerts(city.latitude, city.longitude)
    except AlertsError as exc:
        logger.warning(
            "Alerts feed unavailable",
            extra={"error": str(exc), "code": exc.code, "demo_fallback": settings.alerts_demo_fallback},
        )
        if settings.alerts_demo_fallback:
            return demo_alerts(city.latitude, city.longitude)
        return []


def get_dashboard_for_coordinates(
    latitude: float,
    longitude: float,
    *,
    name: str | None = None,
    data_source: WeatherDataSource | None = None,
    settings: config.Settings | None = None,
) -> WeatherDashboard:
    """Fetch forecast and alerts for known coordinates and build the dashboard."""
    settings = settings or config.settings
    ds = data_source or default_data_source()
    city = CityResult(name=name or f"{latitude:.4f}, {longitude:.4f}", latitude=latitude, longitude=longitude)

    logger.info(
        "Building dashboard",
        extra={"latitude": latitude, "longitude": longitude, "city_name": city.name},
    )
    hours = ds.fetch_hourly_forecast(latitude, longitude)
    alerts = _fetch_alerts_or_fallback(ds, city, settings)
    dashboard = build_dashboard(city, hours, alerts, window_hours=settings.advice_window_hours)

    logger.info(
        "Built dashboard",
        extra={
            "hours": len(dashboard.hours),
            "alerts": len(dashboard.alerts),
            "advisories": [a.id for a in dashboard.advisories],
        },
    )
    return dashboard


def get_dashboard_for_city(
    query: str,
    *,
    data_source: WeatherDataSource | None = None,
    settings: config.Settings | None = None,
) -> WeatherDashboard:
    """Geocode ``query`` then build the dashboard for the match."""
    ds = data_source or default_data_source()
    city = ds.geocode_city(query)
    return get_dashboard_for_coordinates(
        city.latitude,
        city.longitude,
        name=city.name,
        data_source=ds,
        settings=settings,
    )


def main():
    """Manual test helper: print the dashboard for the default city."""
    dashboard = get_dashboard_for_city(config.settings.default_city)
    stats = dashboard.outlook.stats
    print(f"{dashboard.city.name} ({dashboard.city.latitude:.4f}, {dashboard.city.longitude:.4f})\n"
          f"    feels like: {stats.min_apparent:.0f}°C - {stats.max_apparent:.0f}°C (avg {stats.avg_apparent:.0f}°C)\n"
          f"    rain: {stats.max_precipitation_probability:.0f}% / {stats.total_precipitation:.1f} mm\n"
          f"    wind: {stats.max_wind:.0f} km/h, UV {stats.max_uv:.0f}\n"
          f"    badges: {', '.join(dashboard.summary.badges) or '-'}\n"
          f"    {dashboard.summary.text}")
    for category, items in dashboard.grouped_advisories.items():
        print(f"  {category.value}:")
        for item in items:
            print(f"    {item.icon} {item.message} ({item.severity.value})")
    for alert in dashboard.alerts:
        print(f"  ALERT [{alert.severity}] {alert.title} until {alert.expires.isoformat()}")


if __name__ == "__main__":
    main()
