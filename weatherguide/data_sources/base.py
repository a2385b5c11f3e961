"""Interfaces and helpers for the dashboard's external data sources."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Protocol

from weatherguide.data_sources.alerts import WeatherAlert, fetch_alerts
from weatherguide.data_sources.geocode import CityResult, geocode_city
from weatherguide.data_sources.open_meteo_client import fetch_hourly_forecast
from weatherguide.domain import HourlySample


class WeatherDataSource(Protocol):
    """Anything that can geocode a city and return forecast hours and alerts."""

    def geocode_city(self, query: str) -> CityResult:
        """Resolve a free-text city name to coordinates."""
        ...

    def fetch_hourly_forecast(self, latitude: float, longitude: float) -> List[HourlySample]:
        """Return hourly samples ordered by timestamp."""
        ...

    def fetch_alerts(self, latitude: float, longitude: float) -> List[WeatherAlert]:
        """Return the active alerts for the coordinates."""
        ...


@dataclass
class CallableWeatherDataSource(WeatherDataSource):
    """Wrap three callables so backends can be swapped (tests, cached layers, other APIs)."""

    geocode: Callable[[str], CityResult]
    forecast: Callable[..., List[HourlySample]]
    alerts: Callable[..., List[WeatherAlert]]

    def geocode_city(self, query: str) -> CityResult:
        """Delegate to the configured geocoding callable."""
        return self.geocode(query)

    def fetch_hourly_forecast(self, latitude: float, longitude: float) -> List[HourlySample]:
        """Delegate to the configured forecast callable."""
        return self.forecast(latitude, longitude)

    def fetch_alerts(self, latitude: float, longitude: float) -> List[WeatherAlert]:
        """Delegate to the configured alerts callable."""
        return self.alerts(latitude, longitude)


def default_data_source() -> CallableWeatherDataSource:
    """Nominatim + Open-Meteo + MSC GeoMet."""
    return CallableWeatherDataSource(
        geocode=geocode_city,
        forecast=fetch_hourly_forecast,
        alerts=fetch_alerts,
    )
