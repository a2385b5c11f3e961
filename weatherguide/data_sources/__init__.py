"""External data sources: forecast, geocoding and alerts clients."""

from .alerts import WeatherAlert, alert_severity_class, demo_alerts, fetch_alerts
from .base import CallableWeatherDataSource, WeatherDataSource, default_data_source
from .geocode import CityResult, GeocodeClient, geocode_city
from .open_meteo_client import fetch_hourly_forecast
from .rate_limit import TokenBucket

__all__ = [
    "CallableWeatherDataSource",
    "CityResult",
    "GeocodeClient",
    "TokenBucket",
    "WeatherAlert",
    "WeatherDataSource",
    "alert_severity_class",
    "default_data_source",
    "demo_alerts",
    "fetch_alerts",
    "fetch_hourly_forecast",
    "geocode_city",
]
