"""Fetch hourly forecasts from Open-Meteo and normalize them into HourlySample objects."""
from __future__ import annotations

import datetime as dt
import math
from typing import Any, Dict, List, Optional

import requests
from pydantic import ValidationError

from weatherguide import config
from weatherguide.data_sources.http_session import session
from weatherguide.domain import HourlySample
from weatherguide.errors import ForecastDataError, ForecastError, ForecastNetworkError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="open_meteo_client")

MIN_FORECAST_HOURS = 24

HOURLY_VARS = [
    "temperature_2m",
    "relative_humidity_2m",
    "apparent_temperature",
    "precipitation_probability",
    "precipitation",
    "wind_speed_10m",
    "uv_index",
]

# Arrays that must be present and aligned with "time"; humidity is optional.
REQUIRED_HOURLY_VARS = [
    "time",
    "temperature_2m",
    "apparent_temperature",
    "precipitation_probability",
    "precipitation",
    "wind_speed_10m",
    "uv_index",
]

EXPECTED_HOURLY_UNITS = {
    "temperature_2m": "°C",
    "relative_humidity_2m": "%",
    "apparent_temperature": "°C",
    "precipitation_probability": "%",
    "precipitation": "mm",
    "wind_speed_10m": "km/h",
    "uv_index": "",
}

# Alternative spellings that should not trigger warnings.
ALLOWED_UNIT_SYNONYMS = {
    "relative_humidity_2m": {"%", "percent"},
    "precipitation_probability": {"%", "percent"},
    "uv_index": {"", "index", "UV-index"},
}


def validate_coordinates(latitude: float, longitude: float) -> None:
    """Raise ForecastError for NaN or out-of-range coordinates."""
    try:
        lat, lon = float(latitude), float(longitude)
    except (TypeError, ValueError):
        raise ForecastError("Invalid coordinates provided")
    if math.isnan(lat) or math.isnan(lon):
        raise ForecastError("Invalid coordinates provided")
    if lat < -90 or lat > 90:
        raise ForecastError("Latitude must be between -90 and 90")
    if lon < -180 or lon > 180:
        raise ForecastError("Longitude must be between -180 and 180")


def _warn_on_unexpected_units(units: Optional[dict], *, context: str) -> None:
    """Log a warning if Open-Meteo returns units we did not request."""
    if not units:
        return
    for field, expected in EXPECTED_HOURLY_UNITS.items():
        if field not in units:
            continue
        actual = units.get(field)
        if actual is None or actual == expected:
            continue
        allowed = ALLOWED_UNIT_SYNONYMS.get(field, set())
        if actual not in allowed:
            logger.warning(
                "Unexpected Open-Meteo unit",
                extra={"context": context, "field": field, "unit": actual, "expected": expected},
            )


def validate_hourly_data(hourly: Dict[str, Any]) -> int:
    """Check required arrays exist, are non-empty, aligned and long enough; return the hour count."""
    lengths: Dict[str, int] = {}
    for name in REQUIRED_HOURLY_VARS:
        values = hourly.get(name)
        if not isinstance(values, list):
            raise ForecastDataError(f"Missing or invalid {name} data")
        if not values:
            raise ForecastDataError(f"Empty {name} data")
        lengths[name] = len(values)

    humidity = hourly.get("relative_humidity_2m")
    if isinstance(humidity, list):
        lengths["relative_humidity_2m"] = len(humidity)

    if len(set(lengths.values())) > 1:
        detail = ", ".join(f"{name}({length})" for name, length in lengths.items())
        raise ForecastDataError(f"Inconsistent data lengths: {detail}")

    count = lengths["time"]
    if count < MIN_FORECAST_HOURS:
        raise ForecastDataError(f"Insufficient forecast data: only {count} hours available")
    return count


def _or_zero(value: Optional[float]) -> float:
    return 0.0 if value is None else value


def map_hourly_samples(hourly: Dict[str, Any]) -> List[HourlySample]:
    """Turn Open-Meteo's column arrays into HourlySample rows (nulls become 0, apparent/humidity stay None)."""
    times = hourly["time"]
    humidity = hourly.get("relative_humidity_2m") or [None] * len(times)

    out: List[HourlySample] = []
    for i, t in enumerate(times):
        try:
            out.append(
                HourlySample(
                    timestamp=dt.datetime.fromisoformat(t),
                    air_temperature=_or_zero(hourly["temperature_2m"][i]),
                    apparent_temperature=hourly["apparent_temperature"][i],
                    precipitation_probability=_or_zero(hourly["precipitation_probability"][i]),
                    precipitation_amount=_or_zero(hourly["precipitation"][i]),
                    wind_speed=_or_zero(hourly["wind_speed_10m"][i]),
                    uv_index=_or_zero(hourly["uv_index"][i]),
                    relative_humidity=humidity[i],
                )
            )
        except (ValidationError, ValueError, TypeError) as exc:
            raise ForecastDataError(f"Invalid forecast values at hour {i} ({t}): {exc}")
    return out


def fetch_hourly_forecast(
    latitude: float,
    longitude: float,
    *,
    forecast_hours: int | None = None,
    timezone: str = "auto",
    settings: config.Settings | None = None,
) -> List[HourlySample]:
    """Fetch the next ``forecast_hours`` hourly samples (default 48) for the coordinates."""
    settings = settings or config.settings
    validate_coordinates(latitude, longitude)
    hours = forecast_hours or settings.forecast_hours

    params = {
        "latitude": latitude,
        "longitude": longitude,
        "hourly": ",".join(HOURLY_VARS),
        "past_hours": 0,
        "forecast_hours": hours,
        "timezone": timezone,
        "temperature_unit": "celsius",
        "wind_speed_unit": "kmh",
        "precipitation_unit": "mm",
    }

    try:
        resp = session.get(settings.forecast_base_url, params=params, timeout=settings.request_timeout_seconds)
        resp.raise_for_status()
        data = resp.json()
    except requests.HTTPError as exc:
        status = exc.response.status_code if exc.response is not None else "unknown"
        raise ForecastNetworkError(f"HTTP {status}: {exc}")
    except ValueError as exc:
        # requests' JSONDecodeError is both a ValueError and a RequestException
        raise ForecastDataError(f"Forecast response was not valid JSON: {exc}")
    except requests.RequestException as exc:
        raise ForecastNetworkError(f"Failed to fetch forecast: {exc}")

    hourly = data.get("hourly") if isinstance(data, dict) else None
    if not hourly:
        raise ForecastDataError("No hourly data in API response")

    _warn_on_unexpected_units(data.get("hourly_units"), context="forecast_hourly")
    count = validate_hourly_data(hourly)
    samples = map_hourly_samples(hourly)

    logger.info(
        "Fetched hourly forecast",
        extra={"latitude": latitude, "longitude": longitude, "hours": count},
    )
    return samples
