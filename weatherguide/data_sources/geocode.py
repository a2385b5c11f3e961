"""City-name geocoding against the Nominatim search API."""
from __future__ import annotations

import math
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Optional

import requests

from weatherguide import config
from weatherguide.data_sources import http_session
from weatherguide.data_sources.rate_limit import TokenBucket
from weatherguide.errors import GeocodeError, GeocodeNetworkError, LocationNotFoundError, RateLimitError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="geocode")


@dataclass
class CityResult:
    """Resolved place name and coordinates."""
    name: str
    latitude: float
    longitude: float


def format_place_name(result: Dict[str, Any]) -> str:
    """Prefer "city, state, country" or "city, country" over Nominatim's long display_name."""
    name = result.get("display_name") or ""
    address = result.get("address") or {}
    city = address.get("city") or address.get("town") or address.get("village") or address.get("county")
    state = address.get("state")
    country = address.get("country")
    if city and state and country:
        return f"{city}, {state}, {country}"
    if city and country:
        return f"{city}, {country}"
    return name


class GeocodeClient:
    """Nominatim client that paces its own requests (Nominatim allows one per second)."""

    def __init__(
        self,
        *,
        session: Optional[requests.Session] = None,
        settings: config.Settings | None = None,
        limiter: TokenBucket | None = None,
    ) -> None:
        self.settings = settings or config.settings
        self.session = session or http_session.session
        self.limiter = limiter or TokenBucket.from_min_interval(self.settings.geocode_min_interval_seconds)

    def geocode_city(self, query: str) -> CityResult:
        """Return the best match for ``query`` or raise a GeocodeError subclass."""
        if not query or not query.strip():
            raise GeocodeError("Query cannot be empty")

        waited = self.limiter.acquire()
        if waited:
            logger.debug("Waited for geocode rate limit", extra={"waited_seconds": waited})

        params = {
            "q": query,
            "format": "json",
            "limit": 1,
            "addressdetails": 1,
            "accept-language": "en",
        }
        headers = {"User-Agent": self.settings.geocode_user_agent}

        try:
            resp = self.session.get(
                self.settings.geocode_base_url,
                params=params,
                headers=headers,
                timeout=self.settings.request_timeout_seconds,
            )
            if resp.status_code == 429:
                raise RateLimitError()
            resp.raise_for_status()
            data = resp.json()
        except GeocodeError:
            raise
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else "unknown"
            raise GeocodeNetworkError(f"HTTP {status}: {exc}")
        except ValueError as exc:
            raise GeocodeError(f"Geocoding response was not valid JSON: {exc}")
        except requests.RequestException as exc:
            raise GeocodeNetworkError(f"Failed to geocode location: {exc}")

        if not data:
            raise LocationNotFoundError(query)

        result = data[0]
        try:
            latitude = float(result["lat"])
            longitude = float(result["lon"])
        except (KeyError, TypeError, ValueError):
            raise GeocodeError("Invalid coordinates in API response")
        if math.isnan(latitude) or math.isnan(longitude):
            raise GeocodeError("Invalid coordinates in API response")

        city = CityResult(name=format_place_name(result), latitude=latitude, longitude=longitude)
        logger.info("Geocoded city", extra={"query": query, "city_name": city.name})
        return city


@lru_cache(maxsize=1)
def get_default_client() -> GeocodeClient:
    """Process-wide client so every caller shares one rate limiter."""
    return GeocodeClient()


def geocode_city(query: str) -> CityResult:
    """Geocode with the shared default client."""
    return get_default_client().geocode_city(query)
