"""Exception hierarchy shared by the advice engine and the data-source clients."""

from __future__ import annotations


class WeatherGuideError(Exception):
    """Base class for every error raised by WeatherGuide code."""

    default_code: str | None = None

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code


class InvalidInputError(WeatherGuideError, ValueError):
    """Raised when the engine gets a non-positive window or non-finite numbers."""

    default_code = "INVALID_INPUT"


class ForecastError(WeatherGuideError):
    """Forecast request could not be made or answered."""


class ForecastNetworkError(ForecastError):
    default_code = "NETWORK_ERROR"


class ForecastDataError(ForecastError):
    default_code = "DATA_ERROR"


class GeocodeError(WeatherGuideError):
    """City lookup failed."""


class GeocodeNetworkError(GeocodeError):
    default_code = "NETWORK_ERROR"


class LocationNotFoundError(GeocodeError):
    default_code = "NOT_FOUND"

    def __init__(self, query: str) -> None:
        super().__init__(f'No results found for "{query}"')
        self.query = query


class RateLimitError(GeocodeError):
    default_code = "RATE_LIMIT"

    def __init__(self, message: str = "Rate limit exceeded. Please try again later.") -> None:
        super().__init__(message)


class AlertsError(WeatherGuideError):
    """Weather alerts feed could not be read."""
