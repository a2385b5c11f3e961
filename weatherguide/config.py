"""Application configuration pulled from environment variables via pydantic."""
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="config")


class Settings(BaseSettings):
    """Environment-driven configuration for the WeatherGuide service."""
    model_config = SettingsConfigDict(env_prefix="WEATHERGUIDE_", extra="ignore")

    api_key: str | None = None
    api_key_redis_url: str | None = None
    api_key_redis_set: str = "api_keys"
    forecast_base_url: str = "https://api.open-meteo.com/v1/forecast"
    geocode_base_url: str = "https://nominatim.openstreetmap.org/search"
    alerts_base_url: str = "https://api.weather.gc.ca/collections/alerts/items"
    forecast_hours: int = 48
    advice_window_hours: int = 6
    request_timeout_seconds: float = 10.0
    http_cache_seconds: int = 3600
    http_retries: int = 5
    geocode_user_agent: str = "WeatherGuide/1.0 (Educational Project)"
    geocode_min_interval_seconds: float = 1.0
    alerts_demo_fallback: bool = True
    dashboard_ttl_seconds: int = 900
    default_city: str = "Oakville, Ontario, Canada"

    @field_validator("forecast_base_url", "geocode_base_url", "alerts_base_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs to avoid double slashes."""
        return str(v).rstrip("/")

    @field_validator("forecast_hours", "advice_window_hours", mode="after")
    @classmethod
    def require_positive_hours(cls, v: int) -> int:
        if v < 1:
            raise ValueError("hour counts must be >= 1")
        return v


settings = Settings()


if __name__ == "__main__":
    logger.setLevel("DEBUG")
    logger.debug(f"Loaded settings: {settings.model_dump_json(indent=4)}")
