"""Shared dataclasses and lightweight types used across modules."""

from dataclasses import dataclass
from datetime import datetime, timezone

from weatherguide.forecast_service import WeatherDashboard


@dataclass
class CachedDashboard:
    """WeatherDashboard with the time it was built."""
    data: WeatherDashboard
    fetched_at: datetime

    def is_fresh(self, ttl_seconds: int) -> bool:
        """True while the entry is younger than ``ttl_seconds``."""
        age = datetime.now(tz=timezone.utc) - self.fetched_at
        return age.total_seconds() < ttl_seconds
