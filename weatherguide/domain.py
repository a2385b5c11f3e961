"""Domain vocabulary and strict schemas for forecast statistics and advice.

This module defines the contract between the forecast clients, the statistics
and advice engine, and the HTTP layer: hourly samples, window aggregates,
advisory items and the badge/sentence summary. No interpretation logic lives
here.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_RELATIVE_HUMIDITY = 50.0


class _StrictBaseModel(BaseModel):
    """Base model with strict extra handling and no NaN/inf floats."""

    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)


class AdvisoryCategory(str, Enum):
    """Display group an advisory belongs to."""
    CLOTHING = "clothing"
    ACCESSORIES = "accessories"
    SAFETY = "safety"
    COMFORT = "comfort"


class AdvisorySeverity(str, Enum):
    """How strongly an advisory should be surfaced."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


CATEGORY_DISPLAY_ORDER: List[AdvisoryCategory] = [
    AdvisoryCategory.CLOTHING,
    AdvisoryCategory.ACCESSORIES,
    AdvisoryCategory.SAFETY,
    AdvisoryCategory.COMFORT,
]

CATEGORY_TITLES: Dict[AdvisoryCategory, str] = {
    AdvisoryCategory.CLOTHING: "What to Wear",
    AdvisoryCategory.ACCESSORIES: "Don't Forget",
    AdvisoryCategory.SAFETY: "Safety First",
    AdvisoryCategory.COMFORT: "Comfort Tips",
}

SEVERITY_LABELS: Dict[AdvisorySeverity, str] = {
    AdvisorySeverity.HIGH: "Important",
    AdvisorySeverity.MEDIUM: "Recommended",
    AdvisorySeverity.LOW: "Tip",
}


class HourlySample(_StrictBaseModel):
    """One hour of forecast data.

    Temperatures are °C, precipitation is mm and wind speed is km/h as
    delivered by the forecast provider. ``apparent_temperature`` is None when
    the source did not provide one; ``relative_humidity`` is None when unknown
    and is then treated as ``DEFAULT_RELATIVE_HUMIDITY``.
    """
    timestamp: datetime
    air_temperature: float
    apparent_temperature: float | None = None
    precipitation_probability: float = Field(ge=0.0, le=100.0)
    precipitation_amount: float = Field(ge=0.0)
    wind_speed: float = Field(ge=0.0)
    uv_index: float = Field(ge=0.0)
    relative_humidity: float | None = Field(default=None, ge=0.0, le=100.0)

    @property
    def humidity_or_default(self) -> float:
        """Relative humidity with the documented 50% fallback."""
        if self.relative_humidity is None:
            return DEFAULT_RELATIVE_HUMIDITY
        return self.relative_humidity


class WindowStats(_StrictBaseModel):
    """Aggregates over a prefix window of hourly samples."""
    min_apparent: float = 0.0
    max_apparent: float = 0.0
    avg_apparent: float = 0.0
    max_precipitation_probability: float = 0.0
    total_precipitation: float = 0.0
    max_uv: float = 0.0
    max_wind: float = 0.0

    @classmethod
    def zero(cls) -> "WindowStats":
        """Stats for an empty window."""
        return cls()


class DisplayStats(_StrictBaseModel):
    """Rounded window stats as shown to users: whole numbers, precipitation to 0.1 mm."""
    min_apparent: int = 0
    max_apparent: int = 0
    avg_apparent: int = 0
    max_precipitation_probability: int = 0
    total_precipitation: float = 0.0
    max_uv: int = 0
    max_wind: int = 0

    @classmethod
    def zero(cls) -> "DisplayStats":
        return cls()


class WindowResult(_StrictBaseModel):
    """A prefix window with its display stats and the unrounded aggregates."""
    window: List[HourlySample] = Field(default_factory=list)
    stats: DisplayStats = Field(default_factory=DisplayStats.zero)
    raw: WindowStats = Field(default_factory=WindowStats.zero)


class AdvisoryItem(_StrictBaseModel):
    """One clothing/accessory/safety/comfort recommendation."""
    id: str
    category: AdvisoryCategory
    severity: AdvisorySeverity
    message: str
    icon: str
    color: str


class AdvisorySummary(_StrictBaseModel):
    """Badge chips plus one sentence describing the next few hours."""
    badges: List[str] = Field(default_factory=list)
    text: str
