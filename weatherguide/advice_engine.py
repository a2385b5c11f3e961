"""Deterministic advice rules over forecast windows.

Two independent outputs are produced, each with its own
thresholds:

- ``generate_advisory_items`` turns window stats into categorized clothing,
  accessory, safety and comfort items;
- ``build_advice`` turns the next hours into badge chips and one sentence.

Both compare against unrounded aggregates.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Dict, List, Sequence

from weatherguide.domain import (
    CATEGORY_DISPLAY_ORDER,
    SEVERITY_LABELS,
    AdvisoryCategory,
    AdvisoryItem,
    AdvisorySeverity,
    AdvisorySummary,
    HourlySample,
    WindowStats,
)
from weatherguide.window_stats import aggregate_window, prefix_window, resolve_apparent
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="advice_engine")

SUMMARY_WINDOW_HOURS = 6
PRECIP_ONSET_WINDOW_HOURS = 3

NO_DATA_TEXT = "No weather data available for guidance."
SUMMARY_PREFIX = "Weather conditions for the next 6 hours: "

BADGE_UMBRELLA = "Umbrella recommended"
BADGE_SUNSCREEN = "Sunscreen recommended"
BADGE_WIND = "Wind caution"
BADGE_HEAT = "Heat comfort tips"
BADGE_LAYERS = "Layered clothing recommended"


def _template(category: AdvisoryCategory, severity: AdvisorySeverity, message: str, icon: str, color: str) -> dict:
    return {"category": category, "severity": severity, "message": message, "icon": icon, "color": color}


ADVISORY_TEMPLATES: Dict[str, dict] = {
    "heavy-coat": _template(
        AdvisoryCategory.CLOTHING, AdvisorySeverity.HIGH,
        "Wear a heavy winter coat, gloves, and warm hat. It feels freezing cold!", "🧥", "#1e40af",
    ),
    "warm-layers": _template(
        AdvisoryCategory.CLOTHING, AdvisorySeverity.MEDIUM,
        "Dress in warm layers with a jacket. It's quite chilly out there.", "🧥", "#3b82f6",
    ),
    "light-clothing": _template(
        AdvisoryCategory.CLOTHING, AdvisorySeverity.MEDIUM,
        "Wear light, breathable clothing. It's going to be hot!", "👕", "#f59e0b",
    ),
    "comfortable-clothing": _template(
        AdvisoryCategory.CLOTHING, AdvisorySeverity.LOW,
        "Dress comfortably in light layers. Perfect weather for being outside!", "👕", "#10b981",
    ),
    "layered-clothing": _template(
        AdvisoryCategory.CLOTHING, AdvisorySeverity.MEDIUM,
        "Temperature will vary a lot - dress in layers you can add or remove.", "🔄", "#8b5cf6",
    ),
    "umbrella-rain": _template(
        AdvisoryCategory.ACCESSORIES, AdvisorySeverity.HIGH,
        "Bring an umbrella or waterproof jacket. Rain is very likely!", "☔", "#3b82f6",
    ),
    "umbrella-maybe": _template(
        AdvisoryCategory.ACCESSORIES, AdvisorySeverity.MEDIUM,
        "Consider bringing an umbrella - there's a chance of rain.", "🌦️", "#6b7280",
    ),
    "sunscreen-high": _template(
        AdvisoryCategory.SAFETY, AdvisorySeverity.HIGH,
        "Apply SPF 30+ sunscreen and wear sunglasses. UV levels are very high!", "☀️", "#f59e0b",
    ),
    "sunscreen-medium": _template(
        AdvisoryCategory.SAFETY, AdvisorySeverity.MEDIUM,
        "Don't forget sunscreen and a hat. UV levels are moderate to high.", "🧴", "#f59e0b",
    ),
    "sunglasses": _template(
        AdvisoryCategory.COMFORT, AdvisorySeverity.LOW,
        "Sunglasses recommended for comfort in bright conditions.", "🕶️", "#10b981",
    ),
    "wind-warning": _template(
        AdvisoryCategory.SAFETY, AdvisorySeverity.HIGH,
        "Very windy conditions! Secure loose items and be careful outdoors.", "💨", "#dc2626",
    ),
    "wind-caution": _template(
        AdvisoryCategory.COMFORT, AdvisorySeverity.MEDIUM,
        "It's quite windy - consider a windbreaker or secure hat.", "🌬️", "#f59e0b",
    ),
    "perfect-weather": _template(
        AdvisoryCategory.COMFORT, AdvisorySeverity.LOW,
        "Perfect weather for outdoor activities! Enjoy your time outside.", "🌟", "#10b981",
    ),
}


def advisory_item(advisory_id: str) -> AdvisoryItem:
    """Build the AdvisoryItem for a template id."""
    return AdvisoryItem(id=advisory_id, **ADVISORY_TEMPLATES[advisory_id])


def _clothing_for_temperature(stats: WindowStats) -> str | None:
    """Single if/else-if chain: at most one clothing item from temperature extremes."""
    if stats.min_apparent <= 0:
        return "heavy-coat"
    if stats.min_apparent <= 10:
        return "warm-layers"
    if stats.max_apparent >= 30:
        return "light-clothing"
    if stats.max_apparent >= 25:
        return "comfortable-clothing"
    return None


def _rain(stats: WindowStats) -> str | None:
    if stats.max_precipitation_probability >= 70 or stats.total_precipitation > 2:
        return "umbrella-rain"
    if stats.max_precipitation_probability >= 40 or stats.total_precipitation > 0.5:
        return "umbrella-maybe"
    return None


def _uv(stats: WindowStats) -> str | None:
    if stats.max_uv >= 8:
        return "sunscreen-high"
    if stats.max_uv >= 6:
        return "sunscreen-medium"
    if stats.max_uv >= 3:
        return "sunglasses"
    return None


def _wind(stats: WindowStats) -> str | None:
    if stats.max_wind >= 50:
        return "wind-warning"
    if stats.max_wind >= 30:
        return "wind-caution"
    return None


def _is_ideal(stats: WindowStats) -> bool:
    return (
        20 <= stats.avg_apparent <= 25
        and stats.max_precipitation_probability < 30
        and stats.max_wind < 20
    )


def generate_advisory_items(stats: WindowStats) -> List[AdvisoryItem]:
    """
    Evaluate the clothing, swing, rain, UV, wind and ideal-weather rules in order.

    Groups are independent of each other; within a group the first matching
    threshold wins. Pass unrounded stats (``WindowResult.raw``).
    """
    ids: list[str] = []

    clothing = _clothing_for_temperature(stats)
    if clothing:
        ids.append(clothing)

    # the swing check can co-fire with any of the clothing chain
    if (stats.max_apparent - stats.min_apparent) > 15:
        ids.append("layered-clothing")

    for rule in (_rain, _uv, _wind):
        hit = rule(stats)
        if hit:
            ids.append(hit)

    if _is_ideal(stats):
        ids.append("perfect-weather")

    logger.debug("Generated advisories", extra={"advisory_ids": ids})
    return [advisory_item(advisory_id) for advisory_id in ids]


def group_advisories_by_category(items: Sequence[AdvisoryItem]) -> "OrderedDict[AdvisoryCategory, List[AdvisoryItem]]":
    """Group items in display order (clothing, accessories, safety, comfort), dropping empty groups."""
    grouped: "OrderedDict[AdvisoryCategory, List[AdvisoryItem]]" = OrderedDict()
    for category in CATEGORY_DISPLAY_ORDER:
        members = [item for item in items if item.category == category]
        if members:
            grouped[category] = members
    return grouped


def severity_label(severity: AdvisorySeverity) -> str:
    """Map severity to its display label (Important / Recommended / Tip)."""
    return SEVERITY_LABELS[AdvisorySeverity(severity)]


def _temperature_clause(avg_apparent: float) -> str:
    if avg_apparent < 0:
        return "very cold temperatures with possible wind chill effects"
    if avg_apparent > 25:
        return "warm to hot conditions with elevated comfort concerns"
    if avg_apparent >= 15:
        return "pleasant temperatures suitable for most outdoor activities"
    return "cool conditions requiring appropriate clothing"


def build_advice(hours: Sequence[HourlySample]) -> AdvisorySummary:
    """
    Badge chips and a one-sentence outlook for the next 6 hours.

    Stats come from the first 6 hours (apparent temperatures re-resolved);
    rain onset looks only at the first 3 hours. An empty sequence returns no
    badges and a fixed "no data" sentence.
    """
    if not hours:
        return AdvisorySummary(badges=[], text=NO_DATA_TEXT)

    six_hours = prefix_window(hours, SUMMARY_WINDOW_HOURS)
    stats = aggregate_window(six_hours, apparent=resolve_apparent)
    next_three = six_hours[:PRECIP_ONSET_WINDOW_HOURS]
    max_pop_3h = max(h.precipitation_probability for h in next_three)
    total_precip_3h = sum(h.precipitation_amount for h in next_three)

    badges: list[str] = []
    if max_pop_3h >= 60 and total_precip_3h >= 0.2:
        badges.append(BADGE_UMBRELLA)
    if stats.max_uv >= 6:
        badges.append(BADGE_SUNSCREEN)
    if stats.max_wind >= 10:
        badges.append(BADGE_WIND)
    if stats.avg_apparent > 25:
        badges.append(BADGE_HEAT)
    if stats.avg_apparent < 0:
        badges.append(BADGE_LAYERS)

    text = SUMMARY_PREFIX + _temperature_clause(stats.avg_apparent)
    if max_pop_3h >= 60:
        text += ", with rain likely in the next 3 hours"
    elif max_pop_3h >= 30:
        text += ", with possible precipitation"
    if stats.max_wind >= 10:
        text += ", and notable wind activity"
    if stats.max_uv >= 6:
        text += ", with elevated UV exposure"
    text += "."

    return AdvisorySummary(badges=badges, text=text)
