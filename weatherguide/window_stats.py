"""Prefix-window statistics over hourly forecast samples.

Two paths: ``aggregate_window`` returns unrounded
aggregates that the advice rules compare against, and ``round_for_display``
turns those into the integers (and one-decimal precipitation total) shown to
users. Rounding happens only at that output boundary.
"""

from __future__ import annotations

import math
from typing import Callable, Sequence

from weatherguide.apparent_temperature import kmh_to_ms, resolve_apparent_temperature, round_half_up
from weatherguide.domain import DisplayStats, HourlySample, WindowResult, WindowStats
from weatherguide.errors import InvalidInputError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="window_stats")

_NUMERIC_FIELDS = (
    "air_temperature",
    "apparent_temperature",
    "precipitation_probability",
    "precipitation_amount",
    "wind_speed",
    "uv_index",
    "relative_humidity",
)


def _ensure_window_size(window_size: int) -> None:
    if isinstance(window_size, bool) or not isinstance(window_size, int) or window_size < 1:
        raise InvalidInputError(f"window_size must be a positive integer, got {window_size!r}")


def _ensure_finite(sample: HourlySample, index: int) -> None:
    """Reject samples built without validation (e.g. model_construct) that carry NaN/inf."""
    for name in _NUMERIC_FIELDS:
        value = getattr(sample, name, None)
        if value is None and name in ("apparent_temperature", "relative_humidity"):
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise InvalidInputError(f"hour {index}: {name} must be a finite number, got {value!r}")


def prefix_window(hours: Sequence[HourlySample], window_size: int) -> list[HourlySample]:
    """Return the first ``window_size`` samples (fewer if the sequence is shorter)."""
    _ensure_window_size(window_size)
    window = list(hours[:window_size])
    for idx, sample in enumerate(window):
        _ensure_finite(sample, idx)
    return window


def apparent_as_given(sample: HourlySample) -> float:
    """Trust the source's apparent temperature, resolving only when it is missing."""
    if sample.apparent_temperature is not None:
        return sample.apparent_temperature
    return resolve_apparent(sample)


def resolve_apparent(sample: HourlySample) -> float:
    """Run a sample through the resolver (wind converted from km/h to m/s)."""
    return resolve_apparent_temperature(
        sample.air_temperature,
        sample.humidity_or_default,
        kmh_to_ms(sample.wind_speed),
        measured_apparent=sample.apparent_temperature,
    )


def aggregate_window(
    window: Sequence[HourlySample],
    *,
    apparent: Callable[[HourlySample], float] = apparent_as_given,
) -> WindowStats:
    """Unrounded min/max/mean apparent temperature, max POP, total precip, max UV and max wind."""
    if not window:
        return WindowStats.zero()

    apparent_temps = [apparent(h) for h in window]
    return WindowStats(
        min_apparent=min(apparent_temps),
        max_apparent=max(apparent_temps),
        avg_apparent=sum(apparent_temps) / len(apparent_temps),
        max_precipitation_probability=max(h.precipitation_probability for h in window),
        total_precipitation=sum(h.precipitation_amount for h in window),
        max_uv=max(h.uv_index for h in window),
        max_wind=max(h.wind_speed for h in window),
    )


def round_for_display(stats: WindowStats) -> DisplayStats:
    """Integers everywhere except total precipitation, which keeps 1 decimal."""
    return DisplayStats(
        min_apparent=int(round_half_up(stats.min_apparent)),
        max_apparent=int(round_half_up(stats.max_apparent)),
        avg_apparent=int(round_half_up(stats.avg_apparent)),
        max_precipitation_probability=int(round_half_up(stats.max_precipitation_probability)),
        total_precipitation=round_half_up(stats.total_precipitation, 1),
        max_uv=int(round_half_up(stats.max_uv)),
        max_wind=int(round_half_up(stats.max_wind)),
    )


def _compute(
    hours: Sequence[HourlySample],
    window_size: int,
    apparent: Callable[[HourlySample], float],
) -> WindowResult:
    window = prefix_window(hours, window_size)
    if not window:
        logger.debug("Empty window; returning zero stats", extra={"window_size": window_size})
        return WindowResult(window=[], stats=DisplayStats.zero(), raw=WindowStats.zero())

    raw = aggregate_window(window, apparent=apparent)
    return WindowResult(window=window, stats=round_for_display(raw), raw=raw)


def compute_window_stats(hours: Sequence[HourlySample], window_size: int) -> WindowResult:
    """
    Aggregate the first ``window_size`` hours using each sample's apparent temperature.

    An empty window is not an error: it yields zero stats and an empty window.
    """
    return _compute(hours, window_size, apparent_as_given)


def compute_apparent_aware_stats(hours: Sequence[HourlySample], window_size: int) -> WindowResult:
    """Like ``compute_window_stats`` but every sample goes through the apparent-temperature resolver."""
    return _compute(hours, window_size, resolve_apparent)
