"""Apparent ("feels like") temperature with heat index and wind chill fallbacks.

All formulas work in SI units: °C, % relative humidity and m/s wind speed.
"""

from __future__ import annotations

import math

from weatherguide.errors import InvalidInputError

HEAT_INDEX_MIN_TEMP_C = 27.0
HEAT_INDEX_MIN_HUMIDITY = 40.0
WIND_CHILL_MAX_TEMP_C = 10.0
WIND_CHILL_MIN_WIND_MS = 4.8


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round ties toward +inf, unlike the banker's rounding of ``round()``."""
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def kmh_to_ms(speed_kmh: float) -> float:
    """Convert km/h to m/s."""
    return speed_kmh / 3.6


def _require_finite(**values: float) -> None:
    for name, value in values.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise InvalidInputError(f"{name} must be a finite number, got {value!r}")


def heat_index(temp_c: float, humidity: float) -> float:
    """Rothfusz regression with coefficients adapted for Celsius, 1 decimal."""
    t, rh = temp_c, humidity
    hi = (
        -8.784695
        + 1.61139411 * t
        + 2.338549 * rh
        - 0.14611605 * t * rh
        - 0.012308094 * t * t
        - 0.016424828 * rh * rh
        + 0.002211732 * t * t * rh
        + 0.00072546 * t * rh * rh
        - 0.000003582 * t * t * rh * rh
    )
    return round_half_up(hi, 1)


def wind_chill(temp_c: float, wind_ms: float) -> float:
    """Environment Canada wind chill index, 1 decimal."""
    v16 = wind_ms ** 0.16
    wc = 13.12 + 0.6215 * temp_c - 11.37 * v16 + 0.3965 * temp_c * v16
    return round_half_up(wc, 1)


def resolve_apparent_temperature(
    air_temp: float,
    humidity: float,
    wind_speed_ms: float,
    measured_apparent: float | None = None,
) -> float:
    """
    Return the apparent temperature for one hour.

    Order matters and the first match wins:
    1. a measured apparent temperature is passed through unchanged;
    2. hot and humid (>= 27°C, >= 40% RH) uses the heat index;
    3. cold and windy (<= 10°C, >= 4.8 m/s) uses the wind chill;
    4. otherwise the air temperature, rounded to 1 decimal.
    """
    if (
        measured_apparent is not None
        and not isinstance(measured_apparent, bool)
        and isinstance(measured_apparent, (int, float))
        and not math.isnan(measured_apparent)
    ):
        _require_finite(measured_apparent=measured_apparent)
        return measured_apparent

    _require_finite(air_temp=air_temp, humidity=humidity, wind_speed_ms=wind_speed_ms)

    if air_temp >= HEAT_INDEX_MIN_TEMP_C and humidity >= HEAT_INDEX_MIN_HUMIDITY:
        return heat_index(air_temp, humidity)

    if air_temp <= WIND_CHILL_MAX_TEMP_C and wind_speed_ms >= WIND_CHILL_MIN_WIND_MS:
        return wind_chill(air_temp, wind_speed_ms)

    return round_half_up(air_temp, 1)
