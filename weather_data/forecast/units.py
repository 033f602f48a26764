"""Unit conversions and small display derivations."""

import math

from weather_data.models.common import Quantity

KPH_TO_MPH = 0.6213712
MM_PER_INCH = 25.4
FEET_PER_METER = 3.28

# North sits in two sectors, [-22.5, 22.5) and [337.5, 382.5), hence index 8.
DIRECTIONS = [
    "north", "northeast", "east", "southeast",
    "south", "southwest", "west", "northwest", "north",
]
SHORT_DIRECTIONS = ["N", "NE", "E", "SE", "S", "SW", "W", "NW", "N"]


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves away from zero, unlike the builtin banker's rounding."""
    factor = 10**digits
    scaled = abs(value) * factor
    result = math.floor(scaled + 0.5) / factor
    return math.copysign(result, value)


def celsius_to_fahrenheit(value: float) -> float:
    return value * 9 / 5 + 32


def temperature_scalar(quantity: Quantity | None) -> int | None:
    """Whole-degree Fahrenheit from an API temperature quantity."""
    if not quantity or quantity.get("value") is None:
        return None
    value = quantity["value"]
    unit = quantity.get("unitCode") or "wmoUnit:degC"
    if not unit.endswith("degF"):
        value = celsius_to_fahrenheit(value)
    return int(round_half_up(value))


def feels_like(
    heat_index: Quantity | None,
    wind_chill: Quantity | None,
    temperature: Quantity | None,
) -> int | None:
    for quantity in (heat_index, wind_chill, temperature):
        scalar = temperature_scalar(quantity)
        if scalar is not None:
            return scalar
    return None


def kph_to_mph(value: float | None) -> int | None:
    if value is None:
        return None
    return int(round_half_up(value * KPH_TO_MPH))


def millimeters_to_inches(value: float | None) -> float | None:
    if value is None:
        return None
    return value / MM_PER_INCH


def meters_to_feet(value: float | None) -> float | None:
    if value is None:
        return None
    return round_half_up(value * FEET_PER_METER, 1)


def compass_index(angle: float) -> int:
    """Sector index into DIRECTIONS for a bearing in degrees."""
    index = math.floor(((angle % 360) + 22.5) / 45)
    return min(index, len(DIRECTIONS) - 1)


def compass_direction(angle: float | None) -> tuple[str | None, str | None]:
    """(long, short) compass names, e.g. ("northeast", "NE")."""
    if angle is None:
        return None, None
    index = compass_index(angle)
    return DIRECTIONS[index], SHORT_DIRECTIONS[index]


def sentence_case(text: str | None) -> str:
    """Lowercase everything, then capitalize the first letter."""
    if not text:
        return ""
    lowered = text.lower()
    return lowered[0].upper() + lowered[1:]
