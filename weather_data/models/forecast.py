"""NWS forecast data models."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from weather_data.models.common import Quantity, parse_timestamp, quantity_value


@dataclass(frozen=True)
class ForecastPeriod:
    number: int
    name: str
    start_time: datetime
    end_time: datetime | None
    raw_start_time: str
    is_daytime: bool
    temperature: int | None
    temperature_unit: str
    probability_of_precipitation: float | None
    relative_humidity: float | None
    dewpoint: Quantity | None
    wind_speed: str | None
    wind_direction: str | None
    icon: str | None
    short_forecast: str
    detailed_forecast: str = ""

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "ForecastPeriod":
        """Parse one entry of ``properties.periods``.

        Raises ValueError when the start time is missing or unparseable,
        since every windowing decision hinges on it.
        """
        start = parse_timestamp(raw.get("startTime"))
        if start is None:
            raise ValueError(f"Forecast period has no usable startTime: {raw.get('startTime')!r}")
        return cls(
            number=int(raw.get("number", 0)),
            name=raw.get("name", ""),
            start_time=start,
            end_time=parse_timestamp(raw.get("endTime")),
            raw_start_time=raw["startTime"],
            is_daytime=bool(raw.get("isDaytime", False)),
            temperature=raw.get("temperature"),
            temperature_unit=raw.get("temperatureUnit", "F"),
            probability_of_precipitation=quantity_value(raw.get("probabilityOfPrecipitation")),
            relative_humidity=quantity_value(raw.get("relativeHumidity")),
            dewpoint=raw.get("dewpoint"),
            wind_speed=raw.get("windSpeed"),
            wind_direction=raw.get("windDirection"),
            icon=raw.get("icon"),
            short_forecast=raw.get("shortForecast", ""),
            detailed_forecast=raw.get("detailedForecast", ""),
        )


def parse_periods(raw_periods: list[dict[str, Any]]) -> list[ForecastPeriod]:
    return [ForecastPeriod.from_api(p) for p in raw_periods]
