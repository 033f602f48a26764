"""Windowing and day/night grouping of daily forecast periods.

Periods arrive time-ordered and alternate day/night. A forecast is split
into "today" (everything before next midnight), "detailed" (the next N days)
and "extended" (the rest). A day is two periods, so day limits double when
counting periods.
"""

from datetime import datetime
from typing import Any

from weather_data.conditions.icon_mapper import IconConditionMapper, derive_key
from weather_data.forecast.timefmt import month_and_day, start_of_next_day
from weather_data.forecast.units import sentence_case
from weather_data.models.forecast import ForecastPeriod
from weather_data.service.collaborators import IdentityTranslator, Translator

PeriodPair = tuple[ForecastPeriod, ForecastPeriod | None]


def filter_to_today(periods: list[ForecastPeriod], now: datetime) -> list[ForecastPeriod]:
    """Periods starting before next midnight ("Today", "Tonight", "Overnight")."""
    tomorrow = start_of_next_day(now)
    return [p for p in periods if p.start_time < tomorrow]


def filter_to_future_days(
    periods: list[ForecastPeriod], now: datetime, limit_days: int | None = None
) -> list[ForecastPeriod]:
    """Periods starting after next midnight, optionally capped to ``limit_days``."""
    tomorrow = start_of_next_day(now)
    result = [p for p in periods if p.start_time > tomorrow]
    if limit_days is not None:
        return result[: limit_days * 2]
    return result


def filter_to_extended_periods(
    periods: list[ForecastPeriod], now: datetime, detailed_days: int | None = None
) -> list[ForecastPeriod]:
    """Future periods left over once the detailed days are skipped."""
    future = filter_to_future_days(periods, now)
    if detailed_days:
        return future[detailed_days * 2 :]
    return future


def pair_periods(periods: list[ForecastPeriod]) -> list[PeriodPair]:
    """Chunk into consecutive pairs; an odd last period pairs with None."""
    return [
        (periods[i], periods[i + 1] if i + 1 < len(periods) else None)
        for i in range(0, len(periods), 2)
    ]


class PeriodFormatter:
    def __init__(self, mapper: IconConditionMapper, translator: Translator | None = None):
        self.mapper = mapper
        self.translator = translator or IdentityTranslator()

    def format_daily_period(self, period: ForecastPeriod | None) -> dict[str, Any] | None:
        if period is None:
            return None

        start = period.start_time
        mapping = self.mapper.resolve(derive_key(period.icon))

        return {
            "shortDayName": f"{start:%a}",
            "dayName": f"{start:%A}",
            "monthAndDay": month_and_day(start),
            "startTime": period.raw_start_time,
            "shortForecast": self.translator.translate(sentence_case(period.short_forecast)),
            "icon": mapping.icon,
            "iconBasename": mapping.basename,
            "temperature": period.temperature,
            "probabilityOfPrecipitation": period.probability_of_precipitation,
            "isDaytime": period.is_daytime,
        }

    def format_pair(self, pair: PeriodPair) -> dict[str, dict[str, Any] | None]:
        day, night = pair
        return {
            "daytime": self.format_daily_period(day),
            "overnight": self.format_daily_period(night),
        }
