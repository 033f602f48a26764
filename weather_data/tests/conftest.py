"""Shared test fixtures."""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import yaml

from weather_data.config.schema import WeatherDataConfig
from weather_data.ingest.request_cache import RequestCache
from weather_data.models.forecast import ForecastPeriod
from weather_data.models.weather import Place

FIXTURE_DIR = Path(__file__).parent / "fixtures"
TEST_API = "https://test-api.example.com"
EST = timezone(timedelta(hours=-5))

DAY_ICONS = [
    "https://api.weather.gov/icons/land/day/sct?size=medium",
    "https://api.weather.gov/icons/land/day/tsra,40/rain,60?size=medium",
]
NIGHT_ICON = "https://api.weather.gov/icons/land/night/rain_showers,30?size=medium"


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubPlaceLookup:
    def __init__(self, place: Place):
        self.place = place
        self.polygon_calls = 0
        self.point_calls = 0

    def nearest_to_point(self, point):
        self.point_calls += 1
        return self.place

    def nearest_to_polygon(self, polygon):
        self.polygon_calls += 1
        return self.place


class RecordingMetrics:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: list[tuple[str, float, dict]] = []

    def send_metric(self, name, value, tags):
        self.calls.append((name, value, tags))
        if self.fail:
            raise RuntimeError("metrics backend down")


def make_daily_period(number: int, start: datetime, is_daytime: bool, hours: int = 12) -> dict:
    icon = DAY_ICONS[(number // 2) % 2] if is_daytime else NIGHT_ICON
    return {
        "number": number,
        "name": f"{start:%A}" + ("" if is_daytime else " Night"),
        "startTime": start.isoformat(),
        "endTime": (start + timedelta(hours=hours)).isoformat(),
        "isDaytime": is_daytime,
        "temperature": 40 + number if is_daytime else 30 + number,
        "temperatureUnit": "F",
        "probabilityOfPrecipitation": {"unitCode": "wmoUnit:percent", "value": 10 * (number % 5)},
        "windSpeed": "5 to 10 mph",
        "windDirection": "NW",
        "icon": icon,
        "shortForecast": "PARTLY Sunny" if is_daytime else "Chance Rain Showers",
        "detailedForecast": "",
    }


def make_daily_periods(first_start: datetime, count: int, first_hours: int = 12) -> list[dict]:
    """Alternating day/night periods; the first may be a short afternoon."""
    periods = []
    start = first_start
    is_daytime = 6 <= first_start.hour < 18
    for number in range(1, count + 1):
        hours = first_hours if number == 1 else 12
        periods.append(make_daily_period(number, start, is_daytime, hours))
        start = start + timedelta(hours=hours)
        is_daytime = not is_daytime
    return periods


def make_hourly_period(number: int, start: datetime) -> dict:
    return {
        "number": number,
        "name": "",
        "startTime": start.isoformat(),
        "endTime": (start + timedelta(hours=1)).isoformat(),
        "isDaytime": 6 <= start.hour < 18,
        "temperature": 45 + number,
        "temperatureUnit": "F",
        "probabilityOfPrecipitation": {"unitCode": "wmoUnit:percent", "value": 5 * number},
        "dewpoint": {"unitCode": "wmoUnit:degC", "value": 0.0},
        "relativeHumidity": {"unitCode": "wmoUnit:percent", "value": 50 + number},
        "windSpeed": "10 mph",
        "windDirection": "NW",
        "icon": "https://api.weather.gov/icons/land/day/few?size=small",
        "shortForecast": "Mostly Sunny",
        "detailedForecast": "",
    }


@pytest.fixture
def load_fixture():
    def _load(name: str) -> dict:
        with open(FIXTURE_DIR / name) as f:
            return json.load(f)
    return _load


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> RequestCache:
    return RequestCache(clock=clock)


@pytest.fixture
def test_config() -> WeatherDataConfig:
    """Config pointed at the mocked API host."""
    return WeatherDataConfig(api={"base_url": TEST_API})


@pytest.fixture
def dc_place() -> Place:
    return Place(
        city="Washington",
        state="DC",
        state_name="District of Columbia",
        state_fips="11",
        county="District of Columbia",
        county_fips="11001",
        timezone="America/New_York",
    )


@pytest.fixture
def place_lookup(dc_place: Place) -> StubPlaceLookup:
    return StubPlaceLookup(dc_place)


@pytest.fixture
def metrics() -> RecordingMetrics:
    return RecordingMetrics()


@pytest.fixture
def daily_forecast() -> dict:
    """Afternoon + tonight, then six full days: 14 periods."""
    start = datetime(2026, 2, 11, 14, tzinfo=EST)
    return {"properties": {"periods": make_daily_periods(start, 14, first_hours=4)}}


@pytest.fixture
def hourly_forecast() -> dict:
    start = datetime(2026, 2, 11, 13, tzinfo=EST)
    periods = [make_hourly_period(n, start + timedelta(hours=n - 1)) for n in range(1, 7)]
    return {"properties": {"periods": periods}}


@pytest.fixture
def future_periods() -> list[ForecastPeriod]:
    """Seven full day/night pairs starting the morning after 2026-02-11."""
    raw = make_daily_periods(datetime(2026, 2, 12, 6, tzinfo=EST), 14)
    return [ForecastPeriod.from_api(p) for p in raw]


@pytest.fixture
def config_yaml_path(tmp_path: Path) -> Path:
    """Write a minimal valid config YAML and return its path."""
    data = {
        "api": {"base_url": TEST_API, "timeout": 5.0},
        "forecast": {"default_days": 4},
    }
    path = tmp_path / "test_config.yaml"
    with open(path, "w") as f:
        yaml.dump(data, f)
    return path


@pytest.fixture
def failing_metrics() -> RecordingMetrics:
    return RecordingMetrics(fail=True)
