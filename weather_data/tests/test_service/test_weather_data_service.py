"""End-to-end tests for the weather data service against a mocked API."""

import threading
from datetime import UTC, datetime, timedelta, timezone
from unittest.mock import patch

import httpx
import pytest
import respx

from weather_data.models.errors import (
    FetchCancelledError,
    PlaceNotFoundError,
    UpstreamTransientError,
)
from weather_data.models.weather import Grid, Place
from weather_data.service.context import RequestContext, UnitOfWorkState
from weather_data.service.weather_data_service import WeatherDataService

BASE = "https://test-api.example.com"
EST = timezone(timedelta(hours=-5))

POINTS_URL = f"{BASE}/points/38.8977,-77.0365"
GRIDPOINT_URL = f"{BASE}/gridpoints/LWX/97,71"
STATIONS_URL = f"{GRIDPOINT_URL}/stations"
FORECAST_URL = f"{GRIDPOINT_URL}/forecast"
HOURLY_URL = f"{GRIDPOINT_URL}/forecast/hourly"


def obs_url(station: str) -> str:
    return f"{BASE}/stations/{station}/observations?limit=1"


@pytest.fixture
def context(cache) -> RequestContext:
    return RequestContext(response_id="test-resp", cache=cache)


@pytest.fixture
def service(test_config, place_lookup, metrics, context):
    svc = WeatherDataService(
        test_config, place_lookup=place_lookup, metrics=metrics, context=context
    )
    yield svc
    svc.close()


def _mock_observation_chain(load_fixture, observation="observation_kdca.json"):
    respx.get(STATIONS_URL).mock(
        return_value=httpx.Response(200, json=load_fixture("stations_lwx.json"))
    )
    respx.get(obs_url("KDCA")).mock(
        return_value=httpx.Response(200, json=load_fixture(observation))
    )
    respx.get(GRIDPOINT_URL).mock(
        return_value=httpx.Response(200, json=load_fixture("gridpoint_lwx.json"))
    )


class TestGridFromLatLon:
    @respx.mock
    def test_resolves_grid(self, service, load_fixture):
        route = respx.get(POINTS_URL).mock(
            return_value=httpx.Response(200, json=load_fixture("points_lwx.json"))
        )

        grid = service.get_grid_from_lat_lon(38.897654, -77.036512)

        assert grid == Grid("LWX", 97, 71)
        assert route.call_count == 1
        assert route.calls[0].request.headers["wx-gov-response-id"] == "test-resp"
        assert service.context.state == UnitOfWorkState.GRID_RESOLVED
        assert service.context.reference_point.lat == 38.8977

    @respx.mock
    def test_caches_relative_location_name(self, service, load_fixture, clock):
        respx.get(POINTS_URL).mock(
            return_value=httpx.Response(200, json=load_fixture("points_lwx.json"))
        )
        grid = service.get_grid_from_lat_lon(38.8977, -77.0365)

        place = service.get_cached_place_name(grid)
        assert (place.city, place.state) == ("Washington", "DC")

        clock.advance(3)
        assert service.get_cached_place_name(grid) is None

    @respx.mock
    def test_suggested_place_name_wins(self, service, load_fixture):
        respx.get(POINTS_URL).mock(
            return_value=httpx.Response(200, json=load_fixture("points_lwx.json"))
        )
        grid = service.get_grid_from_lat_lon(38.8977, -77.0365, "Reston, VA, USA")

        place = service.get_cached_place_name(grid)
        assert (place.city, place.state) == ("Reston", "VA")

    @respx.mock
    def test_unparseable_suggestion_is_all_city(self, service, load_fixture):
        respx.get(POINTS_URL).mock(
            return_value=httpx.Response(200, json=load_fixture("points_lwx.json"))
        )
        grid = service.get_grid_from_lat_lon(38.8977, -77.0365, "Paris, France")
        assert service.get_cached_place_name(grid) == Place(city="Paris, France", state=None)

    @respx.mock
    def test_upstream_404_returns_none(self, service):
        respx.get(POINTS_URL).mock(return_value=httpx.Response(404))

        assert service.get_grid_from_lat_lon(38.8977, -77.0365) is None
        assert service.context.state == UnitOfWorkState.FAILED

    @respx.mock(assert_all_called=False)
    def test_cancelled_resolution_raises(self, respx_mock, test_config, context):
        route = respx_mock.get(POINTS_URL)
        event = threading.Event()
        event.set()

        with WeatherDataService(
            test_config, context=context, cancel_event=event
        ) as service, pytest.raises(FetchCancelledError):
            service.get_grid_from_lat_lon(38.8977, -77.0365)

        assert not route.called
        assert context.state == UnitOfWorkState.FAILED

    @respx.mock
    def test_missing_grid_id_returns_none(self, service):
        respx.get(POINTS_URL).mock(
            return_value=httpx.Response(200, json={"properties": {}})
        )
        assert service.get_grid_from_lat_lon(38.8977, -77.0365) is None


class TestGeometryAndPlace:
    @respx.mock
    def test_geometry_fetched_once(self, service, load_fixture):
        route = respx.get(GRIDPOINT_URL).mock(
            return_value=httpx.Response(200, json=load_fixture("gridpoint_lwx.json"))
        )
        first = service.get_geometry_from_grid("lwx", 97, 71)
        second = service.get_geometry_from_grid("LWX", 97, 71)

        assert route.call_count == 1
        assert first is second
        assert len(first) == 5
        assert first[0].lon == -77.06

    @respx.mock
    def test_place_from_grid_cached(self, service, place_lookup, load_fixture):
        respx.get(GRIDPOINT_URL).mock(
            return_value=httpx.Response(200, json=load_fixture("gridpoint_lwx.json"))
        )
        first = service.get_place_from_grid("LWX", 97, 71)
        second = service.get_place_from_grid("LWX", 97, 71)

        assert first.city == "Washington"
        assert second is first
        assert place_lookup.polygon_calls == 1

    def test_place_from_grid_without_lookup(self, test_config, context):
        with WeatherDataService(test_config, context=context) as service:
            with pytest.raises(PlaceNotFoundError):
                service.get_place_from_grid("LWX", 97, 71)

    def test_place_near(self, service, place_lookup):
        assert service.get_place_near(38.9, -77.0).state == "DC"
        assert place_lookup.point_calls == 1


class TestCurrentConditions:
    @respx.mock
    def test_formats_observation(self, service, load_fixture):
        _mock_observation_chain(load_fixture)

        result = service.get_current_conditions_from_grid("LWX", 97, 71)

        assert result["temperature"] == 50
        assert result["feels_like"] == 46
        assert result["humidity"] == 54
        assert result["conditions"] == {"long": "Mostly cloudy", "short": "Mostly cloudy"}
        assert result["icon"] == "mostly_cloudy_day.svg"
        assert result["wind"] == {
            "speed": 10,
            "angle": 46,
            "direction": "northeast",
            "shortDirection": "NE",
        }
        assert result["timestamp"] == {
            "formatted": "Wednesday 2:52 PM EST",
            "utc": int(datetime(2026, 2, 11, 19, 52, tzinfo=UTC).timestamp()),
        }
        assert result["stationInfo"]["identifier"] == "KDCA"
        assert result["stationInfo"]["elevation"] == 13.0
        assert service.context.state == UnitOfWorkState.DONE

    @respx.mock
    def test_distance_metric_uses_reference_point(self, service, metrics, load_fixture):
        respx.get(POINTS_URL).mock(
            return_value=httpx.Response(200, json=load_fixture("points_lwx.json"))
        )
        _mock_observation_chain(load_fixture)

        service.get_grid_from_lat_lon(38.8977, -77.0365)
        service.get_current_conditions_from_grid("LWX", 97, 71)

        assert len(metrics.calls) == 1
        name, value, tags = metrics.calls[0]
        assert name == "wx.observation"
        assert tags["usesReferencePoint"] is True
        assert tags["withinGridCell"] is True
        assert tags["stationIndex"] == 0
        assert tags["obsStation"] == "https://api.weather.gov/stations/KDCA"
        assert 1_000 < value < 3_000

    @respx.mock
    def test_reference_point_dropped_for_other_grid(self, service, metrics, load_fixture):
        respx.get(f"{BASE}/points/39.29,-76.61").mock(
            return_value=httpx.Response(200, json={"properties": {
                "gridId": "LWX", "gridX": 109, "gridY": 91,
            }})
        )
        _mock_observation_chain(load_fixture)

        service.get_grid_from_lat_lon(39.29, -76.61)
        service.get_current_conditions_from_grid("LWX", 97, 71)

        _, _, tags = metrics.calls[0]
        assert tags["usesReferencePoint"] is False

    @respx.mock
    def test_metrics_failure_is_not_fatal(
        self, test_config, place_lookup, failing_metrics, context, load_fixture
    ):
        _mock_observation_chain(load_fixture)
        with WeatherDataService(
            test_config, place_lookup=place_lookup, metrics=failing_metrics, context=context
        ) as service:
            result = service.get_current_conditions_from_grid("LWX", 97, 71)

        assert result["temperature"] == 50
        assert len(failing_metrics.calls) == 1

    @respx.mock
    def test_geometry_failure_skips_metric(self, service, metrics, load_fixture):
        respx.get(STATIONS_URL).mock(
            return_value=httpx.Response(200, json=load_fixture("stations_lwx.json"))
        )
        respx.get(obs_url("KDCA")).mock(
            return_value=httpx.Response(200, json=load_fixture("observation_kdca.json"))
        )
        respx.get(GRIDPOINT_URL).mock(return_value=httpx.Response(404))

        result = service.get_current_conditions_from_grid("LWX", 97, 71)

        assert result["temperature"] == 50
        assert metrics.calls == []

    @respx.mock
    def test_no_valid_station_returns_none(self, service, load_fixture):
        missing = load_fixture("observation_missing_temp.json")
        respx.get(STATIONS_URL).mock(
            return_value=httpx.Response(200, json=load_fixture("stations_lwx.json"))
        )
        for station in ("KDCA", "KADW", "KIAD"):
            respx.get(obs_url(station)).mock(return_value=httpx.Response(200, json=missing))

        assert service.get_current_conditions_from_grid("LWX", 97, 71) is None
        assert service.context.state == UnitOfWorkState.FAILED

    @respx.mock
    def test_station_list_outage_raises(self, service):
        respx.get(STATIONS_URL).mock(return_value=httpx.Response(503))

        with patch("weather_data.ingest.fetch_client.time.sleep"), pytest.raises(
            UpstreamTransientError
        ):
            service.get_current_conditions_from_grid("LWX", 97, 71)
        assert service.context.state == UnitOfWorkState.FAILED

    @respx.mock(assert_all_called=False)
    def test_cancellation_propagates(self, respx_mock, test_config, context, load_fixture):
        event = threading.Event()
        stations = load_fixture("stations_lwx.json")

        def list_then_cancel(request):
            event.set()
            return httpx.Response(200, json=stations)

        respx_mock.get(STATIONS_URL).mock(side_effect=list_then_cancel)
        kdca = respx_mock.get(obs_url("KDCA"))

        with WeatherDataService(
            test_config, context=context, cancel_event=event
        ) as service, pytest.raises(FetchCancelledError):
            service.get_current_conditions_from_grid("LWX", 97, 71)

        assert not kdca.called
        assert context.state == UnitOfWorkState.FAILED


class TestHourlyForecast:
    @respx.mock
    def test_drops_started_periods(self, service, hourly_forecast, load_fixture):
        respx.get(HOURLY_URL).mock(return_value=httpx.Response(200, json=hourly_forecast))
        respx.get(GRIDPOINT_URL).mock(
            return_value=httpx.Response(200, json=load_fixture("gridpoint_lwx.json"))
        )

        now = datetime(2026, 2, 11, 15, tzinfo=EST)
        hourly = service.get_hourly_forecast_from_grid("LWX", 97, 71, now=now)

        assert [h["time"] for h in hourly] == ["3 PM", "4 PM", "5 PM", "6 PM"]
        first = hourly[0]
        assert first["conditions"] == "Mostly sunny"
        assert first["icon"] == "mostly_clear_day.svg"
        assert first["iconBasename"] == "mostly_clear_day"
        assert first["temperature"] == 48
        assert first["probabilityOfPrecipitation"] == 15
        assert first["relativeHumidity"] == 53
        assert first["dewpoint"] == 32
        assert first["windSpeed"] == "10 mph"
        assert first["timestamp"] == "2026-02-11T15:00:00-05:00"

    @respx.mock(assert_all_called=False)
    def test_default_timezone_without_lookup(self, respx_mock, test_config, context, hourly_forecast):
        respx_mock.get(HOURLY_URL).mock(return_value=httpx.Response(200, json=hourly_forecast))
        gridpoint = respx_mock.get(GRIDPOINT_URL)

        with WeatherDataService(test_config, context=context) as service:
            hourly = service.get_hourly_forecast_from_grid(
                "LWX", 97, 71, now=datetime(2026, 2, 11, 17, tzinfo=EST)
            )

        assert [h["time"] for h in hourly] == ["5 PM", "6 PM"]
        assert not gridpoint.called


class TestDailyForecast:
    @respx.mock
    def test_groups_periods(self, service, daily_forecast):
        respx.get(FORECAST_URL).mock(return_value=httpx.Response(200, json=daily_forecast))

        result = service.get_daily_forecast_from_grid("LWX", 97, 71)

        assert len(result["today"]) == 2
        assert len(result["detailed"]) == 5
        assert len(result["extended"]) == 1
        assert result["today"][0]["dayName"] == "Wednesday"
        assert result["detailed"][0]["daytime"]["monthAndDay"] == "Feb 12"
        assert result["detailed"][0]["overnight"]["isDaytime"] is False
        assert service.context.state == UnitOfWorkState.DONE

    @respx.mock
    def test_custom_days(self, service, daily_forecast):
        respx.get(FORECAST_URL).mock(return_value=httpx.Response(200, json=daily_forecast))

        result = service.get_daily_forecast_from_grid("LWX", 97, 71, default_days=3)

        assert len(result["detailed"]) == 3
        assert len(result["extended"]) == 3

    @respx.mock
    def test_zero_days_is_all_extended(self, service, daily_forecast):
        respx.get(FORECAST_URL).mock(return_value=httpx.Response(200, json=daily_forecast))

        result = service.get_daily_forecast_from_grid("LWX", 97, 71, default_days=0)

        assert result["detailed"] == []
        assert len(result["extended"]) == 6

    @respx.mock
    def test_no_periods(self, service):
        respx.get(FORECAST_URL).mock(
            return_value=httpx.Response(200, json={"properties": {"periods": []}})
        )
        result = service.get_daily_forecast_from_grid("LWX", 97, 71)
        assert result == {"today": [], "detailed": [], "extended": []}


class TestHourlyPrecipitation:
    @respx.mock
    def test_windows_in_inches(self, service, load_fixture):
        respx.get(GRIDPOINT_URL).mock(
            return_value=httpx.Response(200, json=load_fixture("gridpoint_lwx.json"))
        )

        now = datetime(2026, 2, 11, 18, 30, tzinfo=UTC)
        periods = service.get_hourly_precipitation("LWX", 97, 71, now=now)

        assert periods == [
            {"start": "1 PM", "end": "2 PM", "value": 0.0},
            {"start": "2 PM", "end": "4 PM", "value": 0.1},
            {"start": "4 PM", "end": "5 PM", "value": 1.0},
            {"start": "5 PM", "end": "11 PM", "value": 0.0},
        ]

    @respx.mock
    def test_ended_windows_dropped(self, service, load_fixture):
        respx.get(GRIDPOINT_URL).mock(
            return_value=httpx.Response(200, json=load_fixture("gridpoint_lwx.json"))
        )

        now = datetime(2026, 2, 11, 19, 30, tzinfo=UTC)
        periods = service.get_hourly_precipitation("LWX", 97, 71, now=now)

        assert [p["start"] for p in periods] == ["2 PM", "4 PM", "5 PM"]

    @respx.mock
    def test_bad_valid_time_skipped(self, service):
        respx.get(GRIDPOINT_URL).mock(return_value=httpx.Response(200, json={
            "geometry": {"coordinates": [[[-77.06, 38.86], [-77.0, 38.86], [-77.0, 38.92]]]},
            "properties": {"quantitativePrecipitation": {"values": [
                {"validTime": "2026-02-11T19:00:00+00:00/P1M", "value": 5},
                {"validTime": "2026-02-11T20:00:00+00:00/PT1H", "value": 5.08},
            ]}},
        }))

        now = datetime(2026, 2, 11, 19, tzinfo=UTC)
        periods = service.get_hourly_precipitation("LWX", 97, 71, now=now)

        assert periods == [{"start": "3 PM", "end": "4 PM", "value": 0.2}]
