"""Weather data service: one instance per logical request.

Composes the fetch client, station selector, icon mapper and period
processor to answer current conditions, hourly and daily forecasts and
hourly precipitation for a WFO grid cell. Results are plain dicts shaped
for the page templates.
"""

import logging
import threading
from datetime import datetime, tzinfo
from typing import Any
from zoneinfo import ZoneInfoNotFoundError

import httpx

from weather_data.conditions.icon_mapper import IconConditionMapper, derive_key
from weather_data.config.schema import WeatherDataConfig
from weather_data.forecast.periods import (
    PeriodFormatter,
    filter_to_extended_periods,
    filter_to_future_days,
    filter_to_today,
    pair_periods,
)
from weather_data.forecast.timefmt import clock_label, hour_label, parse_valid_time, zone
from weather_data.forecast.units import (
    compass_direction,
    feels_like,
    kph_to_mph,
    meters_to_feet,
    millimeters_to_inches,
    round_half_up,
    sentence_case,
    temperature_scalar,
)
from weather_data.ingest.fetch_client import FetchClient
from weather_data.models.common import utc_now
from weather_data.models.errors import (
    FetchCancelledError,
    GeometryUnavailableError,
    NoValidStationError,
    PlaceNotFoundError,
    UpstreamError,
    WeatherDataError,
)
from weather_data.models.forecast import parse_periods
from weather_data.models.weather import DistanceInfo, Grid, Place, Point, SelectedObservation
from weather_data.places.place_lookup import parse_suggested_place_name
from weather_data.service.collaborators import (
    IdentityTranslator,
    MetricsSink,
    PlaceLookup,
    Translator,
    metrics_sink_from_config,
)
from weather_data.service.context import RequestContext, UnitOfWorkState
from weather_data.stations.distance import get_obs_distance_info
from weather_data.stations.station_selector import StationSelector

logger = logging.getLogger(__name__)

OBSERVATION_METRIC = "wx.observation"


def _coordinate(value: float) -> str:
    """Four-decimal coordinate without trailing zeros, e.g. 38.8977 or 39."""
    text = f"{round_half_up(value, 4):.4f}".rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


class WeatherDataService:
    def __init__(
        self,
        config: WeatherDataConfig | None = None,
        place_lookup: PlaceLookup | None = None,
        translator: Translator | None = None,
        metrics: MetricsSink | None = None,
        mapper: IconConditionMapper | None = None,
        context: RequestContext | None = None,
        http_client: httpx.Client | None = None,
        cancel_event: threading.Event | None = None,
    ):
        self.config = config or WeatherDataConfig()
        self.context = context or RequestContext()
        self.place_lookup = place_lookup
        self.t = translator or IdentityTranslator()
        self.metrics = metrics or metrics_sink_from_config(self.config.metrics)
        self.mapper = mapper or IconConditionMapper(
            strict=self.config.conditions.strict_mapping
        )
        self.client = FetchClient.from_config(
            self.config.api,
            self.context.cache,
            self.context.response_id,
            http_client=http_client,
            cancel_event=cancel_event,
        )
        self.station_selector = StationSelector(
            self.client, max_attempts=self.config.stations.max_attempts
        )
        self.formatter = PeriodFormatter(self.mapper, self.t)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "WeatherDataService":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # --- Grid and place resolution ---

    def get_grid_from_lat_lon(
        self, lat: float, lon: float, suggested_place_name: str | None = None
    ) -> Grid | None:
        """Resolve a point to its WFO grid cell, or None if that fails.

        Also stashes the point as the reference for distance diagnostics and
        caches a short-lived place name for the redirect that usually follows.
        """
        try:
            grid = self._resolve_grid(lat, lon, suggested_place_name)
        except FetchCancelledError:
            self.context.transition(UnitOfWorkState.FAILED)
            raise
        except (WeatherDataError, AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Could not resolve grid for %s,%s: %s", lat, lon, e)
            self.context.transition(UnitOfWorkState.FAILED)
            return None
        self.context.transition(UnitOfWorkState.GRID_RESOLVED)
        return grid

    def _resolve_grid(self, lat: float, lon: float, suggested_place_name: str | None) -> Grid:
        lat_text, lon_text = _coordinate(lat), _coordinate(lon)
        metadata = self.client.fetch(f"/points/{lat_text},{lon_text}")

        props = metadata.get("properties") or {}
        if not props.get("gridId"):
            raise GeometryUnavailableError(f"No grid for point {lat_text},{lon_text}")
        grid = Grid.of(props["gridId"], props["gridX"], props["gridY"])

        relative = (props.get("relativeLocation") or {}).get("properties") or {}
        city, state = relative.get("city"), relative.get("state")

        # A name picked in location search beats the API's relative location,
        # so the user sees the label they chose.
        if suggested_place_name:
            city, state = parse_suggested_place_name(suggested_place_name)

        self.context.cache.set_for(
            self._suggested_name_key(grid),
            Place(city=city, state=state),
            self.config.places.suggested_name_ttl_seconds,
        )

        self.context.use_grid(grid)
        self.context.reference_point = Point(lat=float(lat_text), lon=float(lon_text))
        return grid

    @staticmethod
    def _suggested_name_key(grid: Grid) -> str:
        return f"placename {grid.wfo}/{grid.x}/{grid.y}"

    def get_cached_place_name(self, grid: Grid) -> Place | None:
        """Place name stashed by get_grid_from_lat_lon, if still fresh."""
        entry = self.context.cache.get(self._suggested_name_key(grid))
        return None if entry is None else entry.data

    def get_geometry_from_grid(self, wfo: str, x: int, y: int) -> list[Point]:
        """Vertices of the grid cell polygon, fetched once per request."""
        grid = Grid.of(wfo, x, y)
        self.context.use_grid(grid)
        if self.context.grid_geometry is None:
            gridpoint = self.client.fetch(f"/gridpoints/{grid.path}")
            try:
                ring = gridpoint["geometry"]["coordinates"][0]
                geometry = [Point.from_coordinates(c) for c in ring]
            except (KeyError, IndexError, TypeError) as e:
                raise GeometryUnavailableError(f"No geometry for grid {grid.path}") from e
            self.context.grid_geometry = geometry
        return self.context.grid_geometry

    def _require_place_lookup(self) -> PlaceLookup:
        if self.place_lookup is None:
            raise PlaceNotFoundError("No place lookup configured")
        return self.place_lookup

    def get_place_near(self, lat: float, lon: float) -> Place:
        return self._require_place_lookup().nearest_to_point(Point(lat=lat, lon=lon))

    def get_place_from_grid(self, wfo: str, x: int, y: int) -> Place:
        grid = Grid.of(wfo, x, y)
        cache_key = f"place name {grid.wfo}/{grid.x}/{grid.y}"
        hit = self.context.cache.get(cache_key)
        if hit is not None:
            return hit.data

        lookup = self._require_place_lookup()
        geometry = self.get_geometry_from_grid(grid.wfo, grid.x, grid.y)
        place = lookup.nearest_to_polygon(geometry)

        self.context.cache.set_for(
            cache_key, place, self.config.places.place_name_ttl_seconds
        )
        return place

    def _place_timezone(self, grid: Grid) -> tzinfo:
        """Timezone of the place nearest the grid, else the display default."""
        name = None
        try:
            name = self.get_place_from_grid(grid.wfo, grid.x, grid.y).timezone
        except FetchCancelledError:
            raise
        except (PlaceNotFoundError, GeometryUnavailableError, UpstreamError) as e:
            logger.warning("No place timezone for %s, using default: %s", grid.path, e)
        try:
            return zone(name, self.config.display.timezone)
        except ZoneInfoNotFoundError:
            logger.warning("Unknown timezone %r for %s, using default", name, grid.path)
            return zone(None, self.config.display.timezone)

    # --- Observation diagnostics ---

    def log_observation_distance_info(self, info: DistanceInfo) -> None:
        """Send distance diagnostics to metrics. Never raises."""
        tags = {
            "withinGridCell": info.within_grid_cell,
            "stationIndex": info.station_index,
            "obsStation": info.obs_station,
            "distance": info.distance,
            "usesReferencePoint": info.uses_reference_point,
        }
        try:
            self.metrics.send_metric(OBSERVATION_METRIC, info.distance, tags)
        except Exception:
            logger.exception("Failed to send %s metric", OBSERVATION_METRIC)

    def _report_distance(self, grid: Grid, selected: SelectedObservation) -> None:
        try:
            geometry = self.get_geometry_from_grid(grid.wfo, grid.x, grid.y)
            info = get_obs_distance_info(
                self.context.reference_point,
                selected.observation,
                geometry,
                selected.station_index,
            )
        except FetchCancelledError:
            raise
        except (UpstreamError, GeometryUnavailableError) as e:
            logger.warning("Skipping distance diagnostics for %s: %s", grid.path, e)
            return
        self.log_observation_distance_info(info)

    # --- Current conditions ---

    def get_current_conditions_from_grid(self, wfo: str, x: int, y: int) -> dict[str, Any] | None:
        """Latest valid observation near the grid, or None when no station has one."""
        grid = Grid.of(wfo, x, y)
        self.context.use_grid(grid)

        try:
            selected = self.station_selector.select_observation(grid)
        except NoValidStationError as e:
            logger.warning("No current conditions for %s: %s", grid.path, e)
            self.context.transition(UnitOfWorkState.FAILED)
            return None
        except UpstreamError:
            self.context.transition(UnitOfWorkState.FAILED)
            raise
        self.context.transition(UnitOfWorkState.STATION_SELECTED)

        self._report_distance(grid, selected)

        result = self._format_conditions(selected)
        self.context.transition(UnitOfWorkState.FORMATTED)
        self.context.transition(UnitOfWorkState.DONE)
        return result

    def _format_conditions(self, selected: SelectedObservation) -> dict[str, Any]:
        obs = selected.observation
        station = selected.station

        timestamp = None
        if obs.timestamp is not None:
            local = obs.timestamp.astimezone(zone(None, self.config.display.timezone))
            timestamp = {"formatted": clock_label(local), "utc": int(obs.timestamp.timestamp())}

        description = self.t.translate(sentence_case(obs.text_description))
        direction, short_direction = compass_direction(obs.wind_direction)

        return {
            "conditions": {"long": description, "short": description},
            "feels_like": feels_like(obs.heat_index, obs.wind_chill, obs.temperature),
            "humidity": int(round_half_up(obs.relative_humidity or 0)),
            "icon": self.mapper.resolve(derive_key(obs.icon)).icon,
            "temperature": temperature_scalar(obs.temperature),
            "timestamp": timestamp,
            "wind": {
                "speed": kph_to_mph(obs.wind_speed),
                "angle": obs.wind_direction,
                "direction": direction,
                "shortDirection": short_direction,
            },
            "stationInfo": {
                "name": station.name,
                "identifier": station.identifier,
                "lat": station.point.lat if station.point else None,
                "lon": station.point.lon if station.point else None,
                "elevation": meters_to_feet(station.elevation_m),
            },
        }

    # --- Forecasts ---

    def get_hourly_forecast_from_grid(
        self, wfo: str, x: int, y: int, now: datetime | None = None
    ) -> list[dict[str, Any]]:
        grid = Grid.of(wfo, x, y)
        now = now or utc_now()

        forecast = self.client.fetch(f"/gridpoints/{grid.path}/forecast/hourly")
        periods = parse_periods(forecast["properties"]["periods"])
        tz = self._place_timezone(grid)

        hourly = []
        for period in periods:
            # Toss out periods that already started.
            if period.start_time < now:
                continue
            local = period.start_time.astimezone(tz)
            mapping = self.mapper.resolve(derive_key(period.icon))
            hourly.append({
                "conditions": self.t.translate(sentence_case(period.short_forecast)),
                "icon": mapping.icon,
                "iconBasename": mapping.basename,
                "probabilityOfPrecipitation": period.probability_of_precipitation,
                "time": hour_label(local),
                "timestamp": local.isoformat(),
                "temperature": period.temperature,
                "relativeHumidity": period.relative_humidity,
                "windSpeed": period.wind_speed,
                "windDirection": period.wind_direction,
                "dewpoint": temperature_scalar(period.dewpoint),
            })
        self.context.transition(UnitOfWorkState.DONE)
        return hourly

    def get_daily_forecast_from_grid(
        self,
        wfo: str,
        x: int,
        y: int,
        now: datetime | None = None,
        default_days: int | None = None,
    ) -> dict[str, list]:
        """Today's periods, then detailed and extended day/night pairs."""
        grid = Grid.of(wfo, x, y)
        days = self.config.forecast.default_days if default_days is None else default_days

        forecast = self.client.fetch(f"/gridpoints/{grid.path}/forecast")
        periods = parse_periods(forecast["properties"]["periods"])
        if not periods:
            return {"today": [], "detailed": [], "extended": []}

        # The first period's start carries the forecast's own UTC offset,
        # which keeps "tomorrow" in the location's calendar.
        if now is None:
            now = periods[0].start_time

        today = filter_to_today(periods, now)
        detailed = filter_to_future_days(periods, now, days)
        extended = filter_to_extended_periods(periods, now, days)

        self.context.transition(UnitOfWorkState.FORMATTED)
        result = {
            "today": [self.formatter.format_daily_period(p) for p in today],
            "detailed": [self.formatter.format_pair(pair) for pair in pair_periods(detailed)],
            "extended": [self.formatter.format_pair(pair) for pair in pair_periods(extended)],
        }
        self.context.transition(UnitOfWorkState.DONE)
        return result

    def get_hourly_precipitation(
        self, wfo: str, x: int, y: int, now: datetime | None = None
    ) -> list[dict[str, Any]]:
        """Quantitative precipitation windows that have not ended yet, in inches."""
        grid = Grid.of(wfo, x, y)
        now = now or utc_now()
        tz = self._place_timezone(grid)

        gridpoint = self.client.fetch(f"/gridpoints/{grid.path}")
        values = (
            gridpoint.get("properties", {})
            .get("quantitativePrecipitation", {})
            .get("values", [])
        )

        periods = []
        for item in values:
            try:
                start, end = parse_valid_time(item.get("validTime", ""))
            except ValueError as e:
                logger.warning("Skipping precipitation value for %s: %s", grid.path, e)
                continue
            if end < now:
                continue
            inches = millimeters_to_inches(item.get("value")) or 0.0
            periods.append({
                "start": hour_label(start.astimezone(tz)),
                "end": hour_label(end.astimezone(tz)),
                "value": round_half_up(inches, 1),
            })
        self.context.transition(UnitOfWorkState.DONE)
        return periods
