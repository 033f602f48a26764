"""Location, station and observation models."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from weather_data.models.common import Quantity, parse_timestamp, quantity_value


@dataclass(frozen=True)
class Point:
    lat: float
    lon: float

    @classmethod
    def from_coordinates(cls, coordinates: list[float]) -> "Point":
        """Build from a GeoJSON ``[lon, lat]`` pair."""
        return cls(lat=coordinates[1], lon=coordinates[0])

    def to_dict(self) -> dict[str, float]:
        return {"lon": self.lon, "lat": self.lat}


@dataclass(frozen=True)
class Grid:
    wfo: str
    x: int
    y: int

    @classmethod
    def of(cls, wfo: str, x: int, y: int) -> "Grid":
        return cls(wfo=wfo.upper(), x=int(x), y=int(y))

    @property
    def path(self) -> str:
        return f"{self.wfo}/{self.x},{self.y}"


@dataclass(frozen=True)
class Place:
    city: str
    state: str | None
    state_name: str | None = None
    state_fips: str | None = None
    county: str | None = None
    county_fips: str | None = None
    timezone: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        return {
            "city": self.city,
            "state": self.state,
            "stateName": self.state_name,
            "stateFIPS": self.state_fips,
            "county": self.county,
            "countyFIPS": self.county_fips,
            "timezone": self.timezone,
        }


@dataclass(frozen=True)
class Station:
    identifier: str
    name: str
    point: Point | None
    elevation_m: float | None

    @classmethod
    def from_feature(cls, feature: dict[str, Any]) -> "Station":
        props = feature.get("properties", {})
        coords = (feature.get("geometry") or {}).get("coordinates")
        return cls(
            identifier=props.get("stationIdentifier", ""),
            name=props.get("name", ""),
            point=Point.from_coordinates(coords) if coords else None,
            elevation_m=quantity_value(props.get("elevation")),
        )


@dataclass(frozen=True)
class Observation:
    timestamp: datetime | None
    temperature: Quantity | None
    heat_index: Quantity | None
    wind_chill: Quantity | None
    dewpoint: Quantity | None
    relative_humidity: float | None
    wind_speed: float | None
    wind_direction: float | None
    icon: str | None
    text_description: str
    station: str
    point: Point | None

    @classmethod
    def from_feature(cls, feature: dict[str, Any]) -> "Observation":
        props = feature.get("properties", {})
        coords = (feature.get("geometry") or {}).get("coordinates")
        return cls(
            timestamp=parse_timestamp(props.get("timestamp")),
            temperature=props.get("temperature"),
            heat_index=props.get("heatIndex"),
            wind_chill=props.get("windChill"),
            dewpoint=props.get("dewpoint"),
            relative_humidity=quantity_value(props.get("relativeHumidity")),
            wind_speed=quantity_value(props.get("windSpeed")),
            wind_direction=quantity_value(props.get("windDirection")),
            icon=props.get("icon"),
            text_description=props.get("textDescription") or "",
            station=props.get("station", ""),
            point=Point.from_coordinates(coords) if coords else None,
        )

    @property
    def is_valid(self) -> bool:
        value = quantity_value(self.temperature)
        return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class SelectedObservation:
    station: Station
    observation: Observation
    station_index: int


@dataclass(frozen=True)
class DistanceInfo:
    distance: float  # metres
    within_grid_cell: bool
    uses_reference_point: bool
    obs_point: Point
    obs_station: str
    station_index: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "distance": self.distance,
            "withinGridCell": self.within_grid_cell,
            "usesReferencePoint": self.uses_reference_point,
            "obsPoint": self.obs_point.to_dict(),
            "obsStation": self.obs_station,
            "stationIndex": self.station_index,
        }
