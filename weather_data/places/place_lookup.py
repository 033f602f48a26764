"""Nearest-place lookup over the SQLite gazetteer, and place-name parsing."""

import csv
import logging
import sqlite3
from collections.abc import Sequence
from pathlib import Path

from weather_data.geo.geometry import distance_to_polygon, planar_distance
from weather_data.models.errors import PlaceNotFoundError
from weather_data.models.weather import Place, Point
from weather_data.storage import place_repo

logger = logging.getLogger(__name__)


class SqlitePlaceLookup:
    """Ranks every gazetteer row by planar distance.

    SQLite has no spatial functions, so ranking happens in Python. Rows are
    read once per lookup instance.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self._places: list[tuple[Place, Point]] | None = None

    def _all(self) -> list[tuple[Place, Point]]:
        if self._places is None:
            self._places = place_repo.load_places(self.conn)
        if not self._places:
            raise PlaceNotFoundError("Place gazetteer is empty")
        return self._places

    def nearest_to_point(self, point: Point) -> Place:
        place, _ = min(self._all(), key=lambda row: planar_distance(point, row[1]))
        return place

    def nearest_to_polygon(self, polygon: Sequence[Point]) -> Place:
        place, _ = min(self._all(), key=lambda row: distance_to_polygon(row[1], polygon))
        return place


def parse_suggested_place_name(name: str) -> tuple[str, str | None]:
    """Split a location-search label into (city, state).

    Only "City, ST, USA" is understood; anything else is all city.
    """
    parts = [part.strip() for part in name.split(",")]
    if len(parts) == 3 and len(parts[1]) == 2 and parts[2] == "USA":
        return parts[0], parts[1]
    return name, None


def import_places_csv(conn: sqlite3.Connection, path: str | Path) -> int:
    """Load gazetteer rows from a CSV with a header row.

    Required columns: name, state, lat, lon. Optional: stateName, stateFIPS,
    county, countyFIPS, timezone. Returns the number of rows imported.
    """
    imported = 0
    with open(path, newline="") as f:
        for row in csv.DictReader(f):
            try:
                point = Point(lat=float(row["lat"]), lon=float(row["lon"]))
                place = Place(
                    city=row["name"],
                    state=row["state"],
                    state_name=row.get("stateName") or None,
                    state_fips=row.get("stateFIPS") or None,
                    county=row.get("county") or None,
                    county_fips=row.get("countyFIPS") or None,
                    timezone=row.get("timezone") or None,
                )
            except (KeyError, ValueError) as e:
                logger.warning("Skipping malformed place row %r: %s", row, e)
                continue
            place_repo.save_place(conn, place, point)
            imported += 1
    logger.info("Imported %d places from %s", imported, path)
    return imported
