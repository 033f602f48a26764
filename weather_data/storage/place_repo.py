"""Repository for gazetteer places."""

import sqlite3

from weather_data.models.weather import Place, Point

PLACE_COLUMNS = (
    "name, state, state_name, state_fips, county, county_fips, timezone, lat, lon"
)


def save_place(conn: sqlite3.Connection, place: Place, point: Point) -> None:
    """Insert or refresh a place, keyed by name/state/county.

    A missing county is stored as an empty string so the upsert key still
    matches; SQLite treats NULLs in a UNIQUE constraint as distinct.
    """
    conn.execute(
        f"INSERT INTO places ({PLACE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?) "
        "ON CONFLICT(name, state, county) DO UPDATE SET "
        "state_name = excluded.state_name, state_fips = excluded.state_fips, "
        "county_fips = excluded.county_fips, timezone = excluded.timezone, "
        "lat = excluded.lat, lon = excluded.lon",
        (
            place.city,
            place.state,
            place.state_name,
            place.state_fips,
            place.county or "",
            place.county_fips,
            place.timezone,
            point.lat,
            point.lon,
        ),
    )
    conn.commit()


def load_places(conn: sqlite3.Connection) -> list[tuple[Place, Point]]:
    rows = conn.execute(f"SELECT {PLACE_COLUMNS} FROM places ORDER BY id").fetchall()
    return [_row_to_place(row) for row in rows]


def count_places(conn: sqlite3.Connection) -> int:
    return conn.execute("SELECT COUNT(*) FROM places").fetchone()[0]


def _row_to_place(row: sqlite3.Row) -> tuple[Place, Point]:
    place = Place(
        city=row["name"],
        state=row["state"],
        state_name=row["state_name"],
        state_fips=row["state_fips"],
        county=row["county"] or None,
        county_fips=row["county_fips"],
        timezone=row["timezone"],
    )
    return place, Point(lat=row["lat"], lon=row["lon"])
