"""Place gazetteer used to name grid cells and reference points."""

import sqlite3

DDL = [
    """
    CREATE TABLE IF NOT EXISTS places (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        state TEXT NOT NULL,
        state_name TEXT,
        state_fips TEXT,
        county TEXT NOT NULL DEFAULT '',
        county_fips TEXT,
        timezone TEXT,
        lat REAL NOT NULL,
        lon REAL NOT NULL,
        UNIQUE(name, state, county)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_places_lat_lon ON places(lat, lon)",
]


def up(conn: sqlite3.Connection) -> None:
    for stmt in DDL:
        conn.execute(stmt)
