"""CLI entry point for the weather data service."""

import argparse
import json
import logging
from typing import Any

from weather_data.config.loader import get_config_value, load_config
from weather_data.config.schema import WeatherDataConfig
from weather_data.models.errors import WeatherDataError
from weather_data.places.place_lookup import SqlitePlaceLookup, import_places_csv
from weather_data.service.weather_data_service import WeatherDataService
from weather_data.storage.database import open_gazetteer

DEFAULT_CONFIG = "config/weather_data.yaml"

logger = logging.getLogger(__name__)


def _add_grid_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("wfo", help="Forecast office id, e.g. LWX")
    p.add_argument("x", type=int, help="Grid x")
    p.add_argument("y", type=int, help="Grid y")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="weather-data",
        description="Display-ready data from api.weather.gov",
    )
    parser.add_argument("--config", default=DEFAULT_CONFIG, help="Config YAML path")
    parser.add_argument("--places-db", default=None, help="Place gazetteer SQLite path")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command")

    point_p = sub.add_parser("point", help="Resolve a lat/lon to its grid cell")
    point_p.add_argument("lat", type=float)
    point_p.add_argument("lon", type=float)
    point_p.add_argument("--place-name", default=None, help='e.g. "Reston, VA, USA"')

    _add_grid_args(sub.add_parser("conditions", help="Current conditions"))
    _add_grid_args(sub.add_parser("hourly", help="Hourly forecast"))
    daily_p = sub.add_parser("daily", help="Daily forecast")
    _add_grid_args(daily_p)
    daily_p.add_argument("--days", type=int, default=None, help="Detailed days")
    _add_grid_args(sub.add_parser("precip", help="Hourly precipitation"))

    places_p = sub.add_parser("places", help="Place gazetteer operations")
    places_sub = places_p.add_subparsers(dest="places_command")
    import_p = places_sub.add_parser("import", help="Import places from CSV")
    import_p.add_argument("csv_path")

    config_p = sub.add_parser("config", help="Config operations")
    config_sub = config_p.add_subparsers(dest="config_command")
    config_sub.add_parser("show", help="Display current config")
    get_p = config_sub.add_parser("get", help="Display one config value")
    get_p.add_argument("key", help="Dotted key, e.g. api.base_url")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)
    places_db = args.places_db or config.places.db_path

    if args.command == "config":
        return _cmd_config(config, args)
    elif args.command == "places":
        return _cmd_places(places_db, args)
    else:
        return _cmd_weather(config, places_db, args)


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def _cmd_weather(config: WeatherDataConfig, places_db: str, args) -> int:
    conn = open_gazetteer(places_db)
    if conn is None:
        logger.info("No place gazetteer at %s; using default timezone", places_db)
    lookup = SqlitePlaceLookup(conn) if conn is not None else None
    try:
        with WeatherDataService(config, place_lookup=lookup) as service:
            result = _run_weather_command(service, args)
    except WeatherDataError as e:
        print(f"Error: {e}")
        return 1
    finally:
        if conn is not None:
            conn.close()

    if result is None:
        print("No data")
        return 1
    _print_json(result)
    return 0


def _run_weather_command(service: WeatherDataService, args) -> Any:
    if args.command == "point":
        grid = service.get_grid_from_lat_lon(args.lat, args.lon, args.place_name)
        if grid is None:
            return None
        place = service.get_cached_place_name(grid)
        return {
            "grid": {"wfo": grid.wfo, "x": grid.x, "y": grid.y},
            "place": place.to_dict() if place else None,
        }
    if args.command == "conditions":
        return service.get_current_conditions_from_grid(args.wfo, args.x, args.y)
    if args.command == "hourly":
        return service.get_hourly_forecast_from_grid(args.wfo, args.x, args.y)
    if args.command == "daily":
        return service.get_daily_forecast_from_grid(
            args.wfo, args.x, args.y, default_days=args.days
        )
    if args.command == "precip":
        return service.get_hourly_precipitation(args.wfo, args.x, args.y)
    raise ValueError(f"Unknown command {args.command}")


def _cmd_places(places_db: str, args) -> int:
    if args.places_command != "import":
        print("Usage: places import CSV")
        return 1
    conn = open_gazetteer(places_db, create=True)
    try:
        count = import_places_csv(conn, args.csv_path)
    finally:
        conn.close()
    print(f"Imported {count} places into {places_db}")
    return 0


def _cmd_config(config: WeatherDataConfig, args) -> int:
    if args.config_command == "show":
        print(config.model_dump_json(indent=2))
        return 0
    if args.config_command == "get":
        try:
            value = get_config_value(config, args.key)
        except KeyError as e:
            print(f"Error: {e}")
            return 1
        print(value)
        return 0
    print("Usage: config [show|get KEY]")
    return 1
