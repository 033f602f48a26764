"""YAML config loader with environment overrides and dotted-key access."""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from weather_data.config.schema import WeatherDataConfig

# Environment variable -> (section, field)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "API_URL": ("api", "base_url"),
    "WX_METRICS_ENDPOINT": ("metrics", "endpoint"),
    "WX_METRICS_API_KEY": ("metrics", "api_key"),
}


def load_config(
    path: str | Path | None = None, env: Mapping[str, str] | None = None
) -> WeatherDataConfig:
    """Load and validate config from a YAML file.

    A missing path or empty file yields the defaults. Environment overrides
    win over file values; an empty variable counts as unset.
    """
    raw: dict[str, Any] = {}
    if path is not None:
        path = Path(path)
        if path.exists():
            with open(path) as f:
                raw = yaml.safe_load(f) or {}

    env = os.environ if env is None else env
    for var, (section, field) in ENV_OVERRIDES.items():
        value = env.get(var)
        if value:
            raw.setdefault(section, {})[field] = value

    if raw.get("metrics", {}).get("endpoint") and "enabled" not in raw["metrics"]:
        raw["metrics"]["enabled"] = True

    return WeatherDataConfig(**raw)


def get_config_value(config: WeatherDataConfig, dotted_key: str) -> Any:
    """Get a config value by dotted key path. E.g. 'api.base_url'."""
    obj: Any = config
    for part in dotted_key.split("."):
        if hasattr(obj, part):
            obj = getattr(obj, part)
        elif isinstance(obj, dict) and part in obj:
            obj = obj[part]
        else:
            raise KeyError(f"Config key not found: {dotted_key}")
    return obj
