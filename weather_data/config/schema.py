"""Pydantic v2 configuration schema with strict validation."""

from pydantic import BaseModel, Field

from weather_data.config.defaults import (
    API_BASE_URL,
    DEFAULT_DETAILED_DAYS,
    DEFAULT_PLACES_DB,
    DEFAULT_USER_AGENT,
    DISPLAY_TIMEZONE,
    MAX_FETCH_ATTEMPTS,
    NUMBER_OF_OBS_STATIONS_TO_TRY,
    PLACE_NAME_TTL_SECONDS,
    RETRY_BASE_DELAY_MS,
    RETRY_MULTIPLIER,
    SUGGESTED_PLACE_NAME_TTL_SECONDS,
)


class ApiConfig(BaseModel):
    model_config = {"extra": "forbid"}

    base_url: str = API_BASE_URL
    user_agent: str = DEFAULT_USER_AGENT
    timeout: float = Field(default=30.0, gt=0.0)
    max_attempts: int = Field(default=MAX_FETCH_ATTEMPTS, ge=1)
    retry_base_delay_ms: float = Field(default=RETRY_BASE_DELAY_MS, ge=0.0)
    retry_multiplier: float = Field(default=RETRY_MULTIPLIER, ge=1.0)


class StationConfig(BaseModel):
    model_config = {"extra": "forbid"}

    max_attempts: int = Field(default=NUMBER_OF_OBS_STATIONS_TO_TRY, ge=1)


class ForecastConfig(BaseModel):
    model_config = {"extra": "forbid"}

    default_days: int = Field(default=DEFAULT_DETAILED_DAYS, ge=1, le=7)


class DisplayConfig(BaseModel):
    model_config = {"extra": "forbid"}

    timezone: str = DISPLAY_TIMEZONE


class ConditionsConfig(BaseModel):
    model_config = {"extra": "forbid"}

    # Development builds should flip this on so unmapped icons fail loudly.
    strict_mapping: bool = False


class PlacesConfig(BaseModel):
    model_config = {"extra": "forbid"}

    db_path: str = DEFAULT_PLACES_DB
    place_name_ttl_seconds: int = Field(default=PLACE_NAME_TTL_SECONDS, ge=0)
    suggested_name_ttl_seconds: int = Field(default=SUGGESTED_PLACE_NAME_TTL_SECONDS, ge=0)


class MetricsConfig(BaseModel):
    model_config = {"extra": "forbid"}

    enabled: bool = False
    endpoint: str = ""
    api_key: str = ""
    timeout: float = Field(default=5.0, gt=0.0)


class WeatherDataConfig(BaseModel):
    model_config = {"extra": "forbid"}

    api: ApiConfig = ApiConfig()
    stations: StationConfig = StationConfig()
    forecast: ForecastConfig = ForecastConfig()
    display: DisplayConfig = DisplayConfig()
    conditions: ConditionsConfig = ConditionsConfig()
    places: PlacesConfig = PlacesConfig()
    metrics: MetricsConfig = MetricsConfig()
