"""Default values for api.weather.gov access and display."""

API_BASE_URL = "https://api.weather.gov"
DEFAULT_USER_AGENT = "weather-data/0.1.0 (weather.gov data service)"
RESPONSE_ID_HEADER = "wx-gov-response-id"

# 75 ms first backoff, growing by 1.65 each retry, five attempts in total.
MAX_FETCH_ATTEMPTS = 5
RETRY_BASE_DELAY_MS = 75.0
RETRY_MULTIPLIER = 1.65

NUMBER_OF_OBS_STATIONS_TO_TRY = 3
DEFAULT_DETAILED_DAYS = 5
DISPLAY_TIMEZONE = "America/New_York"

PLACE_NAME_TTL_SECONDS = 600
SUGGESTED_PLACE_NAME_TTL_SECONDS = 3

DEFAULT_PLACES_DB = "data/places.db"
