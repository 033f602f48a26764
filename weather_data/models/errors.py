"""Error taxonomy for the weather data layer."""


class WeatherDataError(Exception):
    """Base class for all weather data errors."""


class UpstreamError(WeatherDataError):
    """Raised when api.weather.gov cannot answer a request."""

    def __init__(self, message: str, url: str, status_code: int | None = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class UpstreamTransientError(UpstreamError):
    """5xx from upstream. Retried internally; surfaces only after exhaustion."""

    def __init__(
        self,
        message: str,
        url: str,
        status_code: int | None = None,
        attempts: int = 1,
    ):
        super().__init__(message, url, status_code)
        self.attempts = attempts


class UpstreamFatalError(UpstreamError):
    """Non-5xx failure, transport failure or undecodable payload. Never retried."""


class FetchCancelledError(UpstreamError):
    """The unit of work was cancelled while a request was pending."""


class NoValidStationError(WeatherDataError):
    """No candidate observation station reported a temperature."""

    def __init__(self, message: str, last_observation=None, station_index: int = -1):
        super().__init__(message)
        self.last_observation = last_observation
        self.station_index = station_index


class MappingMissError(WeatherDataError):
    """A condition key has no entry in the legacy mapping table."""

    def __init__(self, key: str):
        super().__init__(f"No icon/condition mapping for key {key!r}")
        self.key = key


class GeometryUnavailableError(WeatherDataError):
    """A grid cell could not be resolved or has no geometry."""


class PlaceNotFoundError(WeatherDataError):
    """The place gazetteer had nothing to offer."""
