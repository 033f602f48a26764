"""Interfaces for the collaborators the service leans on, plus stock implementations."""

import logging
import time
from collections.abc import Sequence
from typing import Any, Protocol

import httpx

from weather_data.config.schema import MetricsConfig
from weather_data.models.weather import Place, Point

logger = logging.getLogger(__name__)


class Translator(Protocol):
    def translate(self, text: str) -> str: ...


class IdentityTranslator:
    def translate(self, text: str) -> str:
        return text


class MetricsSink(Protocol):
    def send_metric(self, name: str, value: float, tags: dict[str, Any]) -> None: ...


class PlaceLookup(Protocol):
    def nearest_to_point(self, point: Point) -> Place: ...

    def nearest_to_polygon(self, polygon: Sequence[Point]) -> Place: ...


class LoggingMetricsSink:
    """Writes metrics to the log. Used when no metrics endpoint is configured."""

    def send_metric(self, name: str, value: float, tags: dict[str, Any]) -> None:
        logger.info("metric %s=%s %s", name, value, tags)


class HttpMetricsSink:
    """Posts gauge samples to a New Relic style metric API endpoint."""

    def __init__(self, endpoint: str, api_key: str = "", timeout: float = 5.0):
        self.endpoint = endpoint
        self.api_key = api_key
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: MetricsConfig) -> "HttpMetricsSink":
        return cls(config.endpoint, config.api_key, config.timeout)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Api-Key"] = self.api_key
        return headers

    def send_metric(self, name: str, value: float, tags: dict[str, Any]) -> None:
        body = [{
            "metrics": [{
                "name": name,
                "type": "gauge",
                "value": value,
                "timestamp": int(time.time()),
                "attributes": tags,
            }]
        }]
        resp = httpx.post(self.endpoint, json=body, headers=self._headers(), timeout=self.timeout)
        resp.raise_for_status()


def metrics_sink_from_config(config: MetricsConfig) -> MetricsSink:
    if config.enabled and config.endpoint:
        return HttpMetricsSink.from_config(config)
    return LoggingMetricsSink()
