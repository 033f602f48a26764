"""api.weather.gov client with per-request caching and 5xx backoff."""

import logging
import threading
import time
from typing import Any

import httpx

from weather_data.config.defaults import (
    API_BASE_URL,
    DEFAULT_USER_AGENT,
    MAX_FETCH_ATTEMPTS,
    RESPONSE_ID_HEADER,
    RETRY_BASE_DELAY_MS,
    RETRY_MULTIPLIER,
)
from weather_data.config.schema import ApiConfig
from weather_data.ingest.request_cache import RequestCache
from weather_data.models.errors import (
    FetchCancelledError,
    UpstreamFatalError,
    UpstreamTransientError,
)

logger = logging.getLogger(__name__)


def backoff_schedule(
    max_attempts: int = MAX_FETCH_ATTEMPTS,
    base_delay_ms: float = RETRY_BASE_DELAY_MS,
    multiplier: float = RETRY_MULTIPLIER,
) -> list[float]:
    """Delays in milliseconds slept between consecutive attempts.

    There is one fewer delay than attempts: 75, 123.75, 204.19, 336.91 for
    the defaults.
    """
    delays = []
    delay = base_delay_ms
    for _ in range(max_attempts - 1):
        delays.append(delay)
        delay *= multiplier
    return delays


class FetchClient:
    """Fetches JSON from api.weather.gov for one unit of work.

    Every call is tagged with the unit's response id so upstream logs can
    group them. Results, and terminal failures, are cached by absolute URL
    in the unit's ``RequestCache``.
    """

    def __init__(
        self,
        cache: RequestCache,
        response_id: str,
        base_url: str = API_BASE_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 30.0,
        max_attempts: int = MAX_FETCH_ATTEMPTS,
        retry_base_delay_ms: float = RETRY_BASE_DELAY_MS,
        retry_multiplier: float = RETRY_MULTIPLIER,
        http_client: httpx.Client | None = None,
        cancel_event: threading.Event | None = None,
    ):
        self.cache = cache
        self.response_id = response_id
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.retry_base_delay_ms = retry_base_delay_ms
        self.retry_multiplier = retry_multiplier
        self.cancel_event = cancel_event
        self._owns_http = http_client is None
        self._http = http_client or httpx.Client(follow_redirects=True)

    @classmethod
    def from_config(
        cls,
        api: ApiConfig,
        cache: RequestCache,
        response_id: str,
        http_client: httpx.Client | None = None,
        cancel_event: threading.Event | None = None,
    ) -> "FetchClient":
        return cls(
            cache,
            response_id,
            base_url=api.base_url,
            user_agent=api.user_agent,
            timeout=api.timeout,
            max_attempts=api.max_attempts,
            retry_base_delay_ms=api.retry_base_delay_ms,
            retry_multiplier=api.retry_multiplier,
            http_client=http_client,
            cancel_event=cancel_event,
        )

    def resolve_url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        if not path.startswith("/"):
            path = "/" + path
        return f"{self.base_url}{path}"

    def _headers(self) -> dict[str, str]:
        return {
            RESPONSE_ID_HEADER: self.response_id,
            "User-Agent": self.user_agent,
            "Accept": "application/geo+json",
        }

    def fetch(self, path: str) -> Any:
        """GET ``path`` and return the decoded JSON body.

        5xx responses are retried with exponential backoff; anything else
        fails at once. Raises UpstreamTransientError after the last attempt
        and UpstreamFatalError for non-retryable failures.
        """
        url = self.resolve_url(path)

        hit = self.cache.get(url)
        if hit is not None:
            if hit.is_error:
                logger.debug("Cached failure for %s", url)
                raise hit.error
            return hit.data

        delays = backoff_schedule(
            self.max_attempts, self.retry_base_delay_ms, self.retry_multiplier
        )
        for attempt in range(1, self.max_attempts + 1):
            self._check_cancelled(url)
            try:
                resp = self._http.get(url, headers=self._headers(), timeout=self.timeout)
            except httpx.RequestError as e:
                logger.error("Request to %s failed: %s", url, e)
                error = UpstreamFatalError(f"Request failed: {e}", url)
                self.cache.set_error(url, error)
                raise error from e

            if resp.status_code >= 500:
                logger.info(
                    "got %d error on attempt %d for: %s", resp.status_code, attempt, url
                )
                if attempt < self.max_attempts:
                    delay = delays[attempt - 1]
                    logger.warning(
                        "Retrying %s in %.1fms (attempt %d/%d)",
                        url, delay, attempt + 1, self.max_attempts,
                    )
                    self._sleep(delay, url)
                    continue
                logger.error("giving up on: %s", url)
                error = UpstreamTransientError(
                    f"HTTP {resp.status_code} after {attempt} attempts",
                    url, resp.status_code, attempts=attempt,
                )
                self.cache.set_error(url, error)
                raise error

            if resp.status_code >= 400:
                logger.error("Upstream %d for %s", resp.status_code, url)
                error = UpstreamFatalError(f"HTTP {resp.status_code}", url, resp.status_code)
                self.cache.set_error(url, error)
                raise error

            try:
                data = resp.json()
            except ValueError as e:
                logger.error("Undecodable payload from %s", url)
                error = UpstreamFatalError("Malformed JSON payload", url, resp.status_code)
                self.cache.set_error(url, error)
                raise error from e

            self.cache.set(url, data)
            return data

        # max_attempts >= 1 is enforced by config, so the loop always returns or raises.
        raise AssertionError("unreachable")

    def _check_cancelled(self, url: str) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise FetchCancelledError("Unit of work cancelled", url)

    def _sleep(self, delay_ms: float, url: str) -> None:
        if self.cancel_event is None:
            time.sleep(delay_ms / 1000)
        elif self.cancel_event.wait(delay_ms / 1000):
            raise FetchCancelledError("Unit of work cancelled during backoff", url)

    def close(self) -> None:
        if self._owns_http:
            self._http.close()
