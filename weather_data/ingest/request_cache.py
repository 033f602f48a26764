"""Per-request cache of upstream responses and short-lived derived values.

One instance belongs to exactly one unit of work and is discarded with it.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    key: str
    data: Any
    inserted_at: float
    expires_at: float | None = None
    error: Exception | None = None

    @property
    def is_error(self) -> bool:
        return self.error is not None


class RequestCache:
    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> CacheEntry | None:
        """Return the live entry for ``key``, dropping it if it has expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and entry.expires_at <= self._clock():
            logger.debug("Cache entry expired: %s", key)
            del self._entries[key]
            return None
        return entry

    def set(self, key: str, value: Any, expires_at: float | None = None) -> None:
        """Store ``value``. ``expires_at`` is an absolute epoch time in seconds."""
        self._entries[key] = CacheEntry(
            key=key, data=value, inserted_at=self._clock(), expires_at=expires_at
        )

    def set_for(self, key: str, value: Any, ttl_seconds: float) -> None:
        self.set(key, value, expires_at=self._clock() + ttl_seconds)

    def set_error(self, key: str, error: Exception) -> None:
        """Remember a terminal failure for the rest of the unit of work."""
        self._entries[key] = CacheEntry(
            key=key, data=None, inserted_at=self._clock(), error=error
        )

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)
