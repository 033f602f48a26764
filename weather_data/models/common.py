"""Common types and helpers shared across models."""

import uuid
from datetime import UTC, datetime
from typing import Any, TypeAlias

ResponseId: TypeAlias = str
Quantity: TypeAlias = dict[str, Any]


def utc_now() -> datetime:
    return datetime.now(UTC)


def new_response_id() -> ResponseId:
    """Correlation id sent upstream with every call of one unit of work."""
    return uuid.uuid4().hex[:13]


def parse_timestamp(iso_str: str | None) -> datetime | None:
    """Parse an ISO timestamp from the API. Naive values are taken as UTC."""
    if not iso_str:
        return None
    try:
        dt = datetime.fromisoformat(iso_str)
    except (ValueError, TypeError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def quantity_value(quantity: Quantity | None) -> Any:
    """Return the ``value`` of an API quantity object, tolerating absence."""
    if not quantity:
        return None
    return quantity.get("value")
