"""
Firestore helpers: query filters and ingestion-boundary normalisation of
loosely-typed records (timestamps, locations).
"""

from datetime import datetime, timezone
from typing import Any, Optional
import logging

from fieldwatch.models.location import GeoPoint, NULL_ISLAND

logger = logging.getLogger(__name__)


def where_filter(query, field_path: str, op_string: str, value):
    """
    Helper function for Firestore queries.

    Usage:
        query = where_filter(collection, "owner_id", "==", uid)
    """
    return query.where(field_path, op_string, value)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse the timestamp shapes a record can carry into an aware UTC datetime.

    Handles datetimes (including Firestore's DatetimeWithNanoseconds), ISO
    strings, protobuf-style Timestamps and {seconds, nanoseconds} dicts.
    Returns None when the value is missing or unreadable (e.g. a write whose
    server timestamp is still pending).
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    if isinstance(value, dict) and "seconds" in value:
        try:
            seconds = float(value["seconds"]) + float(value.get("nanoseconds", 0)) / 1e9
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (TypeError, ValueError):
            return None
    if hasattr(value, "ToDatetime"):
        dt = value.ToDatetime()
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    return None


def _coordinate(value: Any) -> float:
    try:
        coordinate = float(value)
    except (TypeError, ValueError):
        return 0.0
    # NaN
    if coordinate != coordinate:
        return 0.0
    return coordinate


def parse_location(value: Any) -> GeoPoint:
    """
    Normalise a raw location into a GeoPoint.

    Each coordinate defaults to 0 on its own when missing or unreadable, so
    every stored item can still be rendered. Out-of-range positions become
    {0, 0}.
    """
    if value is None:
        return NULL_ISLAND
    if isinstance(value, GeoPoint):
        return value
    latitude = longitude = None
    if isinstance(value, dict):
        latitude = value.get("latitude")
        longitude = value.get("longitude")
    elif hasattr(value, "latitude") and hasattr(value, "longitude"):
        # firestore.GeoPoint
        latitude = value.latitude
        longitude = value.longitude
    try:
        return GeoPoint(latitude=_coordinate(latitude), longitude=_coordinate(longitude))
    except ValueError:
        logger.debug(f"Unreadable location {value!r}, substituting (0, 0)")
        return NULL_ISLAND
