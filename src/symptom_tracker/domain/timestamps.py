"""Normalization of the timestamp shapes records arrive in."""

import logging
from collections.abc import Mapping
from datetime import UTC, date, datetime, timedelta

from symptom_tracker.domain.errors import InvalidTimestampFormat

logger = logging.getLogger(__name__)

NANOS_PER_MICRO = 1000


def normalize_timestamp(raw: object) -> datetime:
    """Convert a raw timestamp into an aware datetime.

    Accepts native datetimes (or dates), ISO-8601 strings, objects exposing a
    ``to_datetime()`` conversion, and ``{"seconds", "nanoseconds"}`` mappings,
    tried in that order. Naive values are taken to be UTC.
    """
    if isinstance(raw, datetime):
        return _ensure_aware(raw)
    if isinstance(raw, date):
        return datetime(raw.year, raw.month, raw.day, tzinfo=UTC)
    if isinstance(raw, str):
        try:
            return _ensure_aware(datetime.fromisoformat(raw.strip()))
        except ValueError as exc:
            raise InvalidTimestampFormat(f"Invalid timestamp string: {raw!r}") from exc
    to_datetime = getattr(raw, "to_datetime", None)
    if callable(to_datetime):
        converted = to_datetime()
        if isinstance(converted, datetime):
            return _ensure_aware(converted)
    if isinstance(raw, Mapping) and "seconds" in raw and "nanoseconds" in raw:
        seconds = raw["seconds"]
        nanoseconds = raw["nanoseconds"]
        if _is_int(seconds) and _is_int(nanoseconds):
            return datetime.fromtimestamp(seconds, tz=UTC) + timedelta(
                microseconds=nanoseconds // NANOS_PER_MICRO
            )
    raise InvalidTimestampFormat(f"Invalid timestamp format: {raw!r}")


def try_normalize_timestamp(raw: object) -> datetime | None:
    """Normalize a timestamp, logging and returning None on failure."""
    try:
        return normalize_timestamp(raw)
    except InvalidTimestampFormat:
        logger.warning("Invalid timestamp format", extra={"raw": repr(raw)})
        return None


def to_serialized_timestamp(value: datetime) -> dict[str, int]:
    """Return the seconds/nanoseconds mapping used for cached records."""
    aware = _ensure_aware(value)
    seconds = int(aware.replace(microsecond=0).timestamp())
    return {"seconds": seconds, "nanoseconds": aware.microsecond * NANOS_PER_MICRO}


def _ensure_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
