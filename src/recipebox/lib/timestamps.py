"""Timestamp normalisation.

Stores hand back timestamps in whatever form they keep them: ``datetime``
objects, ISO-8601 strings, or epoch numbers. Everything leaving the service
is a UTC ISO-8601 string with millisecond precision and a ``Z`` suffix.
"""

from datetime import datetime, timezone
from typing import Any

# Epoch numbers above this are taken to be milliseconds.
_EPOCH_MS_THRESHOLD = 20_000_000_000


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_datetime(value: Any) -> datetime | None:
    """Coerce a store-native timestamp to an aware ``datetime``.

    Returns ``None`` for missing or unparsable values.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        seconds = value / 1000 if abs(value) > _EPOCH_MS_THRESHOLD else value
        dt = datetime.fromtimestamp(seconds, tz=timezone.utc)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso(value: Any) -> str:
    """Render ``value`` as canonical ISO-8601; missing values become "now"."""
    dt = to_datetime(value) or utcnow()
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")
