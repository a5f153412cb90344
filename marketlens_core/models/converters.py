"""Timestamp conversions shared by the models and the resampler."""

from datetime import datetime, timezone

# Epoch values above this are treated as milliseconds (year 5138 in seconds).
_EPOCH_MS_THRESHOLD = 1e11


def timestamp_to_datetime(ts: float) -> datetime:
    """Convert Unix timestamp to UTC datetime."""
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def parse_timestamp(value) -> datetime:
    """Parse a row timestamp into an aware UTC datetime.

    Accepts datetimes (naive values are taken as UTC), epoch seconds,
    epoch milliseconds and ISO-8601 strings.

    Raises:
        ValueError: If the value cannot be interpreted as a timestamp.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    if isinstance(value, bool):
        raise ValueError(f"Unparseable timestamp: {value!r}")

    if isinstance(value, (int, float)):
        ts = float(value)
        if ts != ts or ts < 0:
            raise ValueError(f"Unparseable timestamp: {value!r}")
        if ts > _EPOCH_MS_THRESHOLD:
            ts /= 1000
        try:
            return timestamp_to_datetime(ts)
        except (OverflowError, OSError) as e:
            raise ValueError(f"Unparseable timestamp: {value!r}") from e

    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return parse_timestamp(datetime.fromisoformat(text))
        except ValueError as e:
            raise ValueError(f"Unparseable timestamp: {value!r}") from e

    raise ValueError(f"Unparseable timestamp: {value!r}")
