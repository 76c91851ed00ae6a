"""Timestamp parsing and rendering for both wire representations."""

import math
from datetime import datetime, timezone
from typing import Any, Union

from ..errors import InvalidTimestamp

MICROSECOND_DIGITS = 6


def to_utc(dt: datetime) -> datetime:
    """Return ``dt`` as an aware UTC datetime; naive values are taken as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def truncate(dt: datetime, precision: int) -> datetime:
    """Drop sub-second digits beyond ``precision`` (0-6)."""
    if precision >= MICROSECOND_DIGITS:
        return dt
    step = 10 ** (MICROSECOND_DIGITS - max(precision, 0))
    return dt.replace(microsecond=dt.microsecond - dt.microsecond % step)


def normalize(dt: datetime, precision: int = MICROSECOND_DIGITS) -> datetime:
    return truncate(to_utc(dt), precision)


def format_rfc3339(dt: datetime, precision: int = MICROSECOND_DIGITS) -> str:
    """
    Render ``dt`` as an RFC 3339 UTC string with a ``Z`` suffix.

    Args:
        dt: Datetime to render
        precision: Number of sub-second digits to keep

    Returns:
        String like ``2024-01-15T10:00:00.123456Z``
    """
    dt = normalize(dt, precision)
    text = dt.strftime("%Y-%m-%dT%H:%M:%S")
    if precision > 0:
        text += "." + f"{dt.microsecond:06d}"[:precision]
    return text + "Z"


def format_epoch(dt: datetime, precision: int = MICROSECOND_DIGITS) -> float:
    """Render ``dt`` as Unix epoch seconds rounded to ``precision`` digits."""
    return round(normalize(dt, precision).timestamp(), precision)


def _from_epoch(value: float, field: str) -> datetime:
    if not math.isfinite(value):
        raise InvalidTimestamp(field, f"not a finite number: {value!r}")
    try:
        return datetime.fromtimestamp(value, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise InvalidTimestamp(field, str(e)) from None


def parse_timestamp(value: Any, field: str = "timestamp") -> datetime:
    """
    Parse either wire representation into an aware UTC datetime.

    Accepts RFC 3339 strings (naive strings are taken as UTC), numeric
    strings and epoch numbers, regardless of protocol version.

    Args:
        value: Raw wire value
        field: Field path reported on failure

    Returns:
        Aware UTC datetime

    Raises:
        InvalidTimestamp: If the value cannot be read unambiguously
    """
    if isinstance(value, datetime):
        return to_utc(value)

    if isinstance(value, bool):
        raise InvalidTimestamp(field, "boolean is not a timestamp")

    if isinstance(value, (int, float)):
        return _from_epoch(float(value), field)

    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise InvalidTimestamp(field, "empty string")

        try:
            number = float(text)
        except ValueError:
            pass
        else:
            return _from_epoch(number, field)

        if text[-1] in "zZ":
            text = text[:-1] + "+00:00"
        try:
            return to_utc(datetime.fromisoformat(text))
        except ValueError:
            raise InvalidTimestamp(field, f"unparseable timestamp {value!r}") from None

    raise InvalidTimestamp(field, f"unsupported type {type(value).__name__}")


def coerce_datetime(value: Union[datetime, int, float, None]) -> datetime:
    """Turn a datetime, epoch number or ``None`` (now) into an aware UTC datetime."""
    if value is None:
        return datetime.now(timezone.utc)
    return parse_timestamp(value)
