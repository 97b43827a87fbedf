"""
Timestamp parsing shared by every record coming from the backend.

Backend rows carry timestamps as ISO-8601 strings ("2025-02-15",
"2025-02-15T10:30:00", "2025-02-15T10:30:00Z", "...+01:00"). A value that
cannot be parsed raises InvalidDate; callers that process batches catch it
and skip the record.
"""

from datetime import date, datetime, time, tzinfo
from typing import Any, Optional


class InvalidDate(ValueError):
    """A transaction, event or subscription timestamp could not be parsed."""

    def __init__(self, value: Any, reason: str = "unparseable timestamp"):
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid date {value!r}: {reason}")


def parse_timestamp(value: Any, tz: Optional[tzinfo] = None) -> datetime:
    """
    Parse a backend timestamp into a datetime.

    Args:
        value: datetime, date or ISO-8601 string
        tz: Zone applied to naive results. Aware inputs keep their own zone.

    Raises:
        InvalidDate: If the value is missing or not a valid timestamp
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise InvalidDate(value, "empty string")
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise InvalidDate(value)
    else:
        raise InvalidDate(value, f"unsupported type {type(value).__name__}")

    if tz is not None and parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def align(ts: datetime, reference: datetime) -> datetime:
    """
    Make `ts` comparable with `reference`.

    A naive value is interpreted in the zone of the aware one. An aware
    value compared with a naive reference is converted to local time.
    """
    ts_aware = ts.tzinfo is not None and ts.utcoffset() is not None
    ref_aware = reference.tzinfo is not None and reference.utcoffset() is not None

    if ts_aware == ref_aware:
        return ts
    if ref_aware:
        return ts.replace(tzinfo=reference.tzinfo)
    return ts.astimezone().replace(tzinfo=None)
