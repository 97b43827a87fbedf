"""
Calendar Window Helper

Month, week, day, quarter and year boundaries used by both the calendar
and the finance views. Every window is inclusive on both ends: it starts at
00:00:00.000000 on its first day and ends one microsecond before the next
window starts. Results keep the tz-awareness of the input, so a caller
working in local time gets local boundaries.
"""

import calendar as _calendar
from datetime import date, datetime, time, timedelta
from typing import Any, Iterable, Optional

from pydantic import BaseModel, ConfigDict, model_validator

from planboard.config import get_settings
from planboard.periods.parsing import InvalidDate, align, parse_timestamp


_ONE_MICROSECOND = timedelta(microseconds=1)

WEEKDAY_NAMES = (
    "monday", "tuesday", "wednesday", "thursday",
    "friday", "saturday", "sunday",
)


class TimeWindow(BaseModel):
    """An inclusive [start, end] calendar window."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @model_validator(mode='after')
    def validate_bounds(self) -> 'TimeWindow':
        if align(self.end, self.start) < self.start:
            raise ValueError("Window end cannot be before start")
        return self

    def contains(self, ts: datetime) -> bool:
        """Check whether a timestamp falls inside the window (inclusive)."""
        ts = align(ts, self.start)
        return self.start <= ts <= self.end

    @property
    def days(self) -> int:
        """Number of calendar days touched by the window."""
        return (self.end.date() - self.start.date()).days + 1


def _as_datetime(day: Any) -> datetime:
    if isinstance(day, (datetime, date, str)):
        return parse_timestamp(day)
    raise TypeError(f"Expected a date or datetime, got {type(day).__name__}")


def _midnight(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.min, tzinfo=value.tzinfo)


def _resolve_week_start(week_starts_on: Optional[int]) -> int:
    if week_starts_on is None:
        return get_settings().calendar.week_starts_on
    if isinstance(week_starts_on, str):
        try:
            return WEEKDAY_NAMES.index(week_starts_on.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown weekday: {week_starts_on}")
    if not 0 <= week_starts_on <= 6:
        raise ValueError("week_starts_on must be between 0 (Monday) and 6 (Sunday)")
    return week_starts_on


def shift_months(day: Any, months: int) -> datetime:
    """
    Move a date by a number of months, clamping to the end of the month.

    shift_months(2025-03-31, -1) -> 2025-02-28
    """
    value = _as_datetime(day)
    index = value.year * 12 + (value.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    last_day = _calendar.monthrange(year, month)[1]
    return value.replace(year=year, month=month, day=min(value.day, last_day))


def day_window(day: Any) -> TimeWindow:
    """Window covering a single calendar day."""
    start = _midnight(_as_datetime(day))
    return TimeWindow(start=start, end=start + timedelta(days=1) - _ONE_MICROSECOND)


def month_window(day: Any) -> TimeWindow:
    """
    Window covering the calendar month containing `day`.

    month_window(2025-02-15) -> 2025-02-01 00:00 .. 2025-02-28 23:59:59.999999
    """
    value = _as_datetime(day)
    start = _midnight(value.replace(day=1))
    next_start = _midnight(shift_months(start, 1))
    return TimeWindow(start=start, end=next_start - _ONE_MICROSECOND)


def week_window(day: Any, week_starts_on: Optional[int] = None) -> TimeWindow:
    """
    Window covering the week containing `day`.

    Args:
        day: Any date inside the week
        week_starts_on: 0 (Monday) to 6 (Sunday), or a weekday name.
                        Defaults to the configured calendar setting.
    """
    first_weekday = _resolve_week_start(week_starts_on)
    value = _as_datetime(day)
    offset = (value.weekday() - first_weekday) % 7
    start = _midnight(value) - timedelta(days=offset)
    return TimeWindow(start=start, end=start + timedelta(days=7) - _ONE_MICROSECOND)


def year_window(day: Any) -> TimeWindow:
    """Window covering the calendar year containing `day`."""
    value = _as_datetime(day)
    start = _midnight(value.replace(month=1, day=1))
    end = _midnight(value.replace(year=value.year + 1, month=1, day=1))
    return TimeWindow(start=start, end=end - _ONE_MICROSECOND)


def quarter_window(day: Any, offset: int = 0) -> TimeWindow:
    """
    Three whole months ending with the month `offset` months before `day`.

    quarter_window(2025-05-10) -> 2025-03-01 .. 2025-05-31
    """
    if offset < 0:
        raise ValueError("offset cannot be negative")
    last_month = shift_months(day, -offset)
    first_month = shift_months(day, -(offset + 2))
    return TimeWindow(
        start=month_window(first_month).start,
        end=month_window(last_month).end,
    )


def rolling_window(now: datetime, days: int = 7) -> TimeWindow:
    """The `days` days leading up to `now` (not aligned to midnight)."""
    if days <= 0:
        raise ValueError("days must be positive")
    return TimeWindow(start=now - timedelta(days=days), end=now)


def events_in_window(events: Iterable[Any], window: TimeWindow) -> list:
    """
    Events whose start time falls inside the window.

    Accepts Event models or raw rows with a "start_time" key; rows with an
    unparseable start time are left out.
    """
    selected = []
    for event in events:
        raw = event.get("start_time") if isinstance(event, dict) else getattr(event, "start_time", None)
        try:
            start = parse_timestamp(raw)
        except InvalidDate:
            continue
        if window.contains(start):
            selected.append(event)
    return selected
