"""Calendar windows and timestamp parsing."""

from planboard.periods.parsing import InvalidDate, align, parse_timestamp
from planboard.periods.windows import (
    TimeWindow,
    day_window,
    events_in_window,
    month_window,
    quarter_window,
    rolling_window,
    shift_months,
    week_window,
    year_window,
)

__all__ = [
    "InvalidDate",
    "TimeWindow",
    "align",
    "day_window",
    "events_in_window",
    "month_window",
    "parse_timestamp",
    "quarter_window",
    "rolling_window",
    "shift_months",
    "week_window",
    "year_window",
]
