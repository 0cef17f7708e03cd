"""Date manipulation utilities"""

import calendar
from datetime import date


def add_months(from_date: date, months: int, day: int | None = None) -> date:
    """
    Move a date by whole months, optionally pinning the day of month.

    The day is clamped to the last day of the target month, so pinning day 31
    in February yields Feb 28 (or 29).
    """
    month_index = from_date.month - 1 + months
    year = from_date.year + month_index // 12
    month = month_index % 12 + 1
    wanted_day = day if day is not None else from_date.day
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(wanted_day, last_day))
