"""
Calendar grid arithmetic for the month and week views.

Weeks start on Sunday. The month view is always 6 full weeks (42 cells)
so the grid never changes height while paging between months; cells
outside the displayed month hold real dates from the adjacent months.
"""

import calendar
from datetime import date, timedelta

GRID_CELLS = 42
DAYS_PER_WEEK = 7


def weekday_index(day: date) -> int:
    """Sunday = 0 ... Saturday = 6."""
    return (day.weekday() + 1) % DAYS_PER_WEEK


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_bounds(ref: date) -> tuple[date, date]:
    """First and last day of ref's month."""
    first = ref.replace(day=1)
    return first, first.replace(day=days_in_month(ref.year, ref.month))


def month_grid(ref: date) -> list[date]:
    """
    The 42 dates shown for ref's month.

    Leading cells walk back from the 1st by its weekday index, trailing
    cells pad forward from the day after the month's last day.
    """
    first, last = month_bounds(ref)
    leading = weekday_index(first)
    month_length = last.day

    cells = [first - timedelta(days=offset) for offset in range(leading, 0, -1)]
    cells.extend(first + timedelta(days=offset) for offset in range(month_length))

    trailing = GRID_CELLS - (leading + month_length)
    cells.extend(last + timedelta(days=offset) for offset in range(1, trailing + 1))
    return cells


def week_start(ref: date) -> date:
    """The Sunday on or before ref."""
    return ref - timedelta(days=weekday_index(ref))


def week_grid(ref: date) -> list[date]:
    """Sunday..Saturday of the week containing ref."""
    start = week_start(ref)
    return [start + timedelta(days=offset) for offset in range(DAYS_PER_WEEK)]


def week_of_month(ref: date) -> int:
    """1-based row of ref in its month grid (the "Nth week" header)."""
    first = ref.replace(day=1)
    return (weekday_index(first) + ref.day - 1) // DAYS_PER_WEEK + 1


def shift_month(ref: date, months: int) -> date:
    """
    Move ref by whole months, clamping the day to the target month's length.

    Jan 31 + 1 month is Feb 28/29, never March.
    """
    index = ref.year * 12 + (ref.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    return date(year, month, min(ref.day, days_in_month(year, month)))


def shift_week(ref: date, weeks: int) -> date:
    return ref + timedelta(weeks=weeks)


def is_same_month(a: date, b: date) -> bool:
    return a.year == b.year and a.month == b.month
