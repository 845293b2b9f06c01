"""Calendar month arithmetic and per-month cost proration"""

import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterator, Optional, Tuple


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_start(year: int, month: int) -> date:
    return date(year, month, 1)


def month_end(year: int, month: int) -> date:
    return date(year, month, days_in_month(year, month))


def month_key(year: int, month: int) -> str:
    """``YYYY-MM`` label for a calendar month"""
    return f"{year:04d}-{month:02d}"


def parse_month_key(key: str) -> Tuple[int, int]:
    year, month = key.split("-")
    return int(year), int(month)


def add_months(d: date, months: int) -> date:
    """Shift a date by whole months.

    A day that does not exist in the target month is clamped to that month's
    last day (Jan 31 + 1 month -> Feb 28/29).
    """
    index = d.year * 12 + (d.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    return date(year, month, min(d.day, days_in_month(year, month)))


def term_end(start: date, months: int) -> date:
    """Last covered day of a term of ``months`` starting on ``start``"""
    return add_months(start, months) - timedelta(days=1)


def iter_months(start: date, end: date, limit: Optional[int] = None) -> Iterator[Tuple[int, int]]:
    """Yield (year, month) from the month of ``start`` through the month of ``end``"""
    year, month = start.year, start.month
    produced = 0
    while (year, month) <= (end.year, end.month):
        if limit is not None and produced >= limit:
            return
        yield year, month
        produced += 1
        month += 1
        if month > 12:
            year, month = year + 1, 1


def active_days_in_month(start: date, end: Optional[date], year: int, month: int) -> int:
    """Inclusive overlap in days between [start, end] and the given month.

    An open-ended range (``end`` is None) covers through the end of every
    month on or after its start.
    """
    first = month_start(year, month)
    last = month_end(year, month)
    overlap_start = max(start, first)
    overlap_end = last if end is None else min(end, last)
    if overlap_end < overlap_start:
        return 0
    return (overlap_end - overlap_start).days + 1


def is_start_month(start: date, year: int, month: int) -> bool:
    return start.year == year and start.month == month


@dataclass(frozen=True)
class MonthlyProration:
    """Cost attributable to one reservation in one calendar month"""
    active_days: int
    recurring_cost: float
    upfront_cost: float

    @property
    def total_cost(self) -> float:
        return self.recurring_cost + self.upfront_cost


def prorate_month(start: date, end: Optional[date], year: int, month: int,
                  daily_rate: Optional[float], upfront_cost: Optional[float],
                  count: int) -> MonthlyProration:
    """Recurring cost for the active days of a month plus the full upfront
    payment in the month containing ``start``. Upfront is never amortized here.
    """
    days = active_days_in_month(start, end, year, month)
    recurring = (daily_rate or 0.0) * days * count
    upfront = (upfront_cost or 0.0) * count if is_start_month(start, year, month) else 0.0
    return MonthlyProration(active_days=days, recurring_cost=recurring, upfront_cost=upfront)
