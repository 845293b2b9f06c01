"""Planning horizon helpers"""

from datetime import date
from typing import Iterable, List, Optional

from .proration import month_key
from ..core.base.reservation import ReservationRow


def compute_first_full_year(rows: Iterable[ReservationRow], today: Optional[date] = None) -> int:
    """First calendar year no current reservation covers only partially.

    The latest end date decides: ending on Jan 1 keeps that year, any other
    day pushes the horizon to the following year. Without end dates the
    horizon is next year.
    """
    today = today or date.today()
    end_dates = [r.end_date for r in rows if r.end_date is not None]
    if not end_dates:
        return today.year + 1

    latest = max(end_dates)
    if latest.month == 1 and latest.day == 1:
        return latest.year
    return latest.year + 1


def months_for_year(year: int) -> List[str]:
    return [month_key(year, m) for m in range(1, 13)]


def year_end(year: int) -> date:
    return date(year, 12, 31)
