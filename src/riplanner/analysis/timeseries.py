import logging
from dataclasses import dataclass, field
from datetime import date
from types import MappingProxyType
from typing import Callable, Dict, Any, Iterable, List, Mapping, Optional, Tuple

from .proration import active_days_in_month, is_start_month, iter_months, month_key, term_end
from ..core.base.pricing import PricingRecord, Scenario
from ..core.base.reservation import ReservationRow
from ..core.exceptions import MissingRateError, RiPlannerError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScenarioCost:
    """Cash paid in one month under one scenario"""
    upfront_cost: float = 0.0
    monthly_cost: float = 0.0

    @property
    def total_cost(self) -> float:
        return self.upfront_cost + self.monthly_cost

    def __add__(self, other: "ScenarioCost") -> "ScenarioCost":
        return ScenarioCost(
            upfront_cost=self.upfront_cost + other.upfront_cost,
            monthly_cost=self.monthly_cost + other.monthly_cost,
        )

    def to_dict(self) -> Dict[str, float]:
        return {"upfrontCost": self.upfront_cost, "monthlyCost": self.monthly_cost}


@dataclass(frozen=True)
class MonthlyCostEntry:
    """One month with an explicit, possibly empty, slot for every scenario"""
    year: int
    month: int
    costs: Mapping[Scenario, Optional[ScenarioCost]] = field(default_factory=dict)

    def __post_init__(self):
        slots = {scenario: self.costs.get(scenario) for scenario in Scenario}
        object.__setattr__(self, "costs", MappingProxyType(slots))

    @property
    def month_key(self) -> str:
        return month_key(self.year, self.month)

    @property
    def period(self) -> Tuple[int, int]:
        return self.year, self.month

    def cost(self, scenario: Scenario) -> Optional[ScenarioCost]:
        return self.costs[scenario]

    def defined(self) -> List[Scenario]:
        return [s for s in Scenario if self.costs[s] is not None]

    def total(self, scenario: Scenario) -> float:
        """Cash paid this month under ``scenario``; 0 when its slot is empty"""
        cost = self.costs[scenario]
        return cost.total_cost if cost is not None else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "year": self.year,
            "month": self.month,
            "cost": {
                scenario.value: (cost.to_dict() if cost is not None else None)
                for scenario, cost in self.costs.items()
            },
        }


def row_scenario(row: ReservationRow) -> Scenario:
    """Scenario a reservation is billed under given its own terms"""
    return Scenario.from_terms(row.upfront_payment, row.duration_months)


def _last_day(row: ReservationRow, horizon_end: Optional[date]) -> date:
    if row.end_date is not None:
        last = row.end_date
    elif horizon_end is not None:
        last = horizon_end
    else:
        last = term_end(row.start_date, row.duration_months)
    if horizon_end is not None and (last.year, last.month) > (horizon_end.year, horizon_end.month):
        last = horizon_end
    return last


def build_series(row: ReservationRow,
                 pricing: Optional[PricingRecord],
                 scenario: Scenario,
                 horizon_end: Optional[date] = None) -> List[MonthlyCostEntry]:
    """Month by month cost of one reservation under one scenario.

    Runs from the start month through the month the reservation ends (or the
    horizon month for open-ended rows), never past ``horizon_end``'s month.
    Only the ``scenario`` slot of each entry is filled.

    Raises:
        MissingRateError: the catalog does not price this scenario
    """
    if row is None:
        raise ValidationError("Reservation row is required")
    scenario = Scenario(scenario)
    key = row.criteria().to_key()

    if pricing is None:
        raise MissingRateError(key, scenario.value, "no pricing record")
    if scenario.is_reserved and pricing.reserved_rate(scenario) is None:
        raise MissingRateError(key, scenario.value, "savings option not offered")

    daily_rate = pricing.daily_rate(scenario)
    if daily_rate is None:
        raise MissingRateError(key, scenario.value, "daily rate missing")
    upfront = pricing.upfront_cost(scenario) or 0.0

    series = []
    for year, month in iter_months(row.start_date, _last_day(row, horizon_end)):
        days = active_days_in_month(row.start_date, row.end_date, year, month)
        cost = ScenarioCost(
            upfront_cost=upfront * row.count if is_start_month(row.start_date, year, month) else 0.0,
            monthly_cost=daily_rate * days * row.count,
        )
        series.append(MonthlyCostEntry(year=year, month=month, costs={scenario: cost}))
    return series


@dataclass
class PortfolioSeries:
    """Series built for many reservations, with the rows that could not be priced"""
    series: List[List[MonthlyCostEntry]] = field(default_factory=list)
    errors: List[RiPlannerError] = field(default_factory=list)


def build_portfolio_series(rows: Iterable[ReservationRow],
                           pricing_lookup: Callable[[ReservationRow], Optional[PricingRecord]],
                           scenario: Optional[Scenario] = None,
                           horizon_end: Optional[date] = None) -> PortfolioSeries:
    """Build a series per row.

    With ``scenario`` set every row is priced under it; otherwise each row is
    priced under the terms it was bought (or projected) with. Rows that cannot
    be priced are skipped and their errors collected.
    """
    result = PortfolioSeries()
    for row in rows:
        try:
            active = scenario if scenario is not None else row_scenario(row)
            result.series.append(build_series(row, pricing_lookup(row), active, horizon_end))
        except (MissingRateError, ValidationError) as e:
            logger.warning(f"Skipping reservation {row.id}: {e}", extra={'reservation_id': row.id})
            result.errors.append(e)
    return result
