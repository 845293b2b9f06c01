import logging
from dataclasses import dataclass
from typing import Dict, Any, List, Mapping, Optional, Sequence, Tuple

from .timeseries import MonthlyCostEntry, ScenarioCost
from ..core.base.pricing import Scenario

logger = logging.getLogger(__name__)


def merge_rows(series_list: Sequence[List[MonthlyCostEntry]]) -> List[MonthlyCostEntry]:
    """Merge per-reservation series into one series.

    Months are unioned and sorted; each scenario slot is the sum of that
    slot across the series that define it, and stays empty when none does.
    """
    if not series_list:
        return []
    if len(series_list) == 1:
        return series_list[0]

    months: Dict[Tuple[int, int], Dict[Scenario, ScenarioCost]] = {}
    for series in series_list:
        for entry in series:
            slots = months.setdefault(entry.period, {})
            for scenario in entry.defined():
                cost = entry.cost(scenario)
                slots[scenario] = slots[scenario] + cost if scenario in slots else cost

    return [
        MonthlyCostEntry(year=year, month=month, costs=months[(year, month)])
        for year, month in sorted(months)
    ]


@dataclass
class ScenarioComparison:
    """Totals of one scenario over the comparison window"""
    scenario: Scenario
    total_cost: float
    total_upfront: float
    total_monthly_payment: float
    maximum_monthly_cost: float
    months: int
    savings_percent: Optional[float] = None

    @property
    def average_monthly_cost(self) -> float:
        return self.total_cost / self.months if self.months else 0.0

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "scenario": self.scenario.value,
            "name": self.scenario.display_name,
            "total_cost": self.total_cost,
            "total_upfront": self.total_upfront,
            "total_monthly_payment": self.total_monthly_payment,
            "maximum_monthly_cost": self.maximum_monthly_cost,
            "months": self.months,
        }
        if self.savings_percent is not None:
            data["savings_percent"] = self.savings_percent
        return data


def summarize_series(scenario: Scenario, series: List[MonthlyCostEntry],
                     first_full_year: Optional[int] = None) -> ScenarioComparison:
    """Totals of the ``scenario`` slot; months where that slot is empty are skipped"""
    costs = [
        e.cost(scenario) for e in series
        if (first_full_year is None or e.year == first_full_year) and e.cost(scenario) is not None
    ]
    total_upfront = sum(c.upfront_cost for c in costs)
    total_monthly = sum(c.monthly_cost for c in costs)
    return ScenarioComparison(
        scenario=scenario,
        total_cost=total_monthly + total_upfront,
        total_upfront=total_upfront,
        total_monthly_payment=total_monthly,
        maximum_monthly_cost=max((c.total_cost for c in costs), default=0.0),
        months=len(costs),
    )


def compare_scenarios(series_by_scenario: Mapping[Scenario, List[MonthlyCostEntry]],
                      first_full_year: Optional[int] = None,
                      baseline: Scenario = Scenario.ON_DEMAND) -> Dict[Scenario, ScenarioComparison]:
    """Compare merged scenario series against a baseline.

    Only months of ``first_full_year`` count when it is given, and each
    series is read through its own scenario slot only. The baseline carries
    no savings figure, and none is computed when the baseline costs nothing.
    """
    results = {
        Scenario(scenario): summarize_series(Scenario(scenario), series, first_full_year)
        for scenario, series in series_by_scenario.items()
    }

    base = results.get(baseline)
    if base is None:
        logger.warning(f"Baseline scenario {baseline.value} missing, savings not computed")
        return results
    if base.total_cost == 0:
        logger.debug("Baseline total is zero, savings not computed")
        return results

    for scenario, comparison in results.items():
        if scenario == baseline:
            continue
        comparison.savings_percent = (base.total_cost - comparison.total_cost) / base.total_cost * 100
    return results


def best_scenario(comparisons: Mapping[Scenario, ScenarioComparison]) -> Optional[ScenarioComparison]:
    """Cheapest scenario that produced any cost"""
    candidates = [c for c in comparisons.values() if c.months > 0]
    if not candidates:
        return None
    return min(candidates, key=lambda c: c.total_cost)
