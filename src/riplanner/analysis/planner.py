"""Scenario planning: project renewals, price them and compare the outcomes"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Any, Iterable, List, Optional, Union

from .aggregation import CostAggregationEngine, GroupingMode
from .comparison import ScenarioComparison, best_scenario, compare_scenarios, merge_rows
from .horizon import compute_first_full_year, months_for_year, year_end
from .pricing_index import PricingIndex
from .renewal import ProjectionResult, RenewalProjector, RenewalScenario
from .timeseries import MonthlyCostEntry, build_portfolio_series
from ..core.base.pricing import PricingRecord, Scenario
from ..core.base.reservation import Portfolio
from ..core.config import Settings, get_settings
from ..core.exceptions import RiPlannerError, ValidationError

logger = logging.getLogger(__name__)

# Renewal terms used to extend coverage for the on-demand baseline
ON_DEMAND_RENEWAL = Scenario.NO_UPFRONT_1Y


@dataclass
class ScenarioPlan:
    """Merged cost series of a portfolio renewed under one scenario"""
    scenario: Scenario
    projection: ProjectionResult
    series: List[MonthlyCostEntry] = field(default_factory=list)
    errors: List[RiPlannerError] = field(default_factory=list)


@dataclass
class PlanningResult:
    first_full_year: int
    plans: Dict[Scenario, ScenarioPlan]
    comparisons: Dict[Scenario, ScenarioComparison]

    @property
    def best(self) -> Optional[ScenarioComparison]:
        return best_scenario(self.comparisons)

    @property
    def errors(self) -> List[RiPlannerError]:
        seen = []
        for plan in self.plans.values():
            seen.extend(plan.projection.errors)
            seen.extend(plan.errors)
        return seen

    def to_dict(self) -> Dict[str, Any]:
        best = self.best
        return {
            "first_full_year": self.first_full_year,
            "best_scenario": best.scenario.value if best else None,
            "comparisons": [c.to_dict() for c in self.comparisons.values()],
            "series": {
                scenario.value: [e.to_dict() for e in plan.series]
                for scenario, plan in self.plans.items()
            },
            "errors": [str(e) for e in self.errors],
        }


@dataclass
class RenewalSummary:
    """First full year outcome of renewing everything under one scenario"""
    scenario: Scenario
    first_full_year: int
    ri_cost: float
    on_demand_cost: float
    max_monthly_ri_spending: float

    @property
    def savings(self) -> float:
        return self.on_demand_cost - self.ri_cost

    @property
    def savings_percentage(self) -> float:
        if self.on_demand_cost <= 0:
            return 0.0
        return self.savings / self.on_demand_cost * 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scenario": self.scenario.value,
            "upfront_payment": self.scenario.upfront_payment.value,
            "duration_months": self.scenario.duration_months,
            "first_full_year": self.first_full_year,
            "ri_cost": self.ri_cost,
            "on_demand_cost": self.on_demand_cost,
            "savings": self.savings,
            "savings_percentage": self.savings_percentage,
            "max_monthly_ri_spending": self.max_monthly_ri_spending,
        }


class ScenarioPlanner:
    """Runs the projection, series and comparison steps for every scenario"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.projector = RenewalProjector(self.settings)
        self.engine = CostAggregationEngine(self.settings)

    def resolve_first_full_year(self, portfolio: Portfolio,
                                first_full_year: Optional[int] = None) -> int:
        if first_full_year is not None:
            return first_full_year
        if portfolio.first_full_year is not None:
            return portfolio.first_full_year
        if self.settings.projection.default_first_full_year is not None:
            return self.settings.projection.default_first_full_year
        return compute_first_full_year(portfolio.rows)

    def plan(self, portfolio: Portfolio,
             pricing: Union[PricingIndex, Iterable[PricingRecord]],
             first_full_year: Optional[int] = None,
             scenarios: Optional[List[Scenario]] = None) -> PlanningResult:
        """Compare every scenario over the first full year.

        Only the projected renewals are priced: reservations already bought
        cost the same whatever is chosen next. Each reserved scenario renews
        the portfolio on its terms and prices the renewals under it; the
        on-demand baseline prices 1 year renewals at on-demand rates.
        """
        if portfolio is None or pricing is None:
            raise ValidationError("Portfolio and pricing are required")

        index = pricing if isinstance(pricing, PricingIndex) else PricingIndex(pricing)
        year = self.resolve_first_full_year(portfolio, first_full_year)
        anchored = Portfolio(rows=list(portfolio.rows), first_full_year=year, source=portfolio.source)
        horizon = year_end(year)
        lookup = index.record_lookup()

        plans: Dict[Scenario, ScenarioPlan] = {}
        for scenario in scenarios or list(Scenario):
            renewal = scenario if scenario.is_reserved else ON_DEMAND_RENEWAL
            projection = self.projector.project(anchored, renewal)
            built = build_portfolio_series(
                projection.portfolio.projected_rows, lookup, scenario, horizon,
            )

            plans[scenario] = ScenarioPlan(
                scenario=scenario,
                projection=projection,
                series=merge_rows(built.series),
                errors=built.errors,
            )
            logger.debug(
                f"Scenario {scenario.value}: {len(built.series)} series, {len(built.errors)} errors",
                extra={'scenario': scenario.value},
            )

        comparisons = compare_scenarios(
            {scenario: plan.series for scenario, plan in plans.items()},
            first_full_year=year,
        )
        logger.info(f"Compared {len(comparisons)} scenarios for {year}")
        return PlanningResult(first_full_year=year, plans=plans, comparisons=comparisons)

    def renewal_summaries(self, portfolio: Portfolio,
                          pricing: Union[PricingIndex, Iterable[PricingRecord]],
                          first_full_year: Optional[int] = None) -> List[RenewalSummary]:
        """Aggregate the renewed portfolio per reserved scenario and report the
        first full year's reserved spend against on-demand"""
        index = pricing if isinstance(pricing, PricingIndex) else PricingIndex(pricing)
        year = self.resolve_first_full_year(portfolio, first_full_year)
        anchored = Portfolio(rows=list(portfolio.rows), first_full_year=year, source=portfolio.source)
        months = months_for_year(year)

        summaries = []
        for scenario in Scenario.reserved():
            projection = self.projector.project(anchored, RenewalScenario.from_scenario(scenario))
            result = self.engine.aggregate(
                projection.portfolio.rows, index, GroupingMode.RI_TYPE, horizon_end=year_end(year),
            )
            totals = [result.month_total(m) for m in months if m in result.months]
            summaries.append(RenewalSummary(
                scenario=scenario,
                first_full_year=year,
                ri_cost=sum(t.ri_cost for t in totals),
                on_demand_cost=sum(t.on_demand_cost for t in totals),
                max_monthly_ri_spending=max((t.ri_cost for t in totals), default=0.0),
            ))
        return summaries
