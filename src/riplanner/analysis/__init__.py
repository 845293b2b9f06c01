from .aggregation import CostAggregationEngine, GroupingMode, AggregationResult
from .comparison import compare_scenarios, merge_rows
from .horizon import compute_first_full_year
from .planner import ScenarioPlanner, PlanningResult
from .pricing_index import PricingIndex
from .renewal import RenewalProjector, RenewalScenario
from .timeseries import build_series, MonthlyCostEntry

__all__ = [
    'CostAggregationEngine', 'GroupingMode', 'AggregationResult',
    'compare_scenarios', 'merge_rows',
    'compute_first_full_year',
    'ScenarioPlanner', 'PlanningResult',
    'PricingIndex',
    'RenewalProjector', 'RenewalScenario',
    'build_series', 'MonthlyCostEntry',
]
