"""
Tabular and HTML reports for aggregation and scenario planning results.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
from jinja2 import Template

from ..analysis.aggregation import AggregationResult
from ..analysis.planner import PlanningResult, RenewalSummary
from ..analysis.timeseries import MonthlyCostEntry
from ..core.config import ReportingConfig
from ..core.exceptions import ReportGenerationError

logger = logging.getLogger(__name__)


COMPARISON_TEMPLATE = Template("""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>{{ title }}</title>
    <style>
        body { font-family: Arial, sans-serif; margin: 20px; color: #333; }
        .header { background: #2c3e50; color: white; padding: 20px; }
        .metric-card {
            display: inline-block;
            background: #f8f9fa;
            padding: 20px;
            margin: 10px;
            border-radius: 8px;
            min-width: 200px;
        }
        .metric-value { font-size: 28px; font-weight: bold; }
        .metric-label { color: #6c757d; margin-top: 5px; }
        table { width: 100%; border-collapse: collapse; margin-top: 1rem; }
        th { background: #f8f9fa; padding: 0.75rem; text-align: left; }
        td { padding: 0.75rem; border-bottom: 1px solid #e9ecef; }
        .best { background: #d4edda; }
        .errors { background: #fff3cd; padding: 15px; border-left: 4px solid #ffc107; }
    </style>
</head>
<body>
    <div class="header">
        <h1>{{ title }}</h1>
        <p>First full year: {{ first_full_year }} | Generated {{ generated_at }}</p>
    </div>

    {% if best %}
    <div class="metric-card">
        <div class="metric-value">{{ best.name }}</div>
        <div class="metric-label">Cheapest Scenario</div>
    </div>
    <div class="metric-card">
        <div class="metric-value">{{ currency }}{{ "{:,.0f}".format(best.total_cost) }}</div>
        <div class="metric-label">Total Cost</div>
    </div>
    {% endif %}

    <h2>Scenario Comparison</h2>
    {{ comparison_table | safe }}

    {% if renewals %}
    <h2>Renewal Outcomes</h2>
    {{ renewal_table | safe }}
    {% endif %}

    <h2>Monthly Cost</h2>
    {{ monthly_table | safe }}

    {% if errors %}
    <h2>Problems</h2>
    <div class="errors">
        <ul>
        {% for error in errors %}
            <li>{{ error }}</li>
        {% endfor %}
        </ul>
    </div>
    {% endif %}
</body>
</html>
""")


class ComparisonReport:
    """Renders planner and aggregation results as DataFrames, CSV, JSON or HTML"""

    def __init__(self, config: Optional[ReportingConfig] = None):
        self.config = config or ReportingConfig()

    def comparison_frame(self, result: PlanningResult) -> pd.DataFrame:
        """One row per scenario, cheapest first"""
        rows = []
        for comparison in result.comparisons.values():
            rows.append({
                "scenario": comparison.scenario.value,
                "name": comparison.scenario.display_name,
                "total_cost": comparison.total_cost,
                "total_upfront": comparison.total_upfront,
                "total_monthly_payment": comparison.total_monthly_payment,
                "maximum_monthly_cost": comparison.maximum_monthly_cost,
                "average_monthly_cost": comparison.average_monthly_cost,
                "savings_percent": comparison.savings_percent,
            })
        df = pd.DataFrame(rows, columns=[
            "scenario", "name", "total_cost", "total_upfront", "total_monthly_payment",
            "maximum_monthly_cost", "average_monthly_cost", "savings_percent",
        ])
        return df.sort_values("total_cost").reset_index(drop=True)

    def series_frame(self, result: PlanningResult) -> pd.DataFrame:
        """Month by scenario matrix of total cost"""
        data: Dict[str, Dict[str, float]] = {}
        for scenario, plan in result.plans.items():
            data[scenario.value] = {
                entry.month_key: entry.total(scenario) for entry in plan.series
            }
        df = pd.DataFrame(data)
        if df.empty:
            return df
        return df.sort_index().fillna(0.0)

    def entries_frame(self, entries: List[MonthlyCostEntry]) -> pd.DataFrame:
        """Long-form frame of a single series, one row per defined slot"""
        rows = []
        for entry in entries:
            for scenario in entry.defined():
                cost = entry.cost(scenario)
                rows.append({
                    "month": entry.month_key,
                    "scenario": scenario.value,
                    "upfront_cost": cost.upfront_cost,
                    "monthly_cost": cost.monthly_cost,
                    "total_cost": cost.total_cost,
                })
        return pd.DataFrame(rows, columns=["month", "scenario", "upfront_cost", "monthly_cost", "total_cost"])

    def aggregation_frame(self, result: AggregationResult) -> pd.DataFrame:
        rows = [
            agg.to_dict()
            for month in result.month_keys()
            for _, agg in sorted(result.months[month].items())
        ]
        return pd.DataFrame(rows, columns=[
            "month_key", "group_key", "ri_cost", "renewal_cost", "upfront_cost",
            "recurring_cost", "on_demand_cost", "savings_amount", "savings_percentage",
        ])

    def yearly_frame(self, result: AggregationResult) -> pd.DataFrame:
        return pd.DataFrame(
            [y.to_dict() for y in result.by_year()],
            columns=["year", "ri_cost", "on_demand_cost", "savings_amount",
                     "savings_percentage", "months", "is_partial"],
        )

    def renewal_frame(self, summaries: List[RenewalSummary]) -> pd.DataFrame:
        return pd.DataFrame(
            [s.to_dict() for s in summaries],
            columns=["scenario", "upfront_payment", "duration_months", "first_full_year",
                     "ri_cost", "on_demand_cost", "savings", "savings_percentage",
                     "max_monthly_ri_spending"],
        )

    def to_csv(self, df: pd.DataFrame, output: Optional[Path] = None, index: bool = False) -> str:
        """CSV text of a frame, also written to ``output`` when given"""
        content = df.to_csv(index=index, float_format=f"%.{self.config.decimal_places}f")
        if output:
            self._write(Path(output), content)
        return content

    def to_json(self, result: PlanningResult, output: Optional[Path] = None) -> str:
        content = json.dumps(result.to_dict(), indent=2, default=str)
        if output:
            self._write(Path(output), content)
        return content

    def to_html(self, result: PlanningResult,
                renewals: Optional[List[RenewalSummary]] = None,
                title: Optional[str] = None,
                output: Optional[Path] = None) -> str:
        """Render a standalone HTML comparison report"""
        try:
            best = result.best
            float_format = f"{{:,.{self.config.decimal_places}f}}".format
            content = COMPARISON_TEMPLATE.render(
                title=title or "Reserved Instance Scenario Comparison",
                first_full_year=result.first_full_year,
                generated_at=datetime.now().strftime('%B %d, %Y at %I:%M %p'),
                currency=self.config.currency_symbol,
                best=best.to_dict() if best else None,
                comparison_table=self.comparison_frame(result).to_html(
                    index=False, float_format=float_format, na_rep="-", border=0),
                renewals=renewals,
                renewal_table=self.renewal_frame(renewals or []).to_html(
                    index=False, float_format=float_format, border=0),
                monthly_table=self.series_frame(result).to_html(
                    float_format=float_format, border=0),
                errors=[str(e) for e in result.errors],
            )
        except (KeyError, ValueError, TypeError) as e:
            raise ReportGenerationError(f"Failed to render HTML report: {e}")

        if output:
            self._write(Path(output), content)
        return content

    def default_path(self, extension: str) -> Path:
        name = f"riplanner_report_{datetime.now().strftime('%Y%m%d_%H%M%S')}.{extension}"
        return Path(self.config.output_dir) / name

    def _write(self, path: Path, content: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w', encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            raise ReportGenerationError(f"Cannot write report to {path}: {e}")
        logger.info(f"Report written to {path}")


def format_currency(amount: Optional[float], symbol: str = "$", decimals: int = 2) -> str:
    if amount is None:
        return "-"
    return f"{symbol}{amount:,.{decimals}f}"


def format_percent(value: Optional[float]) -> str:
    return "-" if value is None else f"{value:.1f}%"
