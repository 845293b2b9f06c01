import click
import json

from rich.panel import Panel
from rich.table import Table

from .inputs import emit, fail, load_portfolio, load_pricing, status_console
from ...analysis.aggregation import CostAggregationEngine, GroupingMode
from ...analysis.horizon import year_end
from ...analysis.pricing_index import PricingIndex
from ...analysis.renewal import RenewalProjector
from ...core.base.pricing import Scenario
from ...core.exceptions import RiPlannerError
from ...reporting import ComparisonReport, format_currency


@click.command()
@click.argument('portfolio_file', type=click.Path(exists=True, dir_okay=False))
@click.argument('pricing_path', type=click.Path(exists=True))
@click.option('--grouping', '-g', type=click.Choice([m.value for m in GroupingMode]),
              default=GroupingMode.RI_TYPE.value, help='How costs are grouped within a month')
@click.option('--renew', type=click.Choice([s.value for s in Scenario.reserved()]),
              help='Project renewals under this scenario before aggregating')
@click.option('--first-full-year', type=int, help='Planning horizon year')
@click.option('--output', '-o', type=click.Path(), help='Output file for results')
@click.option('--format', '-f', type=click.Choice(['table', 'json', 'csv']),
              default='table', help='Output format')
@click.pass_context
def aggregate(ctx, portfolio_file, pricing_path, grouping, renew, first_full_year, output, format):
    """
    Aggregate reservation cost by month against on-demand pricing

    Examples:
        riplanner aggregate portfolio.json pricing/
        riplanner aggregate portfolio.json pricing/ -g cost-type --renew partialUpfront_1y
    """
    settings = ctx.obj['settings']
    console = status_console(ctx, format, output)

    try:
        portfolio = load_portfolio(console, portfolio_file, first_full_year)
        index = PricingIndex(load_pricing(console, pricing_path, portfolio))

        rows = portfolio.rows
        horizon_end = None
        if renew:
            projection = RenewalProjector(settings).project(portfolio, renew)
            rows = projection.portfolio.rows
            horizon_end = year_end(projection.first_full_year)
            for error in projection.errors:
                console.print(f"[yellow]Renewal skipped:[/yellow] {error}", markup=False)

        result = CostAggregationEngine(settings).aggregate(rows, index, grouping, horizon_end=horizon_end)
    except RiPlannerError as e:
        fail(ctx, e)
        return

    report = ComparisonReport(settings.reporting)
    if format == 'json':
        emit(json.dumps(result.to_dict(), indent=2), output, console)
    elif format == 'csv':
        emit(report.to_csv(report.aggregation_frame(result)), output, console)
    else:
        _display_aggregation(console, result, settings.reporting)

    message = result.diagnostics.error_message()
    if message:
        console.print(f"\n[yellow]Data problems:[/yellow] {message}", highlight=False)


def _display_aggregation(console, result, reporting):
    """Display yearly savings and the monthly totals"""
    symbol, places = reporting.currency_symbol, reporting.decimal_places

    table = Table(title="Monthly Cost", show_header=True, header_style="bold magenta")
    table.add_column("Month", style="cyan")
    table.add_column("Groups", justify="right")
    table.add_column("Reserved", justify="right", style="yellow")
    table.add_column("On-Demand", justify="right")
    table.add_column("Savings", justify="right", style="green")

    for month in result.month_keys():
        total = result.month_total(month)
        table.add_row(
            month,
            str(len(result.months[month])),
            format_currency(total.ri_cost, symbol, places),
            format_currency(total.on_demand_cost, symbol, places),
            format_currency(total.savings_amount, symbol, places),
        )
    console.print(table)

    lines = []
    for year in result.by_year():
        partial = " (partial)" if year.is_partial else ""
        lines.append(
            f"{year.year}{partial}: reserved [yellow]{format_currency(year.ri_cost, symbol, places)}[/yellow]"
            f" vs on-demand {format_currency(year.on_demand_cost, symbol, places)}"
            f" saves [green]{year.savings_percentage:.1f}%[/green]"
        )
    totals = result.totals()
    lines.append(
        f"\nTotal savings: [bold green]{format_currency(totals['total_savings'], symbol, places)}"
        f" ({totals['savings_percentage']:.1f}%)[/bold green]"
    )
    console.print(Panel("\n".join(lines), title="Savings by Year", border_style="green"))
