import click

from rich.panel import Panel
from rich.table import Table

from .inputs import emit, fail, load_portfolio, load_pricing, status_console
from ...analysis.planner import ScenarioPlanner
from ...analysis.pricing_index import PricingIndex
from ...core.exceptions import RiPlannerError
from ...reporting import ComparisonReport, format_currency, format_percent


@click.command()
@click.argument('portfolio_file', type=click.Path(exists=True, dir_okay=False))
@click.argument('pricing_path', type=click.Path(exists=True))
@click.option('--first-full-year', type=int, help='Year whose months are compared')
@click.option('--renewals', is_flag=True, help='Also summarize each reserved renewal scenario')
@click.option('--output', '-o', type=click.Path(), help='Output file for the report')
@click.option('--format', '-f', type=click.Choice(['table', 'json', 'csv', 'html']),
              default='table', help='Output format')
@click.option('--title', help='Custom report title (html only)')
@click.pass_context
def compare(ctx, portfolio_file, pricing_path, first_full_year, renewals, output, format, title):
    """
    Compare on-demand and every reservation scenario over the first full year

    Examples:
        riplanner compare portfolio.json pricing/
        riplanner compare portfolio.json pricing/ -f html -o comparison.html
    """
    settings = ctx.obj['settings']
    console = status_console(ctx, format, output)

    try:
        portfolio = load_portfolio(console, portfolio_file)
        index = PricingIndex(load_pricing(console, pricing_path, portfolio))
        planner = ScenarioPlanner(settings)

        with console.status("[bold green]Comparing scenarios..."):
            result = planner.plan(portfolio, index, first_full_year)
            summaries = planner.renewal_summaries(portfolio, index, result.first_full_year) if renewals else []

        report = ComparisonReport(settings.reporting)
        if format == 'json':
            emit(report.to_json(result), output, console)
        elif format == 'csv':
            emit(report.to_csv(report.comparison_frame(result)), output, console)
        elif format == 'html':
            emit(report.to_html(result, summaries, title), output, console)
        else:
            _display_comparison(console, result, summaries, settings.reporting)
    except RiPlannerError as e:
        fail(ctx, e)
        return

    for error in result.errors:
        console.print(f"[yellow]Excluded:[/yellow] {error}", markup=False)


def _display_comparison(console, result, summaries, reporting):
    """Display scenario totals, cheapest first"""
    symbol, places = reporting.currency_symbol, reporting.decimal_places
    best = result.best

    table = Table(title=f"Scenario Comparison {result.first_full_year}", show_header=True,
                  header_style="bold magenta")
    table.add_column("Scenario", style="cyan")
    table.add_column("Total", justify="right", style="yellow")
    table.add_column("Upfront", justify="right")
    table.add_column("Monthly", justify="right")
    table.add_column("Max Month", justify="right")
    table.add_column("Savings", justify="right", style="green")

    for comparison in sorted(result.comparisons.values(), key=lambda c: c.total_cost):
        name = comparison.scenario.display_name
        if best is not None and comparison.scenario == best.scenario:
            name = f"[bold]{name} *[/bold]"
        table.add_row(
            name,
            format_currency(comparison.total_cost, symbol, places),
            format_currency(comparison.total_upfront, symbol, places),
            format_currency(comparison.total_monthly_payment, symbol, places),
            format_currency(comparison.maximum_monthly_cost, symbol, places),
            format_percent(comparison.savings_percent),
        )
    console.print(table)

    if summaries:
        renewal_table = Table(title="Renewal Outcomes", show_header=True, header_style="bold magenta")
        renewal_table.add_column("Scenario", style="cyan")
        renewal_table.add_column("Reserved", justify="right", style="yellow")
        renewal_table.add_column("On-Demand", justify="right")
        renewal_table.add_column("Savings", justify="right", style="green")
        renewal_table.add_column("Max Monthly", justify="right")
        for summary in summaries:
            renewal_table.add_row(
                summary.scenario.display_name,
                format_currency(summary.ri_cost, symbol, places),
                format_currency(summary.on_demand_cost, symbol, places),
                format_percent(summary.savings_percentage),
                format_currency(summary.max_monthly_ri_spending, symbol, places),
            )
        console.print(renewal_table)

    if best is not None:
        console.print(Panel(
            f"Cheapest: [bold green]{best.scenario.display_name}[/bold green] at "
            f"[bold]{format_currency(best.total_cost, symbol, places)}[/bold]",
            title="Recommendation", border_style="green",
        ))
