import click
import json

from rich.table import Table

from .inputs import emit, fail, load_portfolio, status_console
from ...analysis.renewal import RenewalProjector
from ...core.base.pricing import Scenario
from ...core.exceptions import RiPlannerError


@click.command()
@click.argument('portfolio_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--scenario', '-s', type=click.Choice([s.value for s in Scenario.reserved()]),
              help='Renew on these terms instead of each reservation\'s own')
@click.option('--first-full-year', type=int, help='Planning horizon year')
@click.option('--strict', is_flag=True, help='Fail on the first reservation that cannot be renewed')
@click.option('--output', '-o', type=click.Path(), help='Output file for the projected portfolio')
@click.option('--format', '-f', type=click.Choice(['table', 'json']), default='table', help='Output format')
@click.pass_context
def project(ctx, portfolio_file, scenario, first_full_year, strict, output, format):
    """
    Project back-to-back renewals past the first full year

    Examples:
        riplanner project portfolio.json
        riplanner project portfolio.json -s fullUpfront_3y -f json -o projected.json
    """
    settings = ctx.obj['settings']
    console = status_console(ctx, format, output)

    try:
        portfolio = load_portfolio(console, portfolio_file, first_full_year)
        projector = RenewalProjector(settings)
        if strict:
            result = projector.project_strict(portfolio, scenario)
        else:
            result = projector.project(portfolio, scenario)
    except RiPlannerError as e:
        fail(ctx, e)
        return

    if format == 'json':
        data = result.portfolio.to_dict()
        data['errors'] = [str(e) for e in result.errors]
        emit(json.dumps(data, indent=2), output, console)
    else:
        _display_chains(console, result)

    for error in result.errors:
        console.print(f"[yellow]Not renewed:[/yellow] {error}", markup=False)


def _display_chains(console, result):
    table = Table(title=f"Renewals through {result.first_full_year}", show_header=True,
                  header_style="bold magenta")
    table.add_column("Reservation", style="cyan")
    table.add_column("Type")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Count", justify="right")
    table.add_column("Terms")

    for chain in result.chains().values():
        for row in chain:
            table.add_row(
                row.id,
                row.type.value,
                row.start_date.isoformat(),
                row.end_date.isoformat() if row.end_date else "open",
                str(row.count),
                f"{row.duration_months}mo {row.upfront_payment.value}",
            )
    console.print(table)
    console.print(
        f"\n✓ {len(result.portfolio.projected_rows)} renewals projected, "
        f"{len(result.errors)} reservations not renewed"
    )
