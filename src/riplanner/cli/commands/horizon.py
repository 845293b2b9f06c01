import click
import json
from datetime import date

from rich.panel import Panel

from .inputs import fail, load_portfolio, status_console
from ...analysis.horizon import compute_first_full_year
from ...core.exceptions import RiPlannerError
from ...core.validation import Validator


@click.command()
@click.argument('portfolio_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--today', help='Reference date (YYYY-MM-DD) used when no reservation has an end date')
@click.option('--format', '-f', type=click.Choice(['text', 'json']), default='text', help='Output format')
@click.pass_context
def horizon(ctx, portfolio_file, today, format):
    """
    Compute the first full calendar year of a portfolio

    Examples:
        riplanner horizon portfolio.json
    """
    console = status_console(ctx, 'json' if format == 'json' else 'table', None)
    try:
        portfolio = load_portfolio(console, portfolio_file)
        reference = Validator.parse_date(today) if today else date.today()
        computed = compute_first_full_year(portfolio.rows, today=reference)
    except RiPlannerError as e:
        fail(ctx, e)
        return

    end_dates = [r.end_date for r in portfolio.rows if r.end_date is not None]
    latest = max(end_dates) if end_dates else None

    if format == 'json':
        click.echo(json.dumps({
            "first_full_year": computed,
            "declared_first_full_year": portfolio.first_full_year,
            "latest_end_date": latest.isoformat() if latest else None,
            "reservations": len(portfolio),
        }, indent=2))
        return

    text = f"First full year: [bold green]{computed}[/bold green]\n"
    text += f"Latest end date: [cyan]{latest.isoformat() if latest else 'none'}[/cyan]"
    if portfolio.first_full_year is not None and portfolio.first_full_year != computed:
        text += f"\nPortfolio declares: [yellow]{portfolio.first_full_year}[/yellow]"
    console.print(Panel(text, title="Planning Horizon", border_style="green"))
