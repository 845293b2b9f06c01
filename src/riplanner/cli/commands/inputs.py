"""Shared input loading and error reporting for CLI commands"""

from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console
from rich.markup import escape

from ...collectors import PortfolioCollector, PricingCatalogCollector
from ...core.base.pricing import PricingRecord
from ...core.base.reservation import Portfolio
from ...core.exceptions import RiPlannerError


def load_portfolio(console, path: str, first_full_year: Optional[int] = None) -> Portfolio:
    portfolio = PortfolioCollector().collect(Path(path))
    if first_full_year is not None:
        portfolio.first_full_year = first_full_year
    console.print(f"✓ Loaded {len(portfolio)} reservations from [green]{escape(path)}[/green]", highlight=False)
    return portfolio


def load_pricing(console, path: str, portfolio: Optional[Portfolio] = None) -> List[PricingRecord]:
    """Load a catalog file or directory; with a portfolio only the files it needs are read"""
    collector = PricingCatalogCollector()
    if portfolio is not None and Path(path).is_dir():
        records = collector.collect_for(portfolio, Path(path))
        for missing in collector.missing_files:
            console.print(f"[yellow]Missing pricing file:[/yellow] {escape(missing)}")
    else:
        records = collector.collect(Path(path))

    for error in collector.errors:
        console.print(f"[yellow]Skipped {escape(error['source'])}:[/yellow] {escape(error['error'])}")
    console.print(f"✓ Loaded {len(records)} pricing records from [green]{escape(path)}[/green]", highlight=False)
    return records


def fail(ctx, error: RiPlannerError) -> None:
    """Print a domain error and exit non-zero"""
    ctx.obj['console'].print(f"[bold red]Error:[/bold red] {escape(str(error))}")
    ctx.exit(1)


def status_console(ctx, format: str, output: Optional[str]):
    """Console for progress messages; machine-readable output on stdout stays clean"""
    console = ctx.obj['console']
    if format in ('json', 'csv', 'html') and not output:
        return Console(stderr=True)
    return console


def emit(text: str, output: Optional[str], console) -> None:
    if output:
        Path(output).parent.mkdir(parents=True, exist_ok=True)
        with open(output, 'w', encoding='utf-8') as f:
            f.write(text)
        console.print(f"\n✓ Results saved to [green]{escape(output)}[/green]")
    else:
        click.echo(text)
