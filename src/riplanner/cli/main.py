import click
import logging
from rich.console import Console
from rich.logging import RichHandler

from .. import __version__
from ..core.config import get_settings, reload_settings
from ..core.exceptions import ConfigurationError
from ..core.logging import setup_logging
from .commands import horizon, aggregate, project, compare

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name='riplanner')
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.option('--config', type=click.Path(exists=True, dir_okay=False), help='Path to configuration file')
@click.pass_context
def cli(ctx, debug, config):
    """
    riplanner - Reserved instance cost planning

    Aggregate reservation spend by month, project renewals and compare
    payment scenarios against on-demand pricing.
    """
    ctx.ensure_object(dict)

    try:
        settings = reload_settings(config) if config else get_settings()
    except (ConfigurationError, ValueError) as e:
        raise click.ClickException(f"Cannot load configuration: {e}")

    if debug:
        settings.debug = True

    kwargs = settings.logging_kwargs()
    handler = None
    if settings.logging.console:
        handler = RichHandler(console=console, rich_tracebacks=True, show_path=settings.debug)
        handler.setFormatter(logging.Formatter("%(message)s"))
    setup_logging(handler=handler, **kwargs)

    ctx.obj['settings'] = settings
    ctx.obj['console'] = console


# Register commands
cli.add_command(horizon.horizon)
cli.add_command(aggregate.aggregate)
cli.add_command(project.project)
cli.add_command(compare.compare)


@cli.command()
@click.pass_context
def version(ctx):
    """Show version information"""
    console.print(f"[bold blue]riplanner[/bold blue] version [green]{__version__}[/green]")
    console.print("Reserved instance cost planning tool")


if __name__ == '__main__':
    cli()
