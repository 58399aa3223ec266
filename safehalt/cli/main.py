import logging
import sys

import click

from safehalt import __version__
from safehalt.shutdown import SafeShutdownOrchestrator
from safehalt.utils.logging import setup_logging

from .check import check
from .config import config_cli
from .utils import console, get_settings, handle_async_command


@click.group(invoke_without_command=True)
@click.option('--verbose', '-v', is_flag=True, help='Enables verbose mode.')
@click.option('--quiet', '-q', is_flag=True, help='Enables quiet mode.')
@click.version_option(__version__, prog_name='safehalt')
@click.pass_context
def app(ctx, verbose, quiet):
    """
    Safe shutdown for a Proxmox node.

    Without a subcommand this runs the shutdown sequence.
    """
    ctx.ensure_object(dict)
    ctx.obj['VERBOSE'] = verbose
    ctx.obj['QUIET'] = quiet

    if verbose:
        setup_logging(force=True, level=logging.DEBUG)
    elif quiet:
        setup_logging(force=True, level=logging.ERROR)
    else:
        setup_logging()

    if ctx.invoked_subcommand is None:
        ctx.invoke(run)


@app.command()
@click.option('--dry-run', is_flag=True, help='Log guest, pool and power commands instead of running them.')
@click.pass_context
def run(ctx, dry_run=False):
    """Run the safe shutdown sequence once."""
    overrides = {'DRY_RUN': True} if dry_run else {}
    settings = get_settings(ctx, **overrides)
    result = _execute(SafeShutdownOrchestrator(settings))
    if not ctx.obj.get('QUIET'):
        console.print(f"[bold]Outcome[/bold]: {result.outcome.value}")
    sys.exit(result.exit_code)


@handle_async_command
async def _execute(orchestrator):
    return await orchestrator.run()


app.add_command(check)
app.add_command(config_cli, name='config')

if __name__ == '__main__':
    app()
