import click

from .utils import console, get_settings


@click.group(name='config')
def config_cli():
    """Configuration commands."""
    pass


@config_cli.command()
@click.pass_context
def show(ctx):
    """Shows the effective configuration."""
    settings = get_settings(ctx)
    console.print("[bold blue]Effective Configuration[/bold blue]")
    for key, value in settings.model_dump().items():
        console.print(f"[cyan]SAFEHALT_{key}[/cyan]: {value}")
