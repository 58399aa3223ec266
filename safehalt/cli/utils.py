import asyncio
import functools
import sys

import click
from pydantic import ValidationError
from rich.console import Console

from safehalt.config import Settings, load_settings

console = Console()


def handle_async_command(async_func):
    """Decorator to run async CLI commands; Ctrl-C exits with status 1."""
    @functools.wraps(async_func)
    def wrapper(*args, **kwargs):
        try:
            return asyncio.run(async_func(*args, **kwargs))
        except KeyboardInterrupt:
            console.print("\n[yellow]Operation cancelled by user[/yellow]")
            sys.exit(1)
    return wrapper


def get_settings(ctx: click.Context, **overrides) -> Settings:
    """Load settings once per invocation, exiting 1 on invalid configuration."""
    ctx.ensure_object(dict)
    if "SETTINGS" not in ctx.obj or overrides:
        try:
            ctx.obj["SETTINGS"] = load_settings(**overrides)
        except ValidationError as e:
            console.print("[red]Configuration Error[/red]")
            for error in e.errors():
                field = ".".join(str(part) for part in error["loc"])
                prefix = f"SAFEHALT_{field}: " if field else ""
                console.print(f"  {prefix}{error['msg']}")
            sys.exit(1)
    return ctx.obj["SETTINGS"]
