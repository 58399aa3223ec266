import click
from rich.table import Table

from safehalt.shutdown import SafeShutdownOrchestrator
from safehalt.shutdown.gate import in_time_window
from safehalt.shutdown.preflight import missing_commands

from .utils import console, get_settings, handle_async_command


@click.command()
@click.pass_context
def check(ctx):
    """Show whether a shutdown would proceed right now. Never acts."""
    settings = get_settings(ctx)
    orchestrator = SafeShutdownOrchestrator(settings)
    console.print(f"[bold blue]Safe Shutdown Check: {settings.NODE_NAME}[/bold blue]")

    rows = _collect(orchestrator)
    table = Table(show_header=True, header_style="bold")
    table.add_column("Check")
    table.add_column("Status")
    table.add_column("Details")
    for name, ok, details in rows:
        table.add_row(name, "[green]OK[/green]" if ok else "[red]BLOCKED[/red]", details)
    console.print(table)


@handle_async_command
async def _collect(orchestrator: SafeShutdownOrchestrator):
    settings = orchestrator.settings
    missing = missing_commands(orchestrator.required_commands)
    window_ok = in_time_window(orchestrator.clock(), settings.START_HOUR)
    tasks_active = await orchestrator.detector.tasks_active()
    load_ok = await orchestrator.gate.load_ok()

    return [
        ("Required commands", not missing, ", ".join(missing) or "all present"),
        ("Time window", window_ok, f"from {settings.START_HOUR}:00"),
        ("Critical tasks", not tasks_active, "active" if tasks_active else "none"),
        ("Load", load_ok, f"{orchestrator.gate.last_load:.2f} (max {settings.MAX_LOAD})"),
    ]
