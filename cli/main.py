"""taskq CLI - Main Entry Point"""

import asyncio
import json

import typer
from rich.console import Console
from rich.panel import Panel

from taskq.config.settings import QueueBackend, get_settings
from taskq.core.exceptions import RepositoryError, create_success_response
from taskq.main import serve

# Import command modules
from .commands import jobs
from .utils.formatting import (
    create_stats_panel,
    print_error,
    print_error_response,
    print_info,
    print_warning,
)
from .utils.service import run_with_service

console = Console()

# Create main Typer app
app = typer.Typer(
    name="taskq",
    help="⏱ taskq - Durable job queue and retry scheduler",
    rich_markup_mode="rich",
)

# Add command subapps
app.add_typer(jobs.app, name="jobs")


@app.command()
def status(
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a panel"),
):
    """📊 Show queue statistics"""
    try:
        stats = run_with_service(lambda service: service.stats())
    except RepositoryError as e:
        if as_json:
            print_error_response(e.message, "repository_error", e.details)
        else:
            print_error(f"Failed to read queue: {e.message}")
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps(create_success_response(data=stats.model_dump()), indent=2))
        return

    console.print(create_stats_panel(stats))


@app.command()
def worker():
    """🚀 Run the scheduler until interrupted"""
    settings = get_settings()
    print_info(
        f"Starting worker (backend: {settings.queue_backend.value}, "
        f"tick: {settings.queue_tick_interval_ms}ms). Press Ctrl+C to stop…"
    )
    if settings.queue_backend == QueueBackend.MEMORY:
        print_warning("In-memory backend: job instances are lost when the worker exits")
    asyncio.run(serve(settings))


@app.command()
def version():
    """📎 Show version information"""
    settings = get_settings()
    console.print(Panel(
        f"⏱ [bold cyan]{settings.app_name}[/bold cyan]\n\n"
        f"• Version: [green]{settings.version}[/green]\n"
        f"• Environment: [yellow]{settings.environment}[/yellow]\n"
        f"• Backend: [blue]{settings.queue_backend.value}[/blue]",
        title="Version Info",
        border_style="cyan"
    ))


if __name__ == "__main__":
    app()
