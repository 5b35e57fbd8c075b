"""Rich Formatting Utilities for Queue Output"""

import json
from datetime import datetime
from typing import Any

import typer
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from taskq.core.exceptions import create_error_response
from taskq.queue.schemas import JobInstance, JobStatsResponse, JobStatus

console = Console()

STATUS_STYLES = {
    JobStatus.PENDING: "yellow",
    JobStatus.SUCCEEDED: "green",
    JobStatus.FAILED: "red",
    JobStatus.CANCELLED: "dim",
}


def print_success(message: str):
    """Print success message with green styling"""
    console.print(f"[green]✓ {escape(message)}[/green]")


def print_error(message: str):
    """Print error message with red styling"""
    console.print(f"[red]✗ {escape(message)}[/red]")


def print_warning(message: str):
    """Print warning message with yellow styling"""
    console.print(f"[yellow]⚠ {escape(message)}[/yellow]")


def print_info(message: str):
    """Print info message with blue styling"""
    console.print(f"[blue]ℹ {escape(message)}[/blue]")


def print_error_response(message: str, code: str, details: dict[str, Any] | None = None):
    """Print a JSON error envelope for --json output"""
    typer.echo(json.dumps(create_error_response(message, details, code), indent=2))


def _format_time(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else "—"


def _styled_status(status: JobStatus) -> str:
    style = STATUS_STYLES[status]
    return f"[{style}]{status.value}[/{style}]"


def create_jobs_table(instances: list[JobInstance]) -> Table:
    """Create a formatted table for job instances"""
    table = Table(title="Job Instances", box=box.ROUNDED)

    table.add_column("ID", justify="left", style="cyan", no_wrap=True)
    table.add_column("Name", justify="left", style="magenta")
    table.add_column("Status", justify="center")
    table.add_column("Tries", justify="center")
    table.add_column("Next Run", justify="center", style="yellow")
    table.add_column("Last Error", justify="left", style="white")

    for instance in instances:
        error = instance.last_error or "—"
        if len(error) > 40:
            error = error[:40] + "..."
        table.add_row(
            instance.id[:8],  # Short ID
            escape(instance.name),
            _styled_status(instance.status),
            f"{instance.tries}/{instance.max_tries}",
            _format_time(instance.next_run_at),
            escape(error),
        )

    return table


def create_job_panel(instance: JobInstance) -> Panel:
    """Create formatted panel for one job instance"""
    content = f"""
• ID: [cyan]{instance.id}[/cyan]
• Name: [magenta]{escape(instance.name)}[/magenta]
• Status: {_styled_status(instance.status)}
• Tries: {instance.tries}/{instance.max_tries}
• Next Run: [yellow]{_format_time(instance.next_run_at)}[/yellow]
• Last Error: {escape(instance.last_error or "—")}
• Last Error At: {_format_time(instance.last_error_at)}

[bold]Input[/bold]
{escape(instance.input)}
"""

    return Panel(content, title="Job Instance", border_style="blue")


def create_stats_panel(stats: JobStatsResponse) -> Panel:
    """Create formatted panel for queue statistics"""
    by_name = "\n".join(
        f"  - {escape(name)}: {count}" for name, count in sorted(stats.by_name.items())
    )
    content = f"""
📊 [bold blue]Queue Statistics[/bold blue]

• Total Jobs: [blue]{stats.total_jobs}[/blue]
• Pending: [yellow]{stats.by_status.get("pending", 0)}[/yellow] ([cyan]{stats.due_now}[/cyan] due now)
• Succeeded: [green]{stats.by_status.get("succeeded", 0)}[/green]
• Failed: [red]{stats.by_status.get("failed", 0)}[/red]
• Cancelled: [dim]{stats.by_status.get("cancelled", 0)}[/dim]

[bold]By Job[/bold]
{by_name or "  —"}
"""

    return Panel(content, title="Queue Overview", border_style="green")
