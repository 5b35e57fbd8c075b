"""Jobs Commands - Inspect, cancel and requeue job instances"""

import json

import typer
from rich.console import Console
from rich.panel import Panel

from taskq.core.exceptions import NotFoundError, RepositoryError, create_success_response
from taskq.queue.schemas import JobStatus
from taskq.queue.service import QueueService

from ..utils.formatting import (
    create_job_panel,
    create_jobs_table,
    print_error,
    print_error_response,
    print_info,
    print_success,
)
from ..utils.service import run_with_service

console = Console()
app = typer.Typer(name="jobs", help="Job instance administration commands")


@app.command("list")
def list_jobs(
    status: JobStatus | None = typer.Option(
        None, "--status", "-s", help="Filter by status"
    ),
    name: str | None = typer.Option(None, "--name", "-n", help="Filter by job name"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table"),
):
    """📋 List job instances"""

    async def _list(service: QueueService):
        instances = await service.query()
        if status:
            instances = [i for i in instances if i.status == status]
        if name:
            instances = [i for i in instances if i.name == name]
        return instances

    try:
        instances = run_with_service(_list)
    except RepositoryError as e:
        if as_json:
            print_error_response(e.message, "repository_error", e.details)
        else:
            print_error(f"Failed to list jobs: {e.message}")
        raise typer.Exit(1)

    if as_json:
        data = [instance.model_dump(mode="json") for instance in instances]
        typer.echo(json.dumps(create_success_response(data=data), indent=2))
        return

    if not instances:
        console.print(Panel(
            "📭 [yellow]No job instances found![/yellow]\n\n"
            f"Filters applied:\n"
            f"• Status: {status.value if status else 'any'}\n"
            f"• Name: {name or 'any'}",
            title="Empty Results",
            border_style="yellow"
        ))
        return

    console.print(create_jobs_table(instances))
    print_info(f"Showing {len(instances)} job instance(s)")


@app.command("show")
def show_job(job_id: str = typer.Argument(..., help="Job instance ID")):
    """🔍 Show one job instance"""
    try:
        instance = run_with_service(lambda service: service.find(job_id))
    except NotFoundError as e:
        print_error(e.message)
        raise typer.Exit(1)
    except RepositoryError as e:
        print_error(f"Failed to load job: {e.message}")
        raise typer.Exit(1)

    console.print(create_job_panel(instance))


@app.command("cancel")
def cancel_job(job_id: str = typer.Argument(..., help="Job instance ID")):
    """🛑 Cancel a job instance so it never runs again"""

    async def _cancel(service: QueueService):
        instance = await service.find(job_id)
        return await service.cancel(instance)

    try:
        instance = run_with_service(_cancel)
    except NotFoundError as e:
        print_error(e.message)
        raise typer.Exit(1)
    except RepositoryError as e:
        print_error(f"Failed to cancel job: {e.message}")
        raise typer.Exit(1)

    print_success(f"Cancelled job {instance.id} ({instance.name})")


@app.command("requeue")
def requeue_job(job_id: str = typer.Argument(..., help="Job instance ID")):
    """🔁 Reset a job instance so it runs on the next tick"""

    async def _requeue(service: QueueService):
        instance = await service.find(job_id)
        return await service.requeue(instance)

    try:
        instance = run_with_service(_requeue)
    except NotFoundError as e:
        print_error(e.message)
        raise typer.Exit(1)
    except RepositoryError as e:
        print_error(f"Failed to requeue job: {e.message}")
        raise typer.Exit(1)

    print_success(f"Requeued job {instance.id} ({instance.name})")
