"""CLI commands for scheduled job management."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="jobs",
    help="Manage scheduled tickets and reports: list, pause, resume, remove.",
    no_args_is_help=True,
)
console = Console()


class JobKind(str, Enum):
    tickets = "tickets"
    reports = "reports"


KIND_OPTION = typer.Option(JobKind.tickets, "--kind", "-k", help="tickets or reports")


def _get_store(kind: JobKind):
    """Open the job store for ``kind`` (works without a running server)."""
    from opsdispatch.config.settings import get_settings
    from opsdispatch.factory import create_stores

    stores = create_stores(get_settings())
    return stores.tickets if kind is JobKind.tickets else stores.reports


def _fmt(moment: datetime | None) -> str:
    return moment.strftime("%Y-%m-%d %H:%M") if moment else "-"


@app.command("list")
def list_jobs(kind: JobKind = KIND_OPTION):
    """List scheduled jobs of one kind."""
    store = _get_store(kind)
    jobs = store.all()

    if not jobs:
        console.print(f"[dim]No scheduled {kind.value} configured.[/dim]")
        raise typer.Exit()

    table = Table(title=f"Scheduled {kind.value.title()}", show_lines=False)
    table.add_column("ID", style="dim", max_width=12)
    table.add_column("Name", style="bold")
    table.add_column("Owner", style="dim")
    table.add_column("Schedule")
    table.add_column("Status")
    table.add_column("Next (UTC)")
    table.add_column("Last (UTC)", style="dim")
    table.add_column("Attempts", justify="right")

    for job in jobs:
        status = "[green]active[/green]" if job.is_active else "[yellow]paused[/yellow]"
        table.add_row(
            job.id,
            job.name,
            job.owner_id,
            job.cron_expression,
            status,
            _fmt(job.next_execution),
            _fmt(job.last_execution),
            str(job.execution_count),
        )

    console.print(table)
    console.print(f"\n  [dim]{len(jobs)} jobs total.[/dim]\n")


@app.command("remove")
def remove_job(
    job_id: str = typer.Argument(help="Job ID to remove"),
    kind: JobKind = KIND_OPTION,
):
    """Remove a scheduled job permanently."""
    store = _get_store(kind)

    if store.remove(job_id):
        console.print(f"  [green]✓[/green] Removed job [bold]{job_id}[/bold].")
    else:
        console.print(f"[red]Job '{job_id}' not found.[/red]")
        raise typer.Exit(1)


@app.command("pause")
def pause_job(
    job_id: str = typer.Argument(help="Job ID to pause"),
    kind: JobKind = KIND_OPTION,
):
    """Pause a scheduled job without deleting it."""
    store = _get_store(kind)
    job = store.get(job_id)

    if job is None:
        console.print(f"[red]Job '{job_id}' not found.[/red]")
        raise typer.Exit(1)

    if not job.is_active:
        console.print(f"[dim]Job '{job.name}' is already paused.[/dim]")
        raise typer.Exit()

    job.is_active = False
    job.updated_at = datetime.now(UTC)
    store.update(job)
    console.print(f"  [green]✓[/green] Paused [bold]{job.name}[/bold] (ID: {job_id}).")
    console.print(
        f"  [dim]Use 'opsdispatch jobs resume {job_id} --kind {kind.value}' to re-enable.[/dim]"
    )


@app.command("resume")
def resume_job(
    job_id: str = typer.Argument(help="Job ID to resume"),
    kind: JobKind = KIND_OPTION,
):
    """Resume a paused job and schedule its next run from now."""
    from opsdispatch.config.settings import get_settings
    from opsdispatch.errors import ScheduleError
    from opsdispatch.scheduler.cron import next_execution

    store = _get_store(kind)
    job = store.get(job_id)

    if job is None:
        console.print(f"[red]Job '{job_id}' not found.[/red]")
        raise typer.Exit(1)

    if job.is_active and job.next_execution is not None:
        console.print(f"[dim]Job '{job.name}' is already active.[/dim]")
        raise typer.Exit()

    now = datetime.now(UTC)
    try:
        job.next_execution = next_execution(
            job.cron_expression, now, get_settings().scheduler.timezone
        )
    except ScheduleError as exc:
        console.print(f"[red]{exc.message}[/red]")
        console.print("[dim]Use standard 5-field format: minute hour day month weekday[/dim]")
        raise typer.Exit(1)

    job.is_active = True
    job.updated_at = now
    store.update(job)
    console.print(f"  [green]✓[/green] Resumed [bold]{job.name}[/bold] (ID: {job_id}).")
    console.print(f"  [dim]Next run: {_fmt(job.next_execution)} UTC[/dim]")
