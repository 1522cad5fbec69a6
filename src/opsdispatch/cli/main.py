"""opsdispatch CLI: the main entry point."""

from __future__ import annotations

import asyncio
import json
import logging
from enum import Enum

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from opsdispatch import __version__
from opsdispatch.cli.jobs_commands import app as jobs_app
from opsdispatch.cli.webhooks_commands import app as webhooks_app

app = typer.Typer(
    name="opsdispatch",
    help="Scheduled GLPI tickets, WhatsApp reports, and Zabbix alert fan-out.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
app.add_typer(jobs_app, name="jobs")
app.add_typer(webhooks_app, name="webhooks")
console = Console()


class Pipeline(str, Enum):
    tickets = "tickets"
    reports = "reports"


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


@app.callback(invoke_without_command=True)
def version_callback(
    version: bool = typer.Option(False, "--version", "-v", help="Show version"),
):
    if version:
        console.print(f"opsdispatch [dim]v{__version__}[/dim]")
        raise typer.Exit()


@app.command()
def serve():
    """Start the API server with the background scheduler."""
    import uvicorn

    from opsdispatch.config.settings import get_settings
    from opsdispatch.server.app import create_app

    settings = get_settings()
    _configure_logging(settings.log_level)
    _show_status(settings)

    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        access_log=False,
        log_config=None,
    )


@app.command()
def run(
    pipeline: Pipeline = typer.Argument(help="Which pipeline to run once"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Verbose batch logging"),
):
    """Run one batch now, outside the server."""
    from opsdispatch.config.settings import get_settings
    from opsdispatch.factory import create_report_runner, create_stores, create_ticket_runner
    from opsdispatch.scheduler.runner import BatchTrigger

    settings = get_settings()
    _configure_logging("DEBUG" if debug else settings.log_level)
    stores = create_stores(settings)
    if pipeline is Pipeline.tickets:
        runner = create_ticket_runner(settings, stores)
    else:
        runner = create_report_runner(settings, stores)

    report = asyncio.run(runner.run(BatchTrigger(debug=debug, manual_test=True)))
    console.print_json(json.dumps(report.as_response(), default=str))
    if not report.success:
        raise typer.Exit(1)


@app.command()
def status():
    """Show configuration and job counts."""
    from opsdispatch.config.settings import get_settings

    _show_status(get_settings())


@app.command()
def runs(
    limit: int = typer.Option(20, "--limit", "-n", help="How many records to show"),
):
    """Show the most recent batch run-log records."""
    from opsdispatch.config.settings import get_settings
    from opsdispatch.factory import create_stores

    records = create_stores(get_settings()).run_log.recent(limit=limit)
    if not records:
        console.print("[dim]No runs recorded yet.[/dim]")
        raise typer.Exit()

    table = Table(title="Batch Runs", show_lines=False)
    table.add_column("When", style="dim")
    table.add_column("Pipeline", style="bold")
    table.add_column("Status")
    table.add_column("Details", max_width=60)

    colors = {"completed": "green", "started": "dim", "critical_error": "red", "error": "red"}
    for record in records:
        color = colors.get(record.status, "white")
        if "executed" in record.details:
            summary = (
                f"{record.details['executed']} run, {record.details.get('successful', 0)} ok, "
                f"{record.details.get('failed', 0)} failed"
            )
        else:
            summary = str(record.details.get("error", ""))[:60]
        table.add_row(
            record.created_at.strftime("%m-%d %H:%M"),
            record.job_name,
            f"[{color}]{record.status}[/{color}]",
            summary,
        )
    console.print(table)


def _show_status(settings) -> None:
    """Print current config summary."""
    from opsdispatch.factory import create_stores

    stores = create_stores(settings)
    tickets = stores.tickets.all()
    reports = stores.reports.all()

    console.print()
    console.print(f"  [bold]Version:[/bold]   {__version__}")
    console.print(f"  [bold]Data dir:[/bold]  {settings.data_dir}")
    console.print(f"  [bold]Timezone:[/bold]  {settings.scheduler.timezone}")
    sched = "[green]on[/green]" if settings.scheduler.enabled else "[yellow]off[/yellow]"
    console.print(f"  [bold]Scheduler:[/bold] {sched} ({settings.scheduler.batch_cron})")
    console.print(
        f"  [bold]Tickets:[/bold]   {sum(j.is_active for j in tickets)} active / {len(tickets)}"
    )
    console.print(
        f"  [bold]Reports:[/bold]   {sum(j.is_active for j in reports)} active / {len(reports)}"
    )
    console.print(f"  [bold]Webhooks:[/bold]  {len(stores.subscriptions.all())}")
    console.print(
        f"  [bold]Server:[/bold]    http://{settings.server.host}:{settings.server.port}"
    )
    console.print()
