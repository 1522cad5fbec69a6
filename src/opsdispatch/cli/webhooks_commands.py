"""CLI commands for webhook subscriptions."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="webhooks",
    help="Inspect Zabbix webhook subscriptions.",
    no_args_is_help=True,
)
console = Console()


def _get_store():
    from opsdispatch.config.settings import get_settings
    from opsdispatch.factory import create_stores

    return create_stores(get_settings()).subscriptions


@app.command("list")
def list_webhooks():
    """List webhook subscriptions and their actions."""
    subscriptions = _get_store().all()

    if not subscriptions:
        console.print("[dim]No webhook subscriptions configured.[/dim]")
        raise typer.Exit()

    table = Table(title="Webhook Subscriptions", show_lines=False)
    table.add_column("ID", style="dim", max_width=12)
    table.add_column("Name", style="bold")
    table.add_column("Trigger")
    table.add_column("Status")
    table.add_column("Actions")
    table.add_column("Fired", justify="right")
    table.add_column("Last", style="dim")

    for sub in subscriptions:
        actions = []
        if sub.actions.create_ticket:
            actions.append(f"ticket(entity {sub.actions.ticket_entity_id})")
        if sub.actions.send_message:
            actions.append(f"whatsapp({sub.actions.message_target or '?'})")
        table.add_row(
            sub.id,
            sub.name,
            sub.trigger_type,
            "[green]active[/green]" if sub.is_active else "[yellow]inactive[/yellow]",
            ", ".join(actions) or "-",
            str(sub.trigger_count),
            sub.last_triggered.strftime("%Y-%m-%d %H:%M") if sub.last_triggered else "-",
        )

    console.print(table)
