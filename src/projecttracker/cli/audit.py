"""Audit log CLI commands.

This module provides CLI commands for retention cleanup and for inspecting
recent audit entries and audit statistics.
"""

from __future__ import annotations

import asyncio
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from projecttracker.audit.schemas import AuditLogView, CleanupResult
from projecttracker.errors import ProjectTrackerError

app = typer.Typer(help="Audit log commands")
console = Console()

ACTION_COLORS = {
    "CREATE": "green",
    "UPDATE": "yellow",
    "DELETE": "red",
}


@app.command()
def cleanup(
    retention_days: Annotated[
        Optional[int],
        typer.Option(
            "--retention-days",
            "-r",
            min=0,
            help="Days of history to keep (default: audit.default_retention_days)",
        ),
    ] = None,
    actor: Annotated[
        Optional[str],
        typer.Option("--actor", "-a", help="Who is requesting the cleanup"),
    ] = None,
) -> None:
    """Delete audit entries older than the retention window."""
    from projecttracker.main import get_app_context

    ctx = get_app_context()

    async def _cleanup() -> CleanupResult:
        async with ctx.services() as container:
            return await container.audit.cleanup(retention_days, actor)

    try:
        result = asyncio.run(_cleanup())
    except ProjectTrackerError as e:
        console.print(f"[red]Cleanup failed:[/red] {e.message}")
        raise typer.Exit(code=1)

    panel = Panel(
        f"[green]Audit cleanup complete[/green]\n\n"
        f"[bold]Deleted:[/bold] {result.deleted_count}\n"
        f"[bold]Retention:[/bold] {result.retention_days} days\n"
        f"[bold]Actor:[/bold] {result.actor}\n"
        f"[bold]At:[/bold] {result.timestamp.strftime('%Y-%m-%d %H:%M:%S')}",
        title="Audit Cleanup",
        border_style="green",
    )
    console.print(panel)


@app.command()
def recent(
    days: Annotated[
        int,
        typer.Option("--days", "-d", min=0, help="How many days back to show"),
    ] = 7,
) -> None:
    """List audit entries from the last N days, newest first."""
    from projecttracker.main import get_app_context

    ctx = get_app_context()

    async def _recent() -> list[AuditLogView]:
        async with ctx.services() as container:
            return await container.audit.recent_logs(days)

    try:
        entries = asyncio.run(_recent())
    except ProjectTrackerError as e:
        console.print(f"[red]Error reading audit log:[/red] {e.message}")
        raise typer.Exit(code=1)

    if not entries:
        console.print("[yellow]No audit entries found[/yellow]")
        return

    table = Table(title=f"Audit Entries (last {days} days)")
    table.add_column("Timestamp", style="dim")
    table.add_column("Action")
    table.add_column("Entity", style="cyan")
    table.add_column("Entity ID", justify="right")
    table.add_column("Actor", style="bold")

    for entry in entries:
        color = ACTION_COLORS.get(entry.action_type.value, "white")
        table.add_row(
            entry.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            f"[{color}]{entry.action_type.value}[/{color}]",
            entry.entity_type.value,
            "-" if entry.entity_id is None else str(entry.entity_id),
            entry.actor_name,
        )

    console.print(table)


def _counts_table(title: str, label: str, counts: dict[str, int]) -> Table:
    table = Table(title=title)
    table.add_column(label, style="cyan")
    table.add_column("Count", justify="right")
    for name, count in counts.items():
        table.add_row(name, str(count))
    return table


@app.command()
def stats() -> None:
    """Show audit totals and counts by entity type, action type and actor."""
    from projecttracker.main import get_app_context

    ctx = get_app_context()

    async def _stats() -> tuple[dict[str, int], ...]:
        async with ctx.services() as container:
            statistics = container.statistics
            return (
                await statistics.audit_overview(),
                await statistics.entity_type_counts(),
                await statistics.action_type_counts(),
                await statistics.actor_counts(),
            )

    overview, entity_types, action_types, actors = asyncio.run(_stats())

    console.print(
        Panel(
            f"[bold]Total:[/bold] {overview['totalLogs']}\n"
            f"[bold]Last 7 days:[/bold] {overview['recentLogs7Days']}\n"
            f"[bold]Last 30 days:[/bold] {overview['recentLogs30Days']}",
            title="Audit Log",
            border_style="cyan",
        )
    )
    console.print(_counts_table("By Entity Type", "Entity", entity_types))
    console.print(_counts_table("By Action Type", "Action", action_types))
    if actors:
        console.print(_counts_table("By Actor", "Actor", actors))
