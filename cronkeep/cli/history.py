"""cronkeep history command - Inspect and prune run history."""

import json
from datetime import timedelta
from typing import Optional

import typer
from rich.table import Table

from cronkeep.cli.common import console, fail_storage, format_time, open_store
from cronkeep.config import get_config
from cronkeep.errors import StorageError
from cronkeep.timeutil import utc_now

app = typer.Typer(help="Inspect and prune run history.")


@app.command("show")
def show_history(
    job_type: Optional[str] = typer.Argument(
        None,
        help="Only show runs of this job type.",
    ),
    limit: int = typer.Option(
        20,
        "--limit",
        "-n",
        min=1,
        help="Maximum number of runs to show.",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output runs as JSON.",
    ),
) -> None:
    """Show recent runs, newest first.

    Example:
        cronkeep history show
        cronkeep history show report --limit 5 --json
    """
    store = open_store()
    try:
        runs = store.history(job_type=job_type, limit=limit)
    except StorageError as e:
        fail_storage(e)

    if json_output:
        payload = [dict(run.to_dict(), type=run.cronjob.type) for run in runs]
        console.print_json(json.dumps(payload))
        return

    table = Table(title="Run History")
    table.add_column("Run", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Started")
    table.add_column("Duration")
    table.add_column("Outcome", style="bold")
    table.add_column("Next Run", style="green")
    table.add_column("Error / Result")

    for run in runs:
        if run.ended_at is None:
            outcome = "[yellow]running[/yellow]"
            duration = "-"
        else:
            outcome = "[green]ok[/green]" if run.succeeded else "[red]failed[/red]"
            duration = f"{(run.ended_at - run.started_at).total_seconds():.1f}s"

        detail = run.error or run.result or ""
        table.add_row(
            str(run.id),
            run.cronjob.type,
            format_time(run.started_at),
            duration,
            outcome,
            format_time(run.next_run_at, empty="never"),
            detail[:60],
        )

    console.print(table)


@app.command("prune")
def prune_history(
    days: Optional[int] = typer.Option(
        None,
        "--days",
        "-d",
        min=1,
        help="Delete finished runs older than this many days (default from config).",
    ),
) -> None:
    """Delete old finished runs.

    Example:
        cronkeep history prune
        cronkeep history prune --days 7
    """
    if days is None:
        days = get_config().scheduler.history_retention_days

    store = open_store()
    try:
        deleted = store.prune_history(utc_now() - timedelta(days=days))
    except StorageError as e:
        fail_storage(e)

    console.print(f"[green]✓[/green] Deleted {deleted} run record(s) older than {days} day(s)")
